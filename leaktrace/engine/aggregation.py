"""
Per-day aggregation of record collections.

Groups time-stamped records into UTC calendar-day buckets and builds daily
signal vectors aligned on a contiguous day range, which is what the drift
detector and the correlation engine consume.

Version: daily_aggregation_v1
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable, Sequence, TypeVar

from leaktrace.models.analysis import DailyBucket
from leaktrace.models.records import BillingRecord, SignalRecord, TriggeringEvent

T = TypeVar("T")


def day_key(ts: datetime) -> str:
    """UTC calendar day of ``ts`` as YYYY-MM-DD (naive values are taken as UTC)."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date().isoformat()


def date_range(start: str, end: str) -> list[str]:
    """Inclusive list of YYYY-MM-DD days from ``start`` to ``end``."""
    current = date.fromisoformat(start)
    last = date.fromisoformat(end)
    days = []
    while current <= last:
        days.append(current.isoformat())
        current += timedelta(days=1)
    return days


def group_by_day(records: Iterable[T], key: Callable[[T], datetime]) -> dict[str, list[T]]:
    """Group records by the UTC day of ``key(record)``, preserving input order."""
    grouped: dict[str, list[T]] = defaultdict(list)
    for record in records:
        grouped[day_key(key(record))].append(record)
    return dict(grouped)


def bucket_observations(observations: Iterable[tuple[datetime, bool]]) -> list[DailyBucket]:
    """
    Aggregate ``(timestamp, is_anomalous)`` observations into daily buckets.

    Returns:
        Buckets sorted by day; only days with at least one observation appear
    """
    totals: dict[str, int] = defaultdict(int)
    anomalies: dict[str, int] = defaultdict(int)
    for ts, is_anomalous in observations:
        day = day_key(ts)
        totals[day] += 1
        if is_anomalous:
            anomalies[day] += 1
    return [
        DailyBucket(day=day, total=totals[day], anomalies=anomalies[day])
        for day in sorted(totals)
    ]


def bucket_billing(records: Iterable[BillingRecord]) -> list[DailyBucket]:
    """Daily buckets of billing records with expected and lost amounts."""
    grouped = group_by_day(records, key=lambda r: r.timestamp)
    return [
        DailyBucket(
            day=day,
            total=len(items),
            anomalies=sum(1 for r in items if r.is_anomalous),
            expected=sum(r.expected_amount for r in items),
            loss=sum(r.loss for r in items),
        )
        for day, items in sorted(grouped.items())
    ]


def observed_span(*collections: Sequence) -> list[str]:
    """Contiguous day range covering every timestamp of the given record collections."""
    days = [day_key(r.timestamp) for records in collections for r in records]
    if not days:
        return []
    return date_range(min(days), max(days))


def billing_vectors(records: Sequence[BillingRecord], days: Sequence[str]) -> dict[str, list[float]]:
    """
    Daily billing signals aligned on ``days``.

    Returns:
        {"anomaly_rate": [...], "anomaly_count": [...], "loss": [...]}, zero
        on days without records
    """
    buckets = {b.day: b for b in bucket_billing(records)}
    empty = DailyBucket(day="", total=0, anomalies=0)
    return {
        "anomaly_rate": [buckets.get(d, empty).anomaly_rate for d in days],
        "anomaly_count": [float(buckets.get(d, empty).anomalies) for d in days],
        "loss": [buckets.get(d, empty).loss for d in days],
    }


def event_indicator(events: Iterable[TriggeringEvent], days: Sequence[str], kind: str) -> list[float]:
    """Binary daily signal: 1.0 on days with at least one event of ``kind``."""
    hit = {day_key(e.timestamp) for e in events if e.event_kind == kind}
    return [1.0 if d in hit else 0.0 for d in days]


def signal_counts(
    records: Iterable[SignalRecord],
    days: Sequence[str],
    predicate: Callable[[SignalRecord], bool] = lambda r: True,
) -> list[float]:
    """Daily count of signal records matching ``predicate``."""
    counts: dict[str, int] = defaultdict(int)
    for record in records:
        if predicate(record):
            counts[day_key(record.timestamp)] += 1
    return [float(counts.get(d, 0)) for d in days]


def signal_values(records: Iterable[SignalRecord], days: Sequence[str]) -> list[float]:
    """Daily sum of signal record values."""
    totals: dict[str, float] = defaultdict(float)
    for record in records:
        totals[day_key(record.timestamp)] += record.value
    return [totals.get(d, 0.0) for d in days]
