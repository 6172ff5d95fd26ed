"""
Baseline vs Recent-Window Drift Detection.

Splits a metric's daily anomaly-rate series into a baseline window (days
strictly before a boundary date) and a recent window (the last N observed
days), then measures how far the recent rate has drifted from the baseline.

Detection Algorithm:
    1. Group (timestamp, is_anomalous) observations into UTC daily buckets
    2. baseline_rate = mean of per-day anomaly rates before the boundary
    3. current_rate  = mean of per-day anomaly rates over the last N observed days
    4. drift_factor  = current_rate / baseline_rate   (0 when baseline_rate is 0)
    5. z_score       = (current_rate - baseline_rate) / stddev(baseline daily rates)
    6. significance  = HIGH_SIGNAL if z > 3, MODERATE if z > 2, else NOISE
    7. is_spike      = drift_factor > threshold (default 3.0)

Without any baseline day there is no claim: drift_factor and z_score are 0
and no spike is declared. A single baseline day has no sample stddev, so a
small epsilon stands in for it.

The recent window is taken from the sort order of observed days, never from
the wall clock, which keeps results reproducible for a given snapshot.

Version: drift_v1
"""

from datetime import date, datetime
from typing import Iterable, Optional, Sequence, Union

import structlog

from leaktrace.engine.aggregation import bucket_observations, day_key
from leaktrace.engine.parameters import DriftParameters
from leaktrace.engine.statistics import mean, sample_stddev, z_score
from leaktrace.models.analysis import DailyDrift, DriftResult
from leaktrace.models.enums import SignificanceTier
from leaktrace.models.records import BillingRecord, TriggeringEvent

Boundary = Union[date, datetime, str, None]


def normalize_boundary(boundary: Boundary) -> Optional[str]:
    """Boundary as a YYYY-MM-DD string (datetimes are reduced to their UTC day)."""
    if boundary is None:
        return None
    if isinstance(boundary, datetime):
        return day_key(boundary)
    if isinstance(boundary, date):
        return boundary.isoformat()
    return date.fromisoformat(boundary[:10]).isoformat()


def event_boundary(
    events: Iterable[TriggeringEvent],
    event_kind: str = "deployment",
    instant: Optional[datetime] = None,
) -> Optional[str]:
    """
    Day of the latest ``event_kind`` event at or before ``instant``.

    Used as the baseline boundary when the caller gives none, so that days
    after the most recent release never leak into the baseline.
    Returns None when there is no such event.
    """
    stamps = [
        e.timestamp
        for e in events
        if e.event_kind == event_kind and (instant is None or e.timestamp <= instant)
    ]
    if not stamps:
        return None
    return day_key(max(stamps))


class DriftDetector:
    """
    Baseline/recent drift detector for a daily anomaly-rate series.

    Attributes:
        params: Drift parameters (window, thresholds, epsilon)

    Example:
        >>> detector = DriftDetector()
        >>> result = detector.detect_records(invoices, baseline_end="2026-02-10")
        >>> if result.is_spike:
        ...     print(f"{result.drift_factor:.1f}x above baseline")
    """

    def __init__(self, params: Optional[DriftParameters] = None):
        """
        Initialize the drift detector.

        Args:
            params: Drift parameters (window, thresholds, epsilon)
        """
        self.params = params or DriftParameters()
        self.logger = structlog.get_logger()

    def detect(
        self,
        observations: Iterable[tuple[datetime, bool]],
        baseline_end: Boundary = None,
        window: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> DriftResult:
        """
        Compute drift between the baseline and the recent window.

        Args:
            observations: (timestamp, is_anomalous) tuples for one metric
            baseline_end: First day excluded from the baseline. When omitted,
                the first day of the recent window is used.
            window: Number of most recent observed days (default from params)
            threshold: Drift factor above which a spike is declared

        Returns:
            DriftResult with per-day drift series

        Raises:
            ValueError: If ``window`` is not positive
        """
        window = self.params.recent_window_days if window is None else window
        threshold = self.params.spike_threshold if threshold is None else threshold
        if window < 1:
            raise ValueError(f"window must be at least 1 day, got {window}")

        buckets = bucket_observations(observations)
        days = [b.day for b in buckets]
        recent = buckets[-window:]

        boundary = normalize_boundary(baseline_end)
        if boundary is None and recent:
            boundary = recent[0].day

        baseline_rates = [b.anomaly_rate for b in buckets if boundary is not None and b.day < boundary]
        recent_rates = [b.anomaly_rate for b in recent]

        baseline_rate = mean(baseline_rates)
        current_rate = mean(recent_rates)
        drift_factor = current_rate / baseline_rate if baseline_rate > 0 else 0.0

        if not baseline_rates:
            # No baseline, no claim
            std_dev = 0.0
            z = 0.0
            self.logger.debug("drift_no_baseline", observed_days=len(days), baseline_end=boundary)
        else:
            std_dev = (
                sample_stddev(baseline_rates)
                if len(baseline_rates) > 1
                else self.params.stddev_epsilon
            )
            z = z_score(current_rate, baseline_rate, std_dev)

        daily_series = [
            DailyDrift(
                day=b.day,
                total=b.total,
                anomalies=b.anomalies,
                anomaly_rate=b.anomaly_rate,
                drift_factor=b.anomaly_rate / baseline_rate if baseline_rate > 0 else 0.0,
            )
            for b in buckets
        ]

        result = DriftResult(
            baseline_rate=baseline_rate,
            current_rate=current_rate,
            drift_factor=drift_factor,
            std_dev=std_dev,
            z_score=z,
            significance_tier=self.classify_significance(z),
            is_spike=drift_factor > threshold,
            threshold=threshold,
            baseline_end=boundary,
            baseline_days=len(baseline_rates),
            recent_days=[b.day for b in recent],
            daily_series=daily_series,
        )

        self.logger.debug(
            "drift_computed",
            baseline_rate=round(baseline_rate, 4),
            current_rate=round(current_rate, 4),
            drift_factor=round(drift_factor, 4),
            z_score=round(z, 4),
            is_spike=result.is_spike,
        )
        if result.is_spike:
            self.logger.info(
                "drift_spike_detected",
                drift_factor=round(drift_factor, 2),
                significance=result.significance_tier.value,
                baseline_end=boundary,
            )

        return result

    def detect_records(
        self,
        records: Sequence[BillingRecord],
        baseline_end: Boundary = None,
        window: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> DriftResult:
        """Run :meth:`detect` over billing records (anomalous = underbilled)."""
        return self.detect(
            ((r.timestamp, r.is_anomalous) for r in records),
            baseline_end=baseline_end,
            window=window,
            threshold=threshold,
        )

    def classify_significance(self, z: float) -> SignificanceTier:
        """Map a drift z-score to its significance tier."""
        if z > self.params.high_signal_z:
            return SignificanceTier.HIGH_SIGNAL
        if z > self.params.moderate_z:
            return SignificanceTier.MODERATE
        return SignificanceTier.NOISE

    def find_onset(
        self,
        daily_series: Sequence[DailyDrift],
        onset_threshold: Optional[float] = None,
    ) -> Optional[str]:
        """
        First day whose per-day drift factor exceeds ``onset_threshold``.

        Args:
            daily_series: Per-day drift series, chronologically ordered
            onset_threshold: Drift factor threshold (default 2.0)

        Returns:
            The onset day (YYYY-MM-DD), or None if no day qualifies
        """
        threshold = self.params.onset_threshold if onset_threshold is None else onset_threshold
        for point in daily_series:
            if point.drift_factor > threshold:
                return point.day
        return None
