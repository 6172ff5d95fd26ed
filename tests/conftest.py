"""
Pytest configuration and shared fixtures for the LeakTrace test suite.

Provides record factories, fixed scenario datasets and an isolated API client
reused across unit, integration, golden and property-based tests.

Scenario calendar: day 1 is 2026-02-01 (UTC). Invoices are stamped at 12:00,
deployments at 09:00, so a deployment always precedes the invoices of its day.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# Set logging environment BEFORE importing app
os.environ.setdefault("LOG_FORMAT", "console")

from leaktrace.models.records import BillingRecord, SignalRecord, TriggeringEvent

ENTITY = "billing-service"
START = datetime(2026, 2, 1, tzinfo=timezone.utc)

# Anomalies per baseline day (100 invoices/day): mean exactly 2%, small spread
BASELINE_ANOMALIES = [2, 3, 2, 1, 2, 2, 3, 1, 2]

# Flat scenario: 28 anomalies over 14 days, never a flat-zero variance
FLAT_ANOMALIES = [2, 3, 2, 1, 2, 2, 3, 1, 2, 2, 3, 2, 1, 2]


def day(n: int, hour: int = 12, minute: int = 0) -> datetime:
    """Timestamp on scenario day ``n`` (1-based)."""
    return START + timedelta(days=n - 1, hours=hour, minutes=minute)


def day_label(n: int) -> str:
    """YYYY-MM-DD of scenario day ``n``."""
    return (START + timedelta(days=n - 1)).date().isoformat()


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------


def make_invoice(
    n: int,
    anomalous: bool = False,
    entity: str = ENTITY,
    expected: float = 100.0,
    underbill: float = 20.0,
    region: Optional[str] = "us-east",
    **overrides,
) -> BillingRecord:
    """Factory function for creating test BillingRecord objects."""
    defaults = dict(
        entity_id=entity,
        timestamp=day(n),
        expected_amount=expected,
        billed_amount=expected - underbill if anomalous else expected,
        region=region,
    )
    defaults.update(overrides)
    return BillingRecord(**defaults)


def make_invoices(n: int, total: int, anomalies: int, **kwargs) -> list[BillingRecord]:
    """``total`` invoices on day ``n``, the first ``anomalies`` of them underbilled."""
    return [
        make_invoice(n, anomalous=i < anomalies, record_id=f"inv-{n}-{i}", **kwargs)
        for i in range(total)
    ]


def make_deployment(
    n: int,
    version: str,
    entity: str = ENTITY,
    hour: int = 9,
    event_kind: str = "deployment",
    **overrides,
) -> TriggeringEvent:
    """Factory function for creating test TriggeringEvent objects."""
    defaults = dict(
        record_id=f"evt-{version}",
        entity_id=entity,
        timestamp=day(n, hour=hour),
        event_kind=event_kind,
        version_label=version,
    )
    defaults.update(overrides)
    return TriggeringEvent(**defaults)


def make_signal(
    n: int,
    status: str = "SUCCESS",
    value: float = 0.0,
    entity: Optional[str] = None,
    hour: int = 15,
    **overrides,
) -> SignalRecord:
    """Factory function for creating test SignalRecord objects."""
    defaults = dict(entity_id=entity, timestamp=day(n, hour=hour), status=status, value=value)
    defaults.update(overrides)
    return SignalRecord(**defaults)


# ---------------------------------------------------------------------------
# Scenario datasets
# ---------------------------------------------------------------------------


def baseline_invoices() -> list[BillingRecord]:
    """Days 1-9: 100 invoices/day at a 2% mean anomaly rate."""
    records = []
    for i, anomalies in enumerate(BASELINE_ANOMALIES, start=1):
        records.extend(make_invoices(i, 100, anomalies))
    return records


def build_spike_scenario() -> dict:
    """
    Faulty release scenario.

    - Days 1-9: 2% anomaly rate
    - Day 10: deployment v2.0.0, anomaly rate jumps to 35% through day 16
    - Earlier deployments on day 2 (v1.0.0) and day 7 (v1.1.0)
    - Fix v2.0.1 deployed on day 17 (after the analysis instant)
    - Failed transactions and churn rise after the spike
    """
    billing = baseline_invoices()
    for n in range(10, 17):
        billing.extend(make_invoices(n, 20, 7))

    events = [
        make_deployment(2, "v1.0.0"),
        make_deployment(7, "v1.1.0"),
        make_deployment(10, "v2.0.0"),
        make_deployment(17, "v2.0.1"),
        make_deployment(5, None, event_kind="config_change", record_id="evt-config"),
        make_deployment(10, "v9.9.9", entity="auth-service", record_id="evt-other"),
    ]

    transactions = [make_signal(n, "SUCCESS") for n in range(1, 17)]
    transactions.append(make_signal(5, "FAILED"))
    for n in range(10, 17):
        transactions.extend(make_signal(n, "FAILED") for _ in range(3))

    churn = [make_signal(3, "cancel", value=29.99)]
    churn.extend(make_signal(n, "downgrade", value=49.99) for n in range(12, 17))

    return {
        "billing": billing,
        "events": events,
        "transactions": transactions,
        "churn": churn,
        "analysis_instant": day(16, hour=23, minute=59),
        "baseline_end": day_label(10),
    }


def build_inverse_scenario() -> dict:
    """Spike on day 10 only; the deployment lands on day 11, after the onset."""
    billing = baseline_invoices()
    billing.extend(make_invoices(10, 20, 7))
    for n in range(11, 14):
        billing.extend(make_invoices(n, 100, 2))
    return {
        "billing": billing,
        "events": [make_deployment(11, "v3.0.0")],
        "transactions": [],
        "churn": [],
        "analysis_instant": day(13, hour=23, minute=59),
        "baseline_end": day_label(10),
    }


def build_flat_scenario() -> dict:
    """14 days hovering around a 2% anomaly rate and no deployments."""
    billing = []
    for n, anomalies in enumerate(FLAT_ANOMALIES, start=1):
        billing.extend(make_invoices(n, 100, anomalies))
    return {
        "billing": billing,
        "events": [],
        "transactions": [],
        "churn": [],
        "analysis_instant": day(14, hour=23, minute=59),
        "baseline_end": None,
    }


def write_data_dir(path: Path, scenario: dict) -> Path:
    """Write a scenario as JSON export files into ``path``."""
    files = {
        "invoices.json": scenario["billing"],
        "system_events.json": scenario["events"],
        "transactions.json": scenario["transactions"],
        "churn_events.json": scenario["churn"],
    }
    for name, records in files.items():
        payload = [r.model_dump(mode="json") for r in records]
        (path / name).write_text(json.dumps(payload), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def spike_scenario():
    """Faulty release on day 10 with data through day 16."""
    return build_spike_scenario()


@pytest.fixture
def inverse_scenario():
    """Deployment one day after the spike onset."""
    return build_inverse_scenario()


@pytest.fixture
def flat_scenario():
    """Stable ~2% anomaly rate, no deployments."""
    return build_flat_scenario()


@pytest.fixture
def spike_invoices(spike_scenario):
    """Billing records of the spike scenario."""
    return spike_scenario["billing"]


@pytest.fixture
def data_dir(tmp_path):
    """Data directory holding the spike scenario as JSON files (fix deployment excluded)."""
    scenario = build_spike_scenario()
    scenario["events"] = [e for e in scenario["events"] if e.version_label != "v2.0.1"]
    return write_data_dir(tmp_path, scenario)


@pytest.fixture
def client(data_dir):
    """FastAPI test client wired to an isolated record cache and store."""
    from leaktrace.main import app
    from leaktrace.storage import (
        InvestigationStore,
        JsonRecordSource,
        RecordCache,
        get_investigation_store,
        get_record_cache,
    )

    cache = RecordCache(JsonRecordSource(data_dir))
    store = InvestigationStore()
    app.dependency_overrides[get_record_cache] = lambda: cache
    app.dependency_overrides[get_investigation_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
