"""
On-demand analysis router - Individual pipeline components per entity.

Wired to:
- DriftDetector for baseline vs recent drift and per-entity status
- EventAttributionScorer for deployment markers on the timeline
- CompositeRiskScorer for the composite risk score
- ZScoreScanner for per-day outlier days

Endpoints that take no explicit baseline boundary use the day of the
entity's latest deployment, falling back to the recent window.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from leaktrace.engine.aggregation import bucket_billing
from leaktrace.engine.detection import event_boundary
from leaktrace.engine.orchestrator import InvestigationOrchestrator
from leaktrace.routers.dependencies import get_orchestrator
from leaktrace.routers.investigations import default_instant
from leaktrace.storage import RecordCache, get_record_cache
from leaktrace.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("/drift")
async def get_drift(
    entity: str = Query(..., min_length=1),
    baseline_end: Optional[date] = Query(None, description="First day excluded from the baseline"),
    cache: RecordCache = Depends(get_record_cache),
    orchestrator: InvestigationOrchestrator = Depends(get_orchestrator),
):
    """Baseline vs recent-window drift of an entity's anomaly rate."""
    snapshot = cache.snapshot()
    billing = snapshot.billing_for(entity)
    boundary = baseline_end or event_boundary(
        snapshot.events_for(entity), orchestrator.config.orchestration.event_kind
    )
    drift = orchestrator.detector.detect_records(billing, baseline_end=boundary)
    onset = orchestrator.detector.find_onset(drift.daily_series)

    logger.info("drift_requested", entity=entity, records=len(billing), is_spike=drift.is_spike)

    return {
        "success": True,
        "data": {**drift.model_dump(mode="json"), "spike_onset": onset},
    }


@router.get("/entities")
async def list_entities(
    cache: RecordCache = Depends(get_record_cache),
    orchestrator: InvestigationOrchestrator = Depends(get_orchestrator),
):
    """Drift status (SPIKING or STABLE) and loss totals of every billed entity."""
    snapshot = cache.snapshot()
    kind = orchestrator.config.orchestration.event_kind

    entities = []
    for entity in snapshot.entities():
        billing = snapshot.billing_for(entity)
        deploys = [e for e in snapshot.events_for(entity) if e.event_kind == kind]
        latest = max(deploys, key=lambda e: e.timestamp) if deploys else None

        drift = orchestrator.detector.detect_records(
            billing, baseline_end=event_boundary(deploys, kind)
        )
        anomalies = sum(1 for r in billing if r.is_anomalous)

        entities.append(
            {
                "entity": entity,
                "total_records": len(billing),
                "anomaly_count": anomalies,
                "anomaly_rate": anomalies / len(billing),
                "loss": sum(r.loss for r in billing),
                "latest_deployment": (
                    {
                        "version": latest.version_label,
                        "timestamp": latest.timestamp.isoformat(),
                    }
                    if latest
                    else None
                ),
                "status": "SPIKING" if drift.is_spike else "STABLE",
                "drift_factor": drift.drift_factor,
            }
        )

    logger.info(
        "entities_listed",
        count=len(entities),
        spiking=sum(1 for e in entities if e["status"] == "SPIKING"),
    )

    return {"success": True, "data": {"count": len(entities), "entities": entities}}


@router.get("/timeline")
async def get_timeline(
    entity: str = Query(..., min_length=1),
    cache: RecordCache = Depends(get_record_cache),
    orchestrator: InvestigationOrchestrator = Depends(get_orchestrator),
):
    """Daily anomaly-rate series with deployment markers and their attribution confidence."""
    snapshot = cache.snapshot()
    kind = orchestrator.config.orchestration.event_kind
    billing = snapshot.billing_for(entity)
    events = snapshot.events_for(entity)

    timeline = [
        {
            "day": b.day,
            "total": b.total,
            "anomalies": b.anomalies,
            "anomaly_rate": b.anomaly_rate,
            "expected": b.expected,
            "loss": b.loss,
        }
        for b in bucket_billing(billing)
    ]

    scores = orchestrator.scorer.score_candidates(
        billing, events, baseline_end=event_boundary(events, kind), event_kind=kind
    )
    markers = [
        {
            "day": s.event_timestamp.date().isoformat(),
            "event_id": s.event_id,
            "version": s.version,
            "timestamp": s.event_timestamp.isoformat(),
            "confidence": s.confidence,
            "classification": s.classification.value,
        }
        for s in sorted(scores, key=lambda s: s.event_timestamp)
    ]

    return {
        "success": True,
        "data": {"entity": entity, "timeline": timeline, "deployment_markers": markers},
    }


@router.get("/risk")
async def get_risk(
    entity: str = Query(..., min_length=1),
    analysis_instant: Optional[datetime] = Query(None),
    cache: RecordCache = Depends(get_record_cache),
    orchestrator: InvestigationOrchestrator = Depends(get_orchestrator),
):
    """Composite risk score of an entity as of the analysis instant."""
    snapshot = cache.snapshot()
    instant = analysis_instant or default_instant(snapshot)
    risk = orchestrator.risk_scorer.score(
        snapshot.billing_for(entity),
        snapshot.events_for(entity),
        instant,
        event_kind=orchestrator.config.orchestration.event_kind,
    )
    return {"success": True, "data": risk.model_dump(mode="json")}


@router.get("/anomalies")
async def get_anomalies(
    entity: str = Query(..., min_length=1),
    cache: RecordCache = Depends(get_record_cache),
    orchestrator: InvestigationOrchestrator = Depends(get_orchestrator),
):
    """Days whose loss or anomaly rate is a z-score outlier."""
    outliers = orchestrator.scanner.scan_billing(cache.snapshot().billing_for(entity))
    return {
        "success": True,
        "data": {
            "entity": entity,
            "count": len(outliers),
            "anomalies": [o.model_dump(mode="json") for o in outliers],
        },
    }
