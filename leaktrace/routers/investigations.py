"""
Investigation router - Run the six-stage pipeline for one entity.

Wired to:
- RecordCache for the record snapshot
- InvestigationOrchestrator for the pipeline
- InvestigationStore for the latest result
"""

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from leaktrace.engine.orchestrator import InvestigationOrchestrator, end_of_last_observed_day
from leaktrace.routers.dependencies import get_orchestrator
from leaktrace.storage import (
    InvestigationStore,
    RecordCache,
    RecordSnapshot,
    get_investigation_store,
    get_record_cache,
)
from leaktrace.utils.logging import get_logger, investigation_context

logger = get_logger(__name__)
router = APIRouter()

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class InvestigationRequest(BaseModel):
    """Investigation request."""

    entity: str = Field(min_length=1, description="Entity to investigate")
    analysis_instant: Optional[datetime] = Field(
        default=None, description="Defaults to the end of the last observed day"
    )
    baseline_end: Optional[date] = Field(
        default=None, description="First day excluded from the drift baseline"
    )


def default_instant(snapshot: RecordSnapshot) -> datetime:
    """End of the last observed day of the snapshot, so repeated calls agree."""
    instant = end_of_last_observed_day(
        snapshot.billing, snapshot.events, snapshot.transactions, snapshot.churn
    )
    return instant or EPOCH


@router.post("")
async def run_investigation(
    request: InvestigationRequest,
    cache: RecordCache = Depends(get_record_cache),
    orchestrator: InvestigationOrchestrator = Depends(get_orchestrator),
    store: InvestigationStore = Depends(get_investigation_store),
):
    """
    Run an investigation for one entity and store it as the latest.

    An unknown entity yields a degraded investigation (no baseline, no
    culprit) rather than an error.
    """
    snapshot = cache.snapshot()
    instant = request.analysis_instant or default_instant(snapshot)

    logger.info(
        "investigation_requested",
        entity=request.entity,
        analysis_instant=instant.isoformat(),
        baseline_end=request.baseline_end.isoformat() if request.baseline_end else None,
    )

    with investigation_context(request.entity, instant):
        investigation = orchestrator.investigate(
            request.entity,
            billing=snapshot.billing,
            events=snapshot.events,
            transactions=snapshot.transactions,
            churn=snapshot.churn,
            analysis_instant=instant,
            baseline_end=request.baseline_end,
        )
    store.save(investigation)

    return {"success": True, "data": investigation.model_dump(mode="json")}


@router.get("/latest")
async def get_latest_investigation(
    store: InvestigationStore = Depends(get_investigation_store),
):
    """Get the most recent investigation."""
    investigation = store.latest()
    if investigation is None:
        raise HTTPException(status_code=404, detail="No investigation has been run yet")
    return {"success": True, "data": investigation.model_dump(mode="json")}
