"""
Alerts router - Threshold alerts across all entities.

Wired to:
- AlertEvaluator for anomaly-spike, drift and revenue-loss thresholds
"""

from fastapi import APIRouter, Depends

from leaktrace.engine.monitors import AlertEvaluator
from leaktrace.models.enums import RiskCategory
from leaktrace.routers.dependencies import get_alert_evaluator
from leaktrace.storage import RecordCache, get_record_cache
from leaktrace.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_alerts(
    cache: RecordCache = Depends(get_record_cache),
    evaluator: AlertEvaluator = Depends(get_alert_evaluator),
):
    """All alerts, most severe first."""
    alerts = evaluator.evaluate_all(cache.snapshot().billing)
    return {
        "success": True,
        "data": {
            "count": len(alerts),
            "critical_count": sum(1 for a in alerts if a.severity == RiskCategory.CRITICAL),
            "alerts": [a.model_dump(mode="json") for a in alerts],
        },
    }
