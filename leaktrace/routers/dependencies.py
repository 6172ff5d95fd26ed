"""
FastAPI dependencies for the analysis routers.

Every dependency is a cached singleton so the routers share one configured
pipeline. Tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from leaktrace.config import get_settings
from leaktrace.engine.monitors import AlertEvaluator
from leaktrace.engine.orchestrator import InvestigationOrchestrator
from leaktrace.utils.logging import get_logger

logger = get_logger(__name__)


@lru_cache
def get_orchestrator() -> InvestigationOrchestrator:
    """
    Get the investigation orchestrator configured from settings.

    Returns:
        InvestigationOrchestrator built from ``Settings.analysis_config()``
    """
    config = get_settings().analysis_config()
    logger.info(
        "orchestrator_configured",
        spike_threshold=config.drift.spike_threshold,
        recent_window_days=config.drift.recent_window_days,
        max_lag=config.correlation.max_lag,
    )
    return InvestigationOrchestrator(config)


@lru_cache
def get_alert_evaluator() -> AlertEvaluator:
    """Get the alert evaluator configured from settings."""
    config = get_settings().analysis_config()
    return AlertEvaluator(config.alerts, config.drift)
