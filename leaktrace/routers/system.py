"""
System health and cache management router.

Wired to:
- RecordCache for snapshot diagnostics and invalidation
- Settings for configuration
"""

import time

from fastapi import APIRouter, Depends

from leaktrace.config import get_settings
from leaktrace.storage import RecordCache, get_record_cache
from leaktrace.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Track startup time for uptime calculation
_startup_time = time.time()


@router.get("/health")
async def system_health(cache: RecordCache = Depends(get_record_cache)):
    """
    Get system health status.
    Loads the record snapshot and reports its size.
    """
    settings = get_settings()
    snapshot = cache.snapshot()

    return {
        "success": True,
        "data": {
            "status": "healthy",
            "uptime_seconds": round(time.time() - _startup_time, 1),
            "data_dir": settings.data_dir,
            "records": {
                "billing": len(snapshot.billing),
                "events": len(snapshot.events),
                "transactions": len(snapshot.transactions),
                "churn": len(snapshot.churn),
            },
            "entities": snapshot.entities(),
        },
    }


@router.post("/cache/invalidate")
async def invalidate_cache(cache: RecordCache = Depends(get_record_cache)):
    """Drop cached records; the next request reloads them from the source."""
    was_cached = cache.invalidate()
    logger.info("cache_invalidation_requested", was_cached=was_cached)
    return {"success": True, "data": {"invalidated": was_cached}}
