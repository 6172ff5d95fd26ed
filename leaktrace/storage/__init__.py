"""
Record storage layer.

The inference core consumes materialized record collections; this package
produces them:

- RecordSource: abstract loader of billing, event, transaction and churn records
- JsonRecordSource: loader for a directory of JSON export files
- RecordCache: read-through snapshot cache with explicit invalidation
- InvestigationStore: holder of the latest investigation
"""

from functools import lru_cache

from leaktrace.config import get_settings

from .base import RecordSnapshot, RecordSource
from .cache import InvestigationStore, RecordCache
from .json_source import JsonRecordSource


@lru_cache
def get_record_cache() -> RecordCache:
    """
    Get cached record cache instance (singleton).

    Returns:
        RecordCache over the JSON files of the configured data directory
    """
    settings = get_settings()
    return RecordCache(JsonRecordSource(settings.data_dir))


@lru_cache
def get_investigation_store() -> InvestigationStore:
    """Get the process-wide investigation store (singleton)."""
    return InvestigationStore()


__all__ = [
    "RecordSnapshot",
    "RecordSource",
    "JsonRecordSource",
    "RecordCache",
    "InvestigationStore",
    "get_record_cache",
    "get_investigation_store",
]
