"""
Read-through record cache and latest-investigation store.

Both hold the only cross-call state of the service. The cache is
invalidated only by an explicit ``invalidate()``; the store is written once
per investigation request and read elsewhere.
"""

import threading
from typing import Optional

import structlog

from leaktrace.models.investigation import Investigation

from .base import RecordSnapshot, RecordSource

logger = structlog.get_logger()


class RecordCache:
    """
    Read-through cache of a RecordSource snapshot.

    Example:
        >>> cache = RecordCache(JsonRecordSource("./data"))
        >>> snapshot = cache.snapshot()   # loads from disk
        >>> snapshot = cache.snapshot()   # served from memory
        >>> cache.invalidate()            # next call reloads
    """

    def __init__(self, source: RecordSource):
        self.source = source
        self._snapshot: Optional[RecordSnapshot] = None
        self._lock = threading.Lock()
        self.logger = structlog.get_logger()

    def snapshot(self) -> RecordSnapshot:
        """Cached snapshot, loading it from the source on first use."""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self.source.load_snapshot()
                self.logger.info(
                    "record_cache_loaded",
                    billing=len(self._snapshot.billing),
                    events=len(self._snapshot.events),
                    transactions=len(self._snapshot.transactions),
                    churn=len(self._snapshot.churn),
                )
            return self._snapshot

    def invalidate(self) -> bool:
        """
        Drop the cached snapshot.

        Returns:
            True if a snapshot was cached
        """
        with self._lock:
            was_cached = self._snapshot is not None
            self._snapshot = None
        self.logger.info("record_cache_invalidated", was_cached=was_cached)
        return was_cached


class InvestigationStore:
    """Holds the most recent Investigation produced by the service."""

    def __init__(self):
        self._latest: Optional[Investigation] = None
        self._lock = threading.Lock()

    def save(self, investigation: Investigation) -> None:
        with self._lock:
            self._latest = investigation

    def latest(self) -> Optional[Investigation]:
        with self._lock:
            return self._latest
