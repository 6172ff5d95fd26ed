"""
JSON file record source.

Reads the export files of a data directory:

    invoices.json        billing records
    system_events.json   triggering events
    transactions.json    transaction signals
    churn_events.json    churn signals

Each file holds a JSON array of objects. A missing file is an empty
collection. Records are validated on load; the first malformed record
raises MalformedRecordError.
"""

import json
from pathlib import Path
from typing import Union

import structlog

from leaktrace.models.enums import RecordKind
from leaktrace.models.records import (
    BillingRecord,
    SignalRecord,
    TriggeringEvent,
    parse_records,
)

from .base import RecordSource

logger = structlog.get_logger()

RECORD_FILES = {
    RecordKind.BILLING: "invoices.json",
    RecordKind.EVENT: "system_events.json",
    RecordKind.TRANSACTION: "transactions.json",
    RecordKind.CHURN: "churn_events.json",
}


class JsonRecordSource(RecordSource):
    """
    Record source backed by JSON export files.

    Attributes:
        data_dir: Directory holding the export files

    Example:
        >>> source = JsonRecordSource("./data")
        >>> snapshot = source.load_snapshot()
        >>> len(snapshot.billing)
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.logger = structlog.get_logger()

    def load_billing(self) -> list[BillingRecord]:
        return self._load(RecordKind.BILLING)

    def load_events(self) -> list[TriggeringEvent]:
        return self._load(RecordKind.EVENT)

    def load_transactions(self) -> list[SignalRecord]:
        return self._load(RecordKind.TRANSACTION)

    def load_churn(self) -> list[SignalRecord]:
        return self._load(RecordKind.CHURN)

    def _load(self, kind: RecordKind) -> list:
        """
        Read and validate one export file.

        Raises:
            ValueError: If the file is not a JSON array
            MalformedRecordError: If a record fails validation
        """
        path = self.data_dir / RECORD_FILES[kind]
        if not path.exists():
            self.logger.warning("record_file_missing", kind=kind.value, path=str(path))
            return []

        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, list):
            raise ValueError(f"{path} must contain a JSON array of records")

        records = parse_records(raw, kind)
        self.logger.info("records_loaded", kind=kind.value, count=len(records), path=str(path))
        return records
