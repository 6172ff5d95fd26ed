"""
Input record models for the LeakTrace pipeline.

Records are supplied by the caller as materialized collections. The core only
reads and groups them; it never mutates or persists them. Each model accepts
both snake_case field names and the camelCase names used by the upstream
export files (``amountBilled``, ``service``, ``eventType`` ...).

All timestamps are normalized to timezone-aware UTC so that day bucketing and
before/after comparisons never mix naive and aware datetimes.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Iterable, Optional, Sequence, TypeVar, Union

import structlog
from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .enums import RecordKind

logger = structlog.get_logger()


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(to_utc)]


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
        coerce_numbers_to_str=True,
    )

    record_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("record_id", "id", "invoiceId", "transactionId", "eventId"),
        description="Source identifier, used to locate the record in error reports",
    )

    @property
    def day(self) -> str:
        """Calendar day (UTC) of this record as YYYY-MM-DD."""
        return self.timestamp.date().isoformat()


class BillingRecord(_Record):
    """
    An invoice-like record comparing expected vs billed amounts.

    Attributes:
        entity_id: Entity (service, account) the invoice belongs to
        timestamp: When the invoice was issued
        expected_amount: Amount that should have been billed
        billed_amount: Amount actually billed
        region: Optional region label used for loss breakdowns
    """

    entity_id: str = Field(validation_alias=AliasChoices("entity_id", "service", "entity"))
    timestamp: UtcDatetime = Field(validation_alias=AliasChoices("timestamp", "invoiceDate"))
    expected_amount: float = Field(
        validation_alias=AliasChoices("expected_amount", "amountExpected")
    )
    billed_amount: float = Field(validation_alias=AliasChoices("billed_amount", "amountBilled"))
    region: Optional[str] = None

    @property
    def is_anomalous(self) -> bool:
        """An invoice is anomalous when it was underbilled."""
        return self.billed_amount < self.expected_amount

    @property
    def loss(self) -> float:
        """Underbilled amount, zero for correctly billed or overbilled invoices."""
        return self.expected_amount - self.billed_amount if self.is_anomalous else 0.0

    @property
    def underbilling_pct(self) -> float:
        """Underbilling as a percentage of the expected amount (signed)."""
        if self.expected_amount == 0:
            return 0.0
        return (self.expected_amount - self.billed_amount) / self.expected_amount * 100


class TriggeringEvent(_Record):
    """
    A system event that may trigger a behavior change (e.g. a deployment).

    Only events whose ``event_kind`` matches the configured kind
    (``"deployment"`` by default) participate in attribution.
    """

    entity_id: str = Field(validation_alias=AliasChoices("entity_id", "service", "entity"))
    timestamp: UtcDatetime
    event_kind: str = Field(validation_alias=AliasChoices("event_kind", "eventType", "type"))
    version_label: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("version_label", "version")
    )
    region: Optional[str] = None
    commit_hash: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("commit_hash", "git_commit_hash", "hash")
    )

    @field_validator("event_kind")
    @classmethod
    def normalize_kind(cls, v: str) -> str:
        """Event kinds are compared case-insensitively."""
        return v.strip().lower()


class SignalRecord(_Record):
    """
    A secondary-signal record (transaction, churn event, ...).

    ``entity_id`` may be absent for signals that are not scoped to one
    entity; such records count towards every investigation.
    """

    entity_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("entity_id", "service", "entity")
    )
    timestamp: UtcDatetime = Field(validation_alias=AliasChoices("timestamp", "date"))
    status: str = Field(
        default="", validation_alias=AliasChoices("status", "status_or_kind", "kind", "eventType")
    )
    value: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "value", "lost_value", "lostMRR", "planValue", "expectedAmount", "amount"
        ),
    )

    def applies_to(self, entity_id: str) -> bool:
        """Whether this signal is relevant to ``entity_id``."""
        return self.entity_id is None or self.entity_id == entity_id


RECORD_MODELS: dict[RecordKind, type[_Record]] = {
    RecordKind.BILLING: BillingRecord,
    RecordKind.EVENT: TriggeringEvent,
    RecordKind.TRANSACTION: SignalRecord,
    RecordKind.CHURN: SignalRecord,
}


class MalformedRecordError(ValueError):
    """
    Raised when an input record is missing a required field or is invalid.

    Carries enough context to locate the offending record in the caller's
    input: its kind, position and source identifier.
    """

    def __init__(
        self,
        kind: RecordKind,
        index: int,
        record_id: Optional[str],
        errors: list[dict],
    ):
        self.kind = kind
        self.index = index
        self.record_id = record_id
        self.errors = errors
        fields = sorted({".".join(str(p) for p in e.get("loc", ())) for e in errors})
        located = f"{kind.value} record #{index}"
        if record_id:
            located += f" (id={record_id})"
        super().__init__(f"Malformed {located}: invalid or missing {', '.join(fields) or 'fields'}")


R = TypeVar("R", bound=_Record)


def parse_records(
    raw: Iterable[Union[dict, BaseModel]],
    kind: RecordKind,
) -> list:
    """
    Validate a collection of raw records into typed, immutable models.

    Already-typed records of the right model pass through unchanged. The
    first invalid record aborts the whole batch.

    Args:
        raw: Dicts or record models
        kind: Record kind, selects the model

    Returns:
        List of validated record models, in input order

    Raises:
        MalformedRecordError: On the first record failing validation
    """
    model = RECORD_MODELS[kind]
    parsed = []
    for index, item in enumerate(raw):
        if isinstance(item, model):
            parsed.append(item)
            continue
        payload: Any = item.model_dump() if isinstance(item, BaseModel) else item
        try:
            parsed.append(model.model_validate(payload))
        except ValidationError as e:
            record_id = _extract_id(payload)
            logger.error(
                "malformed_record",
                kind=kind.value,
                index=index,
                record_id=record_id,
                error_count=e.error_count(),
            )
            raise MalformedRecordError(
                kind=kind,
                index=index,
                record_id=record_id,
                errors=e.errors(include_url=False, include_input=False),
            ) from e
    return parsed


def _extract_id(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for key in ("record_id", "id", "invoiceId", "transactionId", "eventId"):
        if payload.get(key) is not None:
            return str(payload[key])
    return None


def by_timestamp(records: Sequence[R]) -> list[R]:
    """Records sorted chronologically (stable for equal timestamps)."""
    return sorted(records, key=lambda r: r.timestamp)
