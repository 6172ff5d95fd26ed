"""
Abstract record source interface for the LeakTrace pipeline.

The inference core never queries a store. It receives materialized record
collections; a RecordSource is the outer-shell component that produces them.
Implementations must return validated, immutable record models so the core
can consume them without re-validation.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field

from leaktrace.models.records import BillingRecord, SignalRecord, TriggeringEvent


class RecordSnapshot(BaseModel):
    """
    Materialized record collections for one point in time.

    Attributes:
        billing: Billing records (invoices)
        events: Triggering events (deployments, config changes, ...)
        transactions: Transaction signals
        churn: Churn signals
    """

    model_config = ConfigDict(frozen=True)

    billing: list[BillingRecord] = Field(default_factory=list)
    events: list[TriggeringEvent] = Field(default_factory=list)
    transactions: list[SignalRecord] = Field(default_factory=list)
    churn: list[SignalRecord] = Field(default_factory=list)

    def entities(self) -> list[str]:
        """Entities that have at least one billing record, sorted."""
        return sorted({r.entity_id for r in self.billing})

    def billing_for(self, entity_id: str) -> list[BillingRecord]:
        return [r for r in self.billing if r.entity_id == entity_id]

    def events_for(self, entity_id: str) -> list[TriggeringEvent]:
        return [e for e in self.events if e.entity_id == entity_id]


class RecordSource(ABC):
    """
    Abstract base class for record sources.

    Implementations should ensure:
    - Every returned record passed model validation
    - A missing collection is an empty list, never an error
    - Malformed records raise MalformedRecordError with their position
    """

    @abstractmethod
    def load_billing(self) -> list[BillingRecord]:
        """Load all billing records."""

    @abstractmethod
    def load_events(self) -> list[TriggeringEvent]:
        """Load all triggering events."""

    @abstractmethod
    def load_transactions(self) -> list[SignalRecord]:
        """Load all transaction signals."""

    @abstractmethod
    def load_churn(self) -> list[SignalRecord]:
        """Load all churn signals."""

    def load_snapshot(self) -> RecordSnapshot:
        """Load every collection into one snapshot."""
        return RecordSnapshot(
            billing=self.load_billing(),
            events=self.load_events(),
            transactions=self.load_transactions(),
            churn=self.load_churn(),
        )
