"""
Pydantic v2 data models for the LeakTrace pipeline.

Model Organization:
    - enums: Enumeration types for consistent classification
    - records: Input records (billing, triggering events, secondary signals)
    - analysis: Per-component result types (drift, correlation, attribution, risk, impact)
    - investigation: The terminal Investigation artifact and its reasoning trace

All result models are frozen: once a step produces a result it is never
mutated.
"""

from .analysis import (
    Alert,
    AttributionScore,
    DailyBucket,
    DailyDrift,
    DriftResult,
    ImpactProjection,
    LagCorrelation,
    RiskComponent,
    RiskScore,
    WelchResult,
    ZScoreAnomaly,
)
from .enums import (
    AlertType,
    AttributionClass,
    CorrelationStrength,
    Direction,
    RecordKind,
    RiskCategory,
    SignificanceTier,
    Verdict,
)
from .investigation import PIPELINE_STEPS, Investigation, ReasoningStep, SecondarySignals
from .records import (
    BillingRecord,
    MalformedRecordError,
    SignalRecord,
    TriggeringEvent,
    parse_records,
)

__all__ = [
    # Enums
    "AlertType",
    "AttributionClass",
    "CorrelationStrength",
    "Direction",
    "RecordKind",
    "RiskCategory",
    "SignificanceTier",
    "Verdict",
    # Records
    "BillingRecord",
    "TriggeringEvent",
    "SignalRecord",
    "MalformedRecordError",
    "parse_records",
    # Results
    "Alert",
    "AttributionScore",
    "DailyBucket",
    "DailyDrift",
    "DriftResult",
    "ImpactProjection",
    "LagCorrelation",
    "RiskComponent",
    "RiskScore",
    "WelchResult",
    "ZScoreAnomaly",
    # Investigation
    "PIPELINE_STEPS",
    "Investigation",
    "ReasoningStep",
    "SecondarySignals",
]
