"""
Enumeration types for the LeakTrace inference pipeline.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class SignificanceTier(str, Enum):
    """
    Statistical significance of a drift z-score.

    Tiers are ordered: NOISE < MODERATE < HIGH_SIGNAL.
    """

    NOISE = "NOISE"
    MODERATE = "MODERATE"
    HIGH_SIGNAL = "HIGH_SIGNAL"


class CorrelationStrength(str, Enum):
    """Monotone bucket of |r| for a Pearson correlation."""

    NEGLIGIBLE = "NEGLIGIBLE"
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"


class AttributionClass(str, Enum):
    """
    Qualitative classification of an event attribution confidence.

    Derived deterministically from the confidence value; never set directly.
    """

    STRONG_CAUSAL_LINK = "STRONG_CAUSAL_LINK"
    MODERATE_CORRELATION = "MODERATE_CORRELATION"
    WEAK_SIGNAL = "WEAK_SIGNAL"
    INVERSE_CORRELATION = "INVERSE_CORRELATION"


class RiskCategory(str, Enum):
    """Severity category of a composite risk score."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Verdict(str, Enum):
    """Final verdict of an investigation."""

    CAUSAL_LINK_CONFIRMED = "CAUSAL_LINK_CONFIRMED"
    ANOMALY_DETECTED_UNCLEAR_CAUSE = "ANOMALY_DETECTED_UNCLEAR_CAUSE"


class AlertType(str, Enum):
    """Threshold alert families."""

    ANOMALY_SPIKE = "ANOMALY_SPIKE"
    STATISTICAL_DRIFT = "STATISTICAL_DRIFT"
    REVENUE_LOSS = "REVENUE_LOSS"


class Direction(str, Enum):
    """Direction of a per-day z-score outlier."""

    ABOVE_NORMAL = "ABOVE_NORMAL"
    BELOW_NORMAL = "BELOW_NORMAL"


class RecordKind(str, Enum):
    """Kinds of input records accepted by the pipeline."""

    BILLING = "billing"
    EVENT = "event"
    TRANSACTION = "transaction"
    CHURN = "churn"
