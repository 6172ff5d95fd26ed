"""
Result models for the LeakTrace statistical pipeline.

Every computation step produces one of these frozen models. Each has a fixed,
total field set: the absence of a signal is an explicit neutral value
(``0.0``, ``False``, ``None``) rather than a missing key.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import (
    AlertType,
    AttributionClass,
    CorrelationStrength,
    Direction,
    RiskCategory,
    SignificanceTier,
)


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)


class DailyBucket(_Result):
    """
    Aggregated billing counts and sums for one UTC calendar day.

    Attributes:
        day: Calendar day as YYYY-MM-DD
        total: Number of records on this day
        anomalies: Number of anomalous (underbilled) records
        expected: Sum of expected amounts
        loss: Sum of underbilled amounts
    """

    day: str
    total: int = Field(ge=0)
    anomalies: int = Field(ge=0)
    expected: float = 0.0
    loss: float = 0.0

    @property
    def anomaly_rate(self) -> float:
        return self.anomalies / self.total if self.total else 0.0


class DailyDrift(_Result):
    """Per-day anomaly rate and drift factor against the baseline rate."""

    day: str
    total: int = Field(ge=0)
    anomalies: int = Field(ge=0)
    anomaly_rate: float = Field(ge=0.0, le=1.0)
    drift_factor: float = Field(ge=0.0)


class DriftResult(_Result):
    """
    Baseline vs recent-window drift for one metric.

    ``drift_factor`` is ``current_rate / baseline_rate`` when the baseline
    rate is positive and ``0`` otherwise (no baseline, no claim).
    """

    baseline_rate: float = Field(ge=0.0, le=1.0)
    current_rate: float = Field(ge=0.0, le=1.0)
    drift_factor: float = Field(ge=0.0)
    std_dev: float = Field(ge=0.0)
    z_score: float
    significance_tier: SignificanceTier
    is_spike: bool
    threshold: float
    baseline_end: Optional[str] = Field(
        default=None, description="First day excluded from the baseline (YYYY-MM-DD)"
    )
    baseline_days: int = Field(default=0, ge=0)
    recent_days: list[str] = Field(default_factory=list)
    daily_series: list[DailyDrift] = Field(default_factory=list)


class LagCorrelation(_Result):
    """Best-lag Pearson correlation between two daily signals."""

    lag: int = Field(ge=0)
    r: float = Field(ge=-1.0, le=1.0)
    strength: CorrelationStrength
    samples: int = Field(default=0, ge=0)


class WelchResult(_Result):
    """Two-sample Welch's t-test outcome."""

    t: float = 0.0
    significant: bool = False
    degrees_of_freedom: float = 0.0
    p_value: float = Field(default=1.0, ge=0.0, le=1.0)


class AttributionScore(_Result):
    """
    Confidence that a candidate event caused the observed anomaly shift.

    ``classification`` is derived from ``confidence`` using fixed break
    points; see EventAttributionScorer.
    """

    confidence: float = Field(ge=-1.0, le=1.0)
    classification: AttributionClass
    temporal_score: float
    rate_before: float = Field(ge=0.0, le=1.0)
    rate_after: float = Field(ge=0.0, le=1.0)
    impact_delta: float
    spike_onset: Optional[str] = None
    event_id: Optional[str] = None
    version: Optional[str] = None
    event_timestamp: Optional[datetime] = None
    distribution_shift: WelchResult = Field(default_factory=WelchResult)


class RiskComponent(_Result):
    """One auditable input of the composite risk score."""

    raw: Optional[float] = Field(
        description="Un-normalized input (None when the signal is absent)"
    )
    normalized: float = Field(ge=0.0, le=1.0)
    weight: float = Field(ge=0.0, le=1.0)
    contribution: float = Field(ge=0.0, le=1.0)


class RiskScore(_Result):
    """Composite risk score; ``score`` is the sum of component contributions."""

    score: float = Field(ge=0.0, le=1.0)
    category: RiskCategory
    components: dict[str, RiskComponent]


class ImpactProjection(_Result):
    """
    Observed loss and its projections under fixed multiplicative models.

    The conservative projection is reported separately from the plain
    projections and every assumption behind it is listed by name.
    """

    observed_loss: float = 0.0
    avg_daily_loss: float = 0.0
    observed_days: int = Field(default=0, ge=0)
    monthly_projection: float = 0.0
    annualized_projection: float = 0.0
    churned_value: Optional[float] = None
    churn_ripple_multiplier: float = 0.0
    conservative_projection: float = 0.0
    assumptions: list[str] = Field(default_factory=list)


class ZScoreAnomaly(_Result):
    """A day whose metric value deviates beyond the z threshold."""

    day: str
    metric: str
    value: float
    mean: float
    stddev: float
    z_score: float
    direction: Direction


class Alert(_Result):
    """Threshold alert raised for one entity."""

    alert_id: str
    alert_type: AlertType
    severity: RiskCategory
    entity_id: str
    message: str
    metric: float
    threshold: float
