"""
Analysis parameters for the LeakTrace inference pipeline.

Every numeric constant used by the drift, correlation, attribution, risk,
impact and alerting formulas lives here. Components receive an
``AnalysisConfig`` (or one of its sections) at construction time; the
defaults are the production values.

The attribution step function (1.0 / 0.7 / -0.5 / 0) and the risk
normalization caps (x2, x10) are heuristics without a statistical
derivation. They are exposed as tunable parameters, not ground truth.

Version: analysis_params_v1
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DriftParameters(_Section):
    """Baseline vs recent window drift detection."""

    recent_window_days: int = Field(default=3, ge=1)
    spike_threshold: float = Field(default=3.0, gt=0.0)
    onset_threshold: float = Field(default=2.0, gt=0.0)
    high_signal_z: float = 3.0
    moderate_z: float = 2.0
    # Used when the baseline has at most one day (sqrt of 0.0001 variance)
    stddev_epsilon: float = Field(default=0.01, gt=0.0)

    @model_validator(mode="after")
    def _check_tiers(self) -> "DriftParameters":
        if self.moderate_z > self.high_signal_z:
            raise ValueError("moderate_z must not exceed high_signal_z")
        return self


class CorrelationParameters(_Section):
    """Lag search and strength buckets."""

    max_lag: int = Field(default=3, ge=0)
    strong: float = 0.7
    moderate: float = 0.4
    weak: float = 0.2


class AttributionParameters(_Section):
    """Temporal alignment + impact delta confidence heuristic."""

    tight_window_days: float = 1.0
    near_window_days: float = 3.0
    tight_score: float = 1.0
    near_score: float = 0.7
    inversion_score: float = -0.5
    temporal_weight: float = 0.6
    impact_multiplier: float = 5.0
    impact_cap: float = 0.4
    strong_threshold: float = 0.7
    moderate_threshold: float = 0.3
    weak_threshold: float = 0.0
    shift_t_threshold: float = 2.0


class RiskParameters(_Section):
    """Composite risk weights, normalization caps and category cut-offs."""

    anomaly_rate_weight: float = 0.4
    loss_ratio_weight: float = 0.35
    recency_weight: float = 0.25
    anomaly_rate_scale: float = 2.0
    loss_ratio_scale: float = 10.0
    decay_constant_days: float = Field(default=7.0, gt=0.0)
    critical_above: float = 0.8
    high_above: float = 0.6
    medium_above: float = 0.3

    @model_validator(mode="after")
    def _check_weights(self) -> "RiskParameters":
        total = self.anomaly_rate_weight + self.loss_ratio_weight + self.recency_weight
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Risk weights must sum to 1.0, got {total:.4f}")
        return self


class ImpactParameters(_Section):
    """Fixed multiplicative projection models."""

    monthly_days: int = 30
    annual_days: int = 365
    churn_ripple_multiplier: float = 1.5


class ScanParameters(_Section):
    """Per-day z-score outlier scan."""

    z_threshold: float = 2.0


class AlertParameters(_Section):
    """Threshold alerting per entity."""

    anomaly_rate: float = 0.10
    critical_anomaly_rate: float = 0.30
    drift_factor: float = 3.0
    revenue_loss: float = 500.0
    high_revenue_loss: float = 2000.0
    critical_revenue_loss: float = 5000.0


class OrchestrationParameters(_Section):
    """Verdict cut-off and record vocabulary used by the orchestrator."""

    verdict_confidence: float = 0.5
    event_kind: str = "deployment"
    failure_status: str = "FAILED"


class AnalysisConfig(_Section):
    """
    Single configuration structure passed into each pipeline component.

    Example:
        >>> config = AnalysisConfig(drift=DriftParameters(spike_threshold=2.5))
        >>> config.risk.recency_weight
        0.25
    """

    drift: DriftParameters = Field(default_factory=DriftParameters)
    correlation: CorrelationParameters = Field(default_factory=CorrelationParameters)
    attribution: AttributionParameters = Field(default_factory=AttributionParameters)
    risk: RiskParameters = Field(default_factory=RiskParameters)
    impact: ImpactParameters = Field(default_factory=ImpactParameters)
    scan: ScanParameters = Field(default_factory=ScanParameters)
    alerts: AlertParameters = Field(default_factory=AlertParameters)
    orchestration: OrchestrationParameters = Field(default_factory=OrchestrationParameters)


DEFAULT_CONFIG = AnalysisConfig()
