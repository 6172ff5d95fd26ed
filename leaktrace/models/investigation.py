"""
Investigation models, the terminal artifact of the inference pipeline.

An Investigation is created once per orchestrator invocation and never
mutated afterwards. Ownership transfers fully to the caller, which decides
whether and where to store it.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .analysis import (
    AttributionScore,
    DriftResult,
    ImpactProjection,
    LagCorrelation,
    RiskScore,
)
from .enums import Verdict

PIPELINE_STEPS = ("detect", "investigate", "correlate", "quantify", "decide", "explain")


class ReasoningStep(BaseModel):
    """
    One entry of the reasoning trace.

    Attributes:
        step: Stage label (detect, investigate, correlate, quantify, decide, explain)
        evidence: JSON-serializable evidence gathered by the stage
    """

    model_config = ConfigDict(frozen=True)

    step: str
    evidence: dict[str, Any] = Field(default_factory=dict)


class SecondarySignals(BaseModel):
    """Secondary-signal occurrences at or after the spike onset."""

    model_config = ConfigDict(frozen=True)

    window_start: Optional[str] = None
    failed_transactions: int = Field(default=0, ge=0)
    churn_events: int = Field(default=0, ge=0)
    churned_value: float = 0.0


class Investigation(BaseModel):
    """
    Reproducible, evidence-backed explanation of an entity's anomaly.

    Attributes:
        investigation_id: Deterministic identifier (entity + analysis instant)
        entity: Target entity
        analysis_instant: Fixed instant the analysis is evaluated at
        reasoning_steps: Exactly six ordered pipeline steps
        verdict: Final verdict
        confidence: Culprit confidence, 0 when there is no culprit
        drift: Drift detection result
        culprit: Highest-confidence candidate event, if any
        candidates: All scored candidate events, best first
        correlations: Lag-searched correlation chain keyed by hop
        secondary_signals: Correlated secondary-signal counts
        risk: Composite risk score
        impact: Loss projection
        recommended_actions: Remediation or diagnostic actions
        summary: Natural-language summary templated from the fields above
    """

    model_config = ConfigDict(frozen=True)

    investigation_id: str
    entity: str
    analysis_instant: datetime
    reasoning_steps: list[ReasoningStep]
    verdict: Verdict
    confidence: float = Field(ge=-1.0, le=1.0)
    drift: DriftResult
    culprit: Optional[AttributionScore] = None
    candidates: list[AttributionScore] = Field(default_factory=list)
    correlations: dict[str, LagCorrelation] = Field(default_factory=dict)
    secondary_signals: SecondarySignals = Field(default_factory=SecondarySignals)
    risk: RiskScore
    impact: ImpactProjection
    recommended_actions: list[str] = Field(default_factory=list)
    summary: str = ""

    @field_validator("reasoning_steps")
    @classmethod
    def validate_steps(cls, v: list[ReasoningStep]) -> list[ReasoningStep]:
        """The trace must contain the six pipeline stages in order."""
        labels = tuple(step.step for step in v)
        if labels != PIPELINE_STEPS:
            raise ValueError(f"Reasoning steps must be {PIPELINE_STEPS}, got {labels}")
        return v
