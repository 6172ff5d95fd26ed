"""
LeakTrace statistical inference engine.

This package contains the analytical components of the investigation
pipeline:

- Statistics primitives: mean, stddev, z-score, (lagged) Pearson, Welch's t-test
- Aggregation: UTC daily buckets and aligned daily signal vectors
- Detection: baseline/recent drift and per-day z-score outliers
- Root cause analysis: best-lag correlation, event attribution, explanations
- Risk and impact: composite risk score and loss projections
- Monitors: threshold alerts per entity
- Orchestration: the six-stage investigation pipeline

All engine components are designed for:
- Determinism (pure functions of a snapshot and an explicit analysis instant)
- Observability (structured logging via structlog)
- Type safety (frozen Pydantic result models)
- Testability (parameters injected through AnalysisConfig)
"""

__version__ = "1.0.0"

__all__ = [
    "AnalysisConfig",
    "InvestigationOrchestrator",
]

from leaktrace.engine.orchestrator import InvestigationOrchestrator
from leaktrace.engine.parameters import AnalysisConfig
