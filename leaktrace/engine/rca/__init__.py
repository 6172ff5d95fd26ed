"""
Root cause attribution for anomaly spikes.

This module exports the attribution components used by the investigation
pipeline:
- Best-lag Pearson correlation between daily signals
- Event attribution confidence scoring for candidate deployments
- Templated explanations and recommended actions

Example:
    >>> from leaktrace.engine.rca import EventAttributionScorer
    >>> scores = EventAttributionScorer().score_candidates(invoices, events)
    >>> print(f"Culprit: {scores[0].version} ({scores[0].classification.value})")
"""

from .attribution import EventAttributionScorer
from .explainer import InvestigationExplainer
from .temporal_correlation import CorrelationEngine

__all__ = [
    "CorrelationEngine",
    "EventAttributionScorer",
    "InvestigationExplainer",
]
