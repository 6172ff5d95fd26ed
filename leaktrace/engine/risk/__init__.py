"""
Composite risk scoring.

Combines anomaly rate, loss ratio and deployment recency into a single
bounded score with a severity category.
"""

from .composite import CompositeRiskScorer

__all__ = ["CompositeRiskScorer"]
