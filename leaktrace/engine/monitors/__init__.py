"""
Threshold monitoring.

Components:
    AlertEvaluator: Raises anomaly-spike, drift and revenue-loss alerts per entity

Example:
    >>> from leaktrace.engine.monitors import AlertEvaluator
    >>> alerts = AlertEvaluator().evaluate_all(invoices)
"""

from .alert_evaluator import AlertEvaluator, sort_alerts

__all__ = ["AlertEvaluator", "sort_alerts"]
