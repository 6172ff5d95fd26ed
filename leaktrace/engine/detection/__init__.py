"""
Anomaly detection for daily billing metrics.

Detection Layers:
    Drift: baseline vs recent-window anomaly rate (drift factor, z-score tier)
    Scan: per-day z-score outliers against the series' own mean

Example:
    >>> from leaktrace.engine.detection import DriftDetector
    >>> drift = DriftDetector().detect_records(invoices, baseline_end="2026-02-10")
"""

from .drift import DriftDetector, event_boundary
from .statistical import ZScoreScanner

__all__ = ["DriftDetector", "ZScoreScanner", "event_boundary"]
