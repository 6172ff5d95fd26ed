"""LeakTrace: statistical attribution of billing anomalies to triggering events."""

__version__ = "0.1.0"
