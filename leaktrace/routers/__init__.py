"""API routers for all endpoints."""

from leaktrace.routers import alerts, analysis, investigations, system

__all__ = [
    "investigations",
    "analysis",
    "alerts",
    "system",
]
