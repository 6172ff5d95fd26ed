"""Loss projection under fixed multiplicative models."""

from .projector import ImpactProjector

__all__ = ["ImpactProjector"]
