"""
Impact Projection.

Turns an observed loss into short, medium and long horizon projections using
fixed multiplicative models:

    monthly_projection     = avg_daily_loss * 30
    annualized_projection  = avg_daily_loss * 365
    conservative           = monthly_projection + churned_value * 1.5
                             (only when churn data is available)

When no average daily loss is supplied it is derived as
observed_loss / observed_days (0 when no day was observed).

These are linear extrapolations, not forecasts. Every assumption behind a
projection is listed by name in ``assumptions`` so a reader can see exactly
what was folded into each number.

Version: impact_projection_v1
"""

from typing import Optional

import structlog

from leaktrace.engine.parameters import ImpactParameters
from leaktrace.models.analysis import ImpactProjection

logger = structlog.get_logger()


class ImpactProjector:
    """
    Projects observed loss forward under fixed multiplicative models.

    Example:
        >>> projector = ImpactProjector()
        >>> impact = projector.project(observed_loss=840.0, observed_days=7)
        >>> impact.monthly_projection
        3600.0
    """

    def __init__(self, params: Optional[ImpactParameters] = None):
        self.params = params or ImpactParameters()
        self.logger = structlog.get_logger()

    def project(
        self,
        observed_loss: float,
        avg_daily_loss: Optional[float] = None,
        observed_days: int = 0,
        churned_value: Optional[float] = None,
    ) -> ImpactProjection:
        """
        Project an observed loss.

        Args:
            observed_loss: Total loss observed so far
            avg_daily_loss: Average loss per day; derived from
                ``observed_loss / observed_days`` when omitted
            observed_days: Number of days the loss was observed over
            churned_value: Value lost to churn, None when no churn data exists

        Returns:
            ImpactProjection with its named assumptions

        Raises:
            ValueError: If ``observed_days`` is negative
        """
        if observed_days < 0:
            raise ValueError(f"observed_days must be non-negative, got {observed_days}")

        p = self.params
        assumptions = []

        if avg_daily_loss is None:
            avg_daily_loss = observed_loss / observed_days if observed_days else 0.0
            assumptions.append(
                f"avg_daily_loss derived as observed_loss / observed_days ({observed_days} days)"
            )
        if observed_days == 0:
            self.logger.debug("impact_no_observed_days", observed_loss=observed_loss)

        monthly = avg_daily_loss * p.monthly_days
        annualized = avg_daily_loss * p.annual_days
        assumptions.append(f"loss rate constant at avg_daily_loss for {p.monthly_days} days (monthly)")
        assumptions.append(f"loss rate constant at avg_daily_loss for {p.annual_days} days (annualized)")

        if churned_value is not None:
            conservative = monthly + churned_value * p.churn_ripple_multiplier
            ripple = p.churn_ripple_multiplier
            assumptions.append(
                f"churned value amplified x{p.churn_ripple_multiplier} for downstream ripple "
                "(conservative)"
            )
        else:
            conservative = monthly
            ripple = 0.0
            assumptions.append("no churn data: conservative projection equals monthly projection")

        result = ImpactProjection(
            observed_loss=observed_loss,
            avg_daily_loss=avg_daily_loss,
            observed_days=observed_days,
            monthly_projection=monthly,
            annualized_projection=annualized,
            churned_value=churned_value,
            churn_ripple_multiplier=ripple,
            conservative_projection=conservative,
            assumptions=assumptions,
        )

        self.logger.debug(
            "impact_projected",
            observed_loss=round(observed_loss, 2),
            monthly=round(monthly, 2),
            annualized=round(annualized, 2),
            conservative=round(conservative, 2),
        )
        return result
