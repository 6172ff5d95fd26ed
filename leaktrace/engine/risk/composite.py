"""
Composite Risk Scoring.

Weighted, normalized, bounded risk score for one entity.

Components:
    anomaly_rate  = anomalous records / all records
                    normalized = min(anomaly_rate * 2, 1)
    loss_ratio    = total underbilled amount / total expected amount
                    normalized = min(loss_ratio * 10, 1)
    recency       = days since the most recent deployment at or before the
                    analysis instant
                    normalized = exp(-days / 7), 0 when there is none

    score = 0.40 * anomaly_rate + 0.35 * loss_ratio + 0.25 * recency

Category:
    > 0.8  CRITICAL
    > 0.6  HIGH
    > 0.3  MEDIUM
    else   LOW

Each component is reported with its raw value, normalized value, weight and
contribution so the score can be audited term by term.

Version: composite_risk_v1
"""

import math
from datetime import datetime
from typing import Optional, Sequence

import structlog

from leaktrace.engine.parameters import RiskParameters
from leaktrace.engine.statistics import clamp
from leaktrace.models.analysis import RiskComponent, RiskScore
from leaktrace.models.enums import RiskCategory
from leaktrace.models.records import BillingRecord, TriggeringEvent, to_utc

logger = structlog.get_logger()


class CompositeRiskScorer:
    """
    Computes the composite risk score of an entity.

    Weights are validated to sum to 1.0 when the RiskParameters are built,
    so a scorer can never be constructed with unbalanced weights.

    Example:
        >>> scorer = CompositeRiskScorer()
        >>> risk = scorer.score(invoices, events, analysis_instant=now)
        >>> print(risk.category.value, round(risk.score, 3))
    """

    def __init__(self, params: Optional[RiskParameters] = None):
        self.params = params or RiskParameters()
        self.logger = structlog.get_logger()

    def score(
        self,
        records: Sequence[BillingRecord],
        events: Sequence[TriggeringEvent],
        analysis_instant: datetime,
        event_kind: str = "deployment",
    ) -> RiskScore:
        """
        Score an entity's risk as of ``analysis_instant``.

        Args:
            records: The entity's billing records
            events: The entity's triggering events
            analysis_instant: Instant the recency term is measured from
            event_kind: Event kind counted for recency

        Returns:
            RiskScore with per-component breakdown
        """
        p = self.params
        instant = to_utc(analysis_instant)

        total = len(records)
        anomaly_rate = sum(1 for r in records if r.is_anomalous) / total if total else 0.0
        expected = sum(r.expected_amount for r in records)
        loss_ratio = sum(r.loss for r in records) / expected if expected > 0 else 0.0

        days_since = self._days_since_latest(events, instant, event_kind)
        recency = math.exp(-days_since / p.decay_constant_days) if days_since is not None else 0.0

        components = {
            "anomaly_rate": self._component(
                anomaly_rate, min(anomaly_rate * p.anomaly_rate_scale, 1.0), p.anomaly_rate_weight
            ),
            "loss_ratio": self._component(
                loss_ratio, min(loss_ratio * p.loss_ratio_scale, 1.0), p.loss_ratio_weight
            ),
            "recency": self._component(days_since, recency, p.recency_weight),
        }
        score = clamp(sum(c.contribution for c in components.values()), 0.0, 1.0)

        result = RiskScore(score=score, category=self.categorize(score), components=components)

        self.logger.debug(
            "risk_scored",
            score=round(score, 4),
            category=result.category.value,
            anomaly_rate=round(anomaly_rate, 4),
            loss_ratio=round(loss_ratio, 4),
            days_since_event=days_since,
        )
        return result

    def categorize(self, score: float) -> RiskCategory:
        """Map a risk score to its severity category."""
        if score > self.params.critical_above:
            return RiskCategory.CRITICAL
        if score > self.params.high_above:
            return RiskCategory.HIGH
        if score > self.params.medium_above:
            return RiskCategory.MEDIUM
        return RiskCategory.LOW

    @staticmethod
    def _component(raw: Optional[float], normalized: float, weight: float) -> RiskComponent:
        normalized = clamp(normalized, 0.0, 1.0)
        return RiskComponent(
            raw=raw,
            normalized=normalized,
            weight=weight,
            contribution=normalized * weight,
        )

    @staticmethod
    def _days_since_latest(
        events: Sequence[TriggeringEvent],
        instant: datetime,
        event_kind: str,
    ) -> Optional[float]:
        past = [e.timestamp for e in events if e.event_kind == event_kind and e.timestamp <= instant]
        if not past:
            return None
        return max(0.0, (instant - max(past)).total_seconds() / 86400.0)
