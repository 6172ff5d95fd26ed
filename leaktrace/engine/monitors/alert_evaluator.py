"""
Threshold Alert Evaluation.

Evaluates each entity's billing records against fixed thresholds and raises
alerts with a routed severity:

    ANOMALY_SPIKE      current anomaly rate > 10%     (CRITICAL above 30%, else HIGH)
    STATISTICAL_DRIFT  drift factor > 3.0             (CRITICAL)
    REVENUE_LOSS       cumulative loss > 500          (CRITICAL > 5000, HIGH > 2000,
                                                       else MEDIUM)

Alerts across entities are ordered by severity (CRITICAL first), then by
entity and alert type, so the same snapshot always yields the same list.

Version: alert_evaluator_v1
"""

from collections import defaultdict
from typing import Iterable, Optional, Sequence

import structlog

from leaktrace.engine.detection.drift import DriftDetector
from leaktrace.engine.parameters import AlertParameters, DriftParameters
from leaktrace.models.analysis import Alert, DriftResult
from leaktrace.models.enums import AlertType, RiskCategory
from leaktrace.models.records import BillingRecord

logger = structlog.get_logger()

SEVERITY_ORDER = {
    RiskCategory.CRITICAL: 0,
    RiskCategory.HIGH: 1,
    RiskCategory.MEDIUM: 2,
    RiskCategory.LOW: 3,
}


class AlertEvaluator:
    """
    Raises threshold alerts per entity.

    Attributes:
        params: Alert thresholds
        detector: Drift detector for the current rate and drift factor

    Example:
        >>> evaluator = AlertEvaluator()
        >>> for alert in evaluator.evaluate_all(invoices):
        ...     print(alert.severity.value, alert.message)
    """

    def __init__(
        self,
        params: Optional[AlertParameters] = None,
        drift_params: Optional[DriftParameters] = None,
    ):
        self.params = params or AlertParameters()
        self.detector = DriftDetector(drift_params)
        self.logger = structlog.get_logger()

    def evaluate(
        self,
        entity_id: str,
        records: Sequence[BillingRecord],
        drift: Optional[DriftResult] = None,
    ) -> list[Alert]:
        """
        Evaluate one entity's records against every alert threshold.

        Args:
            entity_id: Entity being evaluated
            records: The entity's billing records
            drift: Precomputed drift result (computed with the default
                boundary when omitted)

        Returns:
            Alerts raised for the entity, most severe first
        """
        p = self.params
        if drift is None:
            drift = self.detector.detect_records(records)

        alerts = []

        if drift.current_rate > p.anomaly_rate:
            severity = (
                RiskCategory.CRITICAL
                if drift.current_rate > p.critical_anomaly_rate
                else RiskCategory.HIGH
            )
            alerts.append(
                self._alert(
                    AlertType.ANOMALY_SPIKE,
                    severity,
                    entity_id,
                    f"{entity_id}: anomaly rate {drift.current_rate:.1%} exceeds "
                    f"{p.anomaly_rate:.0%} threshold",
                    drift.current_rate,
                    p.anomaly_rate,
                )
            )

        if drift.drift_factor > p.drift_factor:
            alerts.append(
                self._alert(
                    AlertType.STATISTICAL_DRIFT,
                    RiskCategory.CRITICAL,
                    entity_id,
                    f"{entity_id}: anomaly rate drifted {drift.drift_factor:.1f}x above baseline "
                    f"(z = {drift.z_score:.2f})",
                    drift.drift_factor,
                    p.drift_factor,
                )
            )

        total_loss = sum(r.loss for r in records)
        if total_loss > p.revenue_loss:
            if total_loss > p.critical_revenue_loss:
                severity = RiskCategory.CRITICAL
            elif total_loss > p.high_revenue_loss:
                severity = RiskCategory.HIGH
            else:
                severity = RiskCategory.MEDIUM
            alerts.append(
                self._alert(
                    AlertType.REVENUE_LOSS,
                    severity,
                    entity_id,
                    f"{entity_id}: cumulative revenue loss ${total_loss:,.2f}",
                    total_loss,
                    p.revenue_loss,
                )
            )

        if alerts:
            self.logger.info(
                "alerts_raised",
                entity_id=entity_id,
                alert_count=len(alerts),
                types=[a.alert_type.value for a in alerts],
            )
        return sort_alerts(alerts)

    def evaluate_all(self, records: Iterable[BillingRecord]) -> list[Alert]:
        """Evaluate every entity present in ``records``; alerts sorted by severity."""
        by_entity: dict[str, list[BillingRecord]] = defaultdict(list)
        for record in records:
            by_entity[record.entity_id].append(record)

        alerts = []
        for entity_id in sorted(by_entity):
            alerts.extend(self.evaluate(entity_id, by_entity[entity_id]))

        self.logger.info(
            "alert_evaluation_complete",
            entity_count=len(by_entity),
            alert_count=len(alerts),
            critical_count=sum(1 for a in alerts if a.severity == RiskCategory.CRITICAL),
        )
        return sort_alerts(alerts)

    @staticmethod
    def _alert(
        alert_type: AlertType,
        severity: RiskCategory,
        entity_id: str,
        message: str,
        metric: float,
        threshold: float,
    ) -> Alert:
        return Alert(
            alert_id=f"{alert_type.value.lower()}_{entity_id}",
            alert_type=alert_type,
            severity=severity,
            entity_id=entity_id,
            message=message,
            metric=metric,
            threshold=threshold,
        )


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Order alerts CRITICAL -> LOW, then by entity and alert type."""
    return sorted(
        alerts,
        key=lambda a: (SEVERITY_ORDER[a.severity], a.entity_id, a.alert_type.value),
    )
