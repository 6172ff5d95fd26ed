"""
Investigation Orchestrator: core pipeline.

Primary entry point of the LeakTrace inference pipeline. Runs six fixed
stages over a snapshot of an entity's records and returns an immutable
Investigation with its reasoning trace:

1. detect       Drift of the daily anomaly rate, spike onset, z-score outlier days
2. investigate  Score every deployment of the entity, select the culprit
3. correlate    Secondary signals since onset and the lag-searched correlation chain
                deployment -> anomaly rate -> failed transactions -> churn value
4. quantify     Observed loss, projections, loss by region and composite risk
5. decide       Verdict and recommended actions
6. explain      Templated natural-language summary

The orchestrator is a pure function of its inputs and an explicit analysis
instant. It never reads the system clock; records stamped after the
analysis instant are ignored, so the same snapshot and instant always give
the same Investigation.

Version: investigation_pipeline_v1
"""

from collections import defaultdict
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Optional, Sequence

import structlog

from leaktrace.engine.aggregation import (
    billing_vectors,
    bucket_billing,
    day_key,
    event_indicator,
    observed_span,
    signal_counts,
    signal_values,
)
from leaktrace.engine.detection.drift import Boundary, DriftDetector, event_boundary
from leaktrace.engine.detection.statistical import ZScoreScanner
from leaktrace.engine.impact.projector import ImpactProjector
from leaktrace.engine.parameters import DEFAULT_CONFIG, AnalysisConfig
from leaktrace.engine.rca.attribution import EventAttributionScorer
from leaktrace.engine.rca.explainer import InvestigationExplainer
from leaktrace.engine.rca.temporal_correlation import CorrelationEngine
from leaktrace.engine.risk.composite import CompositeRiskScorer
from leaktrace.models.analysis import AttributionScore
from leaktrace.models.enums import RecordKind, Verdict
from leaktrace.models.investigation import Investigation, ReasoningStep, SecondarySignals
from leaktrace.models.records import (
    BillingRecord,
    SignalRecord,
    TriggeringEvent,
    by_timestamp,
    parse_records,
    to_utc,
)

logger = structlog.get_logger()


def end_of_last_observed_day(*collections: Sequence) -> Optional[datetime]:
    """Last instant (UTC) of the latest day any record was observed on."""
    days = [day_key(r.timestamp) for records in collections for r in records]
    if not days:
        return None
    last = date.fromisoformat(max(days))
    return datetime.combine(last, time.max, tzinfo=timezone.utc)


class InvestigationOrchestrator:
    """
    Runs the six-stage investigation pipeline for one entity.

    All sub-components are built from a single AnalysisConfig unless
    injected explicitly.

    Attributes:
        config: Analysis parameters shared by every stage
        detector: Drift detector
        scanner: Z-score outlier scanner
        scorer: Event attribution scorer
        correlator: Best-lag correlation engine
        risk_scorer: Composite risk scorer
        projector: Impact projector
        explainer: Summary and action generator

    Example:
        >>> orchestrator = InvestigationOrchestrator()
        >>> investigation = orchestrator.investigate(
        ...     "billing-service",
        ...     billing=invoices,
        ...     events=system_events,
        ...     transactions=transactions,
        ...     churn=churn_events,
        ...     analysis_instant=datetime(2026, 2, 16, 23, 59, tzinfo=timezone.utc),
        ...     baseline_end="2026-02-10",
        ... )
        >>> print(investigation.verdict.value, investigation.culprit.version)
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        detector: Optional[DriftDetector] = None,
        scanner: Optional[ZScoreScanner] = None,
        scorer: Optional[EventAttributionScorer] = None,
        correlator: Optional[CorrelationEngine] = None,
        risk_scorer: Optional[CompositeRiskScorer] = None,
        projector: Optional[ImpactProjector] = None,
        explainer: Optional[InvestigationExplainer] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.detector = detector or DriftDetector(self.config.drift)
        self.scanner = scanner or ZScoreScanner(self.config.scan)
        self.scorer = scorer or EventAttributionScorer(self.config.attribution, self.config.drift)
        self.correlator = correlator or CorrelationEngine(self.config.correlation)
        self.risk_scorer = risk_scorer or CompositeRiskScorer(self.config.risk)
        self.projector = projector or ImpactProjector(self.config.impact)
        self.explainer = explainer or InvestigationExplainer()
        self.logger = structlog.get_logger()

    def investigate(
        self,
        entity: str,
        billing: Iterable,
        events: Iterable = (),
        transactions: Iterable = (),
        churn: Iterable = (),
        *,
        analysis_instant: datetime,
        baseline_end: Boundary = None,
    ) -> Investigation:
        """
        Run the full pipeline for ``entity``.

        Args:
            entity: Entity to investigate
            billing: Billing records (dicts or BillingRecord)
            events: Triggering events (dicts or TriggeringEvent)
            transactions: Transaction signals (dicts or SignalRecord)
            churn: Churn signals (dicts or SignalRecord)
            analysis_instant: Instant the analysis is evaluated at
            baseline_end: First day excluded from the drift baseline;
                defaults to the day of the latest candidate event at or
                before the instant, then to the first day of the recent window

        Returns:
            Immutable Investigation with six reasoning steps

        Raises:
            MalformedRecordError: If any raw record fails validation
        """
        instant = to_utc(analysis_instant)
        kind = self.config.orchestration.event_kind
        failure_status = self.config.orchestration.failure_status

        invoices = self._scope(parse_records(billing, RecordKind.BILLING), entity, instant)
        deploys = self._scope(parse_records(events, RecordKind.EVENT), entity, instant)
        txns = self._scope(parse_records(transactions, RecordKind.TRANSACTION), entity, instant)
        churned = self._scope(parse_records(churn, RecordKind.CHURN), entity, instant)

        if baseline_end is None:
            baseline_end = event_boundary(deploys, kind, instant)

        self.logger.info(
            "investigation_started",
            entity=entity,
            analysis_instant=instant.isoformat(),
            baseline_end=str(baseline_end) if baseline_end is not None else None,
            invoices=len(invoices),
            events=len(deploys),
            transactions=len(txns),
            churn_events=len(churned),
        )

        steps: list[ReasoningStep] = []

        # 1. detect
        drift = self.detector.detect_records(invoices, baseline_end=baseline_end)
        onset = self.detector.find_onset(drift.daily_series)
        outliers = self.scanner.scan_billing(invoices)
        steps.append(
            ReasoningStep(
                step="detect",
                evidence={
                    "drift_factor": drift.drift_factor,
                    "baseline_rate": drift.baseline_rate,
                    "current_rate": drift.current_rate,
                    "z_score": drift.z_score,
                    "significance_tier": drift.significance_tier.value,
                    "is_spike": drift.is_spike,
                    "baseline_end": drift.baseline_end,
                    "baseline_days": drift.baseline_days,
                    "recent_days": drift.recent_days,
                    "spike_onset": onset,
                    "outlier_days": [
                        {
                            "day": o.day,
                            "metric": o.metric,
                            "z_score": o.z_score,
                            "direction": o.direction.value,
                        }
                        for o in outliers
                    ],
                },
            )
        )

        # 2. investigate
        candidates = self.scorer.score_candidates(
            invoices, deploys, baseline_end=drift.baseline_end, event_kind=kind
        )
        culprit = candidates[0] if candidates else None
        if culprit is not None:
            self.logger.info(
                "culprit_selected",
                entity=entity,
                version=culprit.version,
                confidence=round(culprit.confidence, 4),
                classification=culprit.classification.value,
            )
        else:
            self.logger.warning("no_candidate_event", entity=entity, event_kind=kind)
        steps.append(
            ReasoningStep(
                step="investigate",
                evidence={
                    "candidate_count": len(candidates),
                    "selected_culprit": culprit.version if culprit else None,
                    "causal_confidence": culprit.confidence if culprit else 0.0,
                    "classification": culprit.classification.value if culprit else None,
                    "candidates": [self._candidate_evidence(c) for c in candidates],
                },
            )
        )

        # 3. correlate
        window_start = culprit.spike_onset if culprit and culprit.spike_onset else onset
        signals = self._secondary_signals(txns, churned, window_start, failure_status)
        correlations = self._correlation_chain(invoices, deploys, txns, churned, kind, failure_status)
        steps.append(
            ReasoningStep(
                step="correlate",
                evidence={
                    "window_start": window_start,
                    "failed_transactions": signals.failed_transactions,
                    "churn_events": signals.churn_events,
                    "churned_value": signals.churned_value,
                    "correlation_chain": {
                        hop: {"lag": c.lag, "r": c.r, "strength": c.strength.value}
                        for hop, c in correlations.items()
                    },
                },
            )
        )

        # 4. quantify
        observed_loss = sum(r.loss for r in invoices)
        avg_daily_loss, loss_days = self._average_daily_loss(invoices, window_start)
        impact = self.projector.project(
            observed_loss=observed_loss,
            avg_daily_loss=avg_daily_loss,
            observed_days=loss_days,
            churned_value=signals.churned_value if churned else None,
        )
        risk = self.risk_scorer.score(invoices, deploys, instant, event_kind=kind)
        steps.append(
            ReasoningStep(
                step="quantify",
                evidence={
                    "observed_loss": impact.observed_loss,
                    "avg_daily_loss": impact.avg_daily_loss,
                    "averaged_over_days": loss_days,
                    "averaged_from": window_start,
                    "monthly_projection": impact.monthly_projection,
                    "annualized_projection": impact.annualized_projection,
                    "conservative_projection": impact.conservative_projection,
                    "loss_by_region": self._loss_by_region(invoices),
                    "risk_score": risk.score,
                    "risk_category": risk.category.value,
                },
            )
        )

        # 5. decide
        verdict = self._decide(culprit)
        confidence = culprit.confidence if culprit else 0.0
        actions = self.explainer.recommend(verdict, culprit, onset=window_start)
        steps.append(
            ReasoningStep(
                step="decide",
                evidence={
                    "verdict": verdict.value,
                    "confidence": confidence,
                    "confidence_threshold": self.config.orchestration.verdict_confidence,
                    "recommended_actions": actions,
                },
            )
        )

        # 6. explain
        summary = self.explainer.summarize(entity, drift, culprit, impact, signals, onset=window_start)
        steps.append(ReasoningStep(step="explain", evidence={"summary": summary}))

        investigation = Investigation(
            investigation_id=f"inv_{entity}_{instant:%Y%m%dT%H%M%S}",
            entity=entity,
            analysis_instant=instant,
            reasoning_steps=steps,
            verdict=verdict,
            confidence=confidence,
            drift=drift,
            culprit=culprit,
            candidates=candidates,
            correlations=correlations,
            secondary_signals=signals,
            risk=risk,
            impact=impact,
            recommended_actions=actions,
            summary=summary,
        )

        self.logger.info(
            "investigation_complete",
            investigation_id=investigation.investigation_id,
            verdict=verdict.value,
            confidence=round(confidence, 4),
            drift_factor=round(drift.drift_factor, 4),
            risk_category=risk.category.value,
        )
        return investigation

    # =========================================================================
    # Private Methods
    # =========================================================================

    @staticmethod
    def _scope(records: list, entity: str, instant: datetime) -> list:
        """Records of ``entity`` observed at or before ``instant``, oldest first."""
        scoped = []
        for record in records:
            if record.timestamp > instant:
                continue
            if isinstance(record, SignalRecord):
                if not record.applies_to(entity):
                    continue
            elif record.entity_id != entity:
                continue
            scoped.append(record)
        return by_timestamp(scoped)

    def _decide(self, culprit: Optional[AttributionScore]) -> Verdict:
        if culprit is not None and culprit.confidence > self.config.orchestration.verdict_confidence:
            return Verdict.CAUSAL_LINK_CONFIRMED
        return Verdict.ANOMALY_DETECTED_UNCLEAR_CAUSE

    @staticmethod
    def _candidate_evidence(score: AttributionScore) -> dict[str, Any]:
        return {
            "event_id": score.event_id,
            "version": score.version,
            "event_timestamp": score.event_timestamp.isoformat() if score.event_timestamp else None,
            "confidence": score.confidence,
            "classification": score.classification.value,
            "temporal_score": score.temporal_score,
            "impact_delta": score.impact_delta,
            "distribution_shift_t": score.distribution_shift.t,
            "distribution_shift_significant": score.distribution_shift.significant,
        }

    @staticmethod
    def _secondary_signals(
        transactions: Sequence[SignalRecord],
        churn: Sequence[SignalRecord],
        window_start: Optional[str],
        failure_status: str,
    ) -> SecondarySignals:
        if window_start is None:
            return SecondarySignals()
        failed = [
            t for t in transactions
            if t.status == failure_status and day_key(t.timestamp) >= window_start
        ]
        churned = [c for c in churn if day_key(c.timestamp) >= window_start]
        return SecondarySignals(
            window_start=window_start,
            failed_transactions=len(failed),
            churn_events=len(churned),
            churned_value=sum(c.value for c in churned),
        )

    def _correlation_chain(
        self,
        invoices: Sequence[BillingRecord],
        events: Sequence[TriggeringEvent],
        transactions: Sequence[SignalRecord],
        churn: Sequence[SignalRecord],
        kind: str,
        failure_status: str,
    ) -> dict:
        days = observed_span(invoices, events, transactions, churn)
        rates = billing_vectors(invoices, days)["anomaly_rate"]
        failures = signal_counts(transactions, days, lambda t: t.status == failure_status)
        return self.correlator.correlate_pairs(
            {
                "deployment->anomaly_rate": (event_indicator(events, days, kind), rates),
                "anomaly_rate->failed_transactions": (rates, failures),
                "failed_transactions->churn_value": (failures, signal_values(churn, days)),
            }
        )

    @staticmethod
    def _average_daily_loss(
        invoices: Sequence[BillingRecord],
        window_start: Optional[str],
    ) -> tuple[float, int]:
        """Mean daily loss over post-onset observed days, else over all observed days."""
        buckets = bucket_billing(invoices)
        if window_start is not None:
            post = [b for b in buckets if b.day >= window_start]
            if post:
                buckets = post
        if not buckets:
            return 0.0, 0
        return sum(b.loss for b in buckets) / len(buckets), len(buckets)

    @staticmethod
    def _loss_by_region(invoices: Sequence[BillingRecord]) -> dict[str, float]:
        totals: dict[str, float] = defaultdict(float)
        for record in invoices:
            if record.is_anomalous:
                totals[record.region or "unknown"] += record.loss
        return dict(sorted(totals.items()))

