"""
Event Attribution Scoring.

Scores how confidently a candidate triggering event (typically a deployment)
explains an observed shift in an entity's anomaly rate. The score combines
two signals:

    1. Temporal alignment between the event day and the spike onset day
    2. Impact delta: anomaly rate after the event minus the rate before it

Temporal score (delta = onset_day - event_day, in whole days):
    no onset           -> 0.0
    0 <= delta <= 1    -> 1.0    (onset on the event day or the day after)
    1 <  delta <= 3    -> 0.7
    delta < 0          -> -0.5   (the spike started before the event)
    otherwise          -> 0.0

    confidence = clamp(temporal * 0.6 + min(impact_delta * 5, 0.4), -1, 1)

Classification:
    >= 0.7  STRONG_CAUSAL_LINK
    >= 0.3  MODERATE_CORRELATION
    >= 0.0  WEAK_SIGNAL
    else    INVERSE_CORRELATION

The step function and coefficients are heuristics; they are configurable via
AttributionParameters and the defaults are kept fixed so historical scores
stay comparable.

A Welch's t-test on per-invoice underbilling percentage before vs after the
event is reported as ``distribution_shift``. It is supporting evidence only
and never changes the confidence.

Version: event_attribution_v1
"""

from datetime import date
from typing import Optional, Sequence

import structlog

from leaktrace.engine.detection.drift import Boundary, DriftDetector
from leaktrace.engine.parameters import AttributionParameters, DriftParameters
from leaktrace.engine.statistics import clamp, welch_t_test
from leaktrace.models.analysis import AttributionScore, DriftResult
from leaktrace.models.enums import AttributionClass
from leaktrace.models.records import BillingRecord, TriggeringEvent

logger = structlog.get_logger()


def _anomaly_fraction(records: Sequence[BillingRecord]) -> float:
    if not records:
        return 0.0
    return sum(1 for r in records if r.is_anomalous) / len(records)


class EventAttributionScorer:
    """
    Confidence scorer for candidate triggering events.

    Attributes:
        params: Attribution parameters (step function, weights, break points)
        detector: Drift detector used to locate the spike onset

    Example:
        >>> scorer = EventAttributionScorer()
        >>> score = scorer.score(invoices, deployment, baseline_end="2026-02-10")
        >>> print(score.classification.value, round(score.confidence, 3))
        STRONG_CAUSAL_LINK 1.0
    """

    def __init__(
        self,
        params: Optional[AttributionParameters] = None,
        drift_params: Optional[DriftParameters] = None,
    ):
        """
        Initialize the attribution scorer.

        Args:
            params: Attribution parameters
            drift_params: Parameters of the internal drift detector
        """
        self.params = params or AttributionParameters()
        self.detector = DriftDetector(drift_params)
        self.logger = structlog.get_logger()

    def score(
        self,
        records: Sequence[BillingRecord],
        event: TriggeringEvent,
        baseline_end: Boundary = None,
        drift: Optional[DriftResult] = None,
    ) -> AttributionScore:
        """
        Score one candidate event against the entity's billing records.

        Args:
            records: The entity's billing records
            event: Candidate triggering event
            baseline_end: Baseline boundary for the internal drift run
            drift: Precomputed drift result for the same records and
                boundary (skips the internal drift run)

        Returns:
            AttributionScore with confidence in [-1, 1]
        """
        before = [r for r in records if r.timestamp < event.timestamp]
        after = [r for r in records if r.timestamp >= event.timestamp]
        rate_before = _anomaly_fraction(before)
        rate_after = _anomaly_fraction(after)

        if drift is None:
            drift = self.detector.detect_records(records, baseline_end=baseline_end)
        onset = self.detector.find_onset(drift.daily_series)

        temporal = self.temporal_score(onset, event)
        impact_delta = rate_after - rate_before
        confidence = self.confidence(temporal, impact_delta)

        shift = welch_t_test(
            [r.underbilling_pct for r in before],
            [r.underbilling_pct for r in after],
            threshold=self.params.shift_t_threshold,
        )

        result = AttributionScore(
            confidence=confidence,
            classification=self.classify(confidence),
            temporal_score=temporal,
            rate_before=rate_before,
            rate_after=rate_after,
            impact_delta=impact_delta,
            spike_onset=onset,
            event_id=event.record_id,
            version=event.version_label,
            event_timestamp=event.timestamp,
            distribution_shift=shift,
        )

        self.logger.debug(
            "event_scored",
            event_id=event.record_id,
            version=event.version_label,
            spike_onset=onset,
            temporal_score=temporal,
            impact_delta=round(impact_delta, 4),
            confidence=round(confidence, 4),
            classification=result.classification.value,
        )
        return result

    def score_candidates(
        self,
        records: Sequence[BillingRecord],
        events: Sequence[TriggeringEvent],
        baseline_end: Boundary = None,
        event_kind: str = "deployment",
    ) -> list[AttributionScore]:
        """
        Score every candidate event of ``event_kind`` and rank them.

        The drift run is shared between candidates, since it depends only on
        the records and the boundary.

        Returns:
            Scores sorted by confidence descending; equal confidence puts
            the most recent event first
        """
        candidates = [e for e in events if e.event_kind == event_kind]
        if not candidates:
            self.logger.info("no_candidate_events", event_kind=event_kind)
            return []

        drift = self.detector.detect_records(records, baseline_end=baseline_end)
        scores = [self.score(records, e, drift=drift) for e in candidates]
        scores.sort(key=lambda s: (s.confidence, s.event_timestamp), reverse=True)
        return scores

    def temporal_score(self, onset: Optional[str], event: TriggeringEvent) -> float:
        """Step-function score of the onset/event alignment."""
        if onset is None:
            return 0.0
        delta = (date.fromisoformat(onset) - event.timestamp.date()).days
        if 0 <= delta <= self.params.tight_window_days:
            return self.params.tight_score
        if self.params.tight_window_days < delta <= self.params.near_window_days:
            return self.params.near_score
        if delta < 0:
            return self.params.inversion_score
        return 0.0

    def confidence(self, temporal: float, impact_delta: float) -> float:
        """Combine temporal score and impact delta into a bounded confidence."""
        raw = temporal * self.params.temporal_weight + min(
            impact_delta * self.params.impact_multiplier, self.params.impact_cap
        )
        return clamp(raw, -1.0, 1.0)

    def classify(self, confidence: float) -> AttributionClass:
        """Map a confidence value to its attribution class."""
        if confidence >= self.params.strong_threshold:
            return AttributionClass.STRONG_CAUSAL_LINK
        if confidence >= self.params.moderate_threshold:
            return AttributionClass.MODERATE_CORRELATION
        if confidence >= self.params.weak_threshold:
            return AttributionClass.WEAK_SIGNAL
        return AttributionClass.INVERSE_CORRELATION
