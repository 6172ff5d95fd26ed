"""
Investigation Explainer: natural language summary generator.

Turns the structured results of an investigation (drift, culprit, onset,
impact and secondary signals) into a short narrative and the recommended
action list. Every sentence is templated from the structured fields, so the
text never states anything the evidence does not carry.

Summary structure:
1. Detection: drift factor, significance tier and spike onset
2. Attribution: culprit version, classification and confidence
3. Impact: observed loss and monthly projection
4. Secondary signals: failed transactions and churn since onset

Version: investigation_explainer_v1
"""

from typing import Optional

import structlog

from leaktrace.models.analysis import AttributionScore, DriftResult, ImpactProjection
from leaktrace.models.enums import AttributionClass, Verdict
from leaktrace.models.investigation import SecondarySignals

logger = structlog.get_logger()

CLASSIFICATION_PHRASES = {
    AttributionClass.STRONG_CAUSAL_LINK: "a strong causal link",
    AttributionClass.MODERATE_CORRELATION: "a moderate correlation",
    AttributionClass.WEAK_SIGNAL: "a weak signal",
    AttributionClass.INVERSE_CORRELATION: "an inverse correlation",
}

REMEDIATION_ACTIONS = (
    "Roll back {version} immediately",
    "Verify pricing lookup cache",
    "Reissue corrected invoices for underbilled accounts since {onset}",
)

DIAGNOSTIC_ACTIONS = (
    "Initiate cross-service telemetry audit",
    "Monitor transaction success rates",
)


class InvestigationExplainer:
    """
    Generates the summary and recommended actions of an investigation.

    Example:
        >>> explainer = InvestigationExplainer()
        >>> text = explainer.summarize("billing-service", drift, culprit, impact, signals)
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def summarize(
        self,
        entity: str,
        drift: DriftResult,
        culprit: Optional[AttributionScore],
        impact: ImpactProjection,
        signals: SecondarySignals,
        onset: Optional[str] = None,
    ) -> str:
        """
        Build the natural-language summary.

        Args:
            entity: Investigated entity
            drift: Drift detection result
            culprit: Selected culprit, if any
            impact: Loss projection
            signals: Secondary-signal counts since onset
            onset: Spike onset day used for the correlation window

        Returns:
            Summary text
        """
        parts = [self._detection_sentence(entity, drift, onset)]

        if culprit is not None:
            version = culprit.version or culprit.event_id or "unlabelled event"
            deployed = (
                culprit.event_timestamp.date().isoformat() if culprit.event_timestamp else "unknown date"
            )
            parts.append(
                f"Deployment {version} ({deployed}) shows "
                f"{CLASSIFICATION_PHRASES[culprit.classification]} with the anomaly "
                f"(confidence {culprit.confidence:.2f}; anomaly rate "
                f"{culprit.rate_before:.1%} before vs {culprit.rate_after:.1%} after)."
            )
        else:
            parts.append("No candidate deployment could be attributed to the anomaly.")

        parts.append(
            f"Observed loss is ${impact.observed_loss:,.2f}, projecting to "
            f"${impact.monthly_projection:,.2f} per month at the current rate."
        )

        if signals.window_start is not None:
            parts.append(
                f"Since {signals.window_start}: {signals.failed_transactions} failed "
                f"transactions and {signals.churn_events} churn events."
            )

        return " ".join(parts)

    def recommend(
        self,
        verdict: Verdict,
        culprit: Optional[AttributionScore],
        onset: Optional[str] = None,
    ) -> list[str]:
        """Remediation actions for a confirmed culprit, diagnostic actions otherwise."""
        if verdict == Verdict.CAUSAL_LINK_CONFIRMED and culprit is not None:
            version = culprit.version or culprit.event_id or "the culprit deployment"
            start = onset or culprit.spike_onset or "the spike onset"
            self.logger.debug("remediation_recommended", version=version, onset=start)
            return [a.format(version=version, onset=start) for a in REMEDIATION_ACTIONS]
        self.logger.debug("diagnostics_recommended", verdict=verdict.value)
        return list(DIAGNOSTIC_ACTIONS)

    @staticmethod
    def _detection_sentence(entity: str, drift: DriftResult, onset: Optional[str]) -> str:
        if drift.baseline_days == 0:
            return (
                f"{entity}: no baseline days before {drift.baseline_end or 'the recent window'}, "
                f"drift cannot be assessed (current anomaly rate {drift.current_rate:.1%})."
            )
        state = "spiked" if drift.is_spike else "stayed within threshold"
        text = (
            f"{entity}: anomaly rate {state} at {drift.drift_factor:.1f}x baseline "
            f"({drift.baseline_rate:.1%} -> {drift.current_rate:.1%}, "
            f"z = {drift.z_score:.2f}, {drift.significance_tier.value})"
        )
        if onset is not None:
            text += f", onset {onset}"
        return text + "."
