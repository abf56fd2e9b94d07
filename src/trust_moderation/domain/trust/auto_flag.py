"""Threshold rule deciding whether an organizer is flagged automatically."""

from __future__ import annotations

from dataclasses import dataclass

from trust_moderation.domain.trust.factors import OrganizerTrustFactors

DEFAULT_AUTO_FLAG_THRESHOLD = 3


@dataclass(frozen=True)
class AutoFlagDecision:
    """Flag decision with the evidence it was based on."""

    should_flag: bool
    reason: str | None
    rejection_count: int
    violation_count: int
    threshold: int


class AutoFlagDetector:
    """Flag organizers whose rejections, violations, or both reach a threshold."""

    def __init__(self, *, threshold: int = DEFAULT_AUTO_FLAG_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError("auto-flag threshold must be at least 1")
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        return self._threshold

    def should_flag(self, factors: OrganizerTrustFactors) -> AutoFlagDecision:
        """Return the decision; the reason names the first condition that fired."""

        threshold = self._threshold
        rejections = factors.rejected_events
        violations = factors.violations
        combined = rejections + violations

        reason: str | None = None
        if rejections >= threshold:
            reason = f"Organizer has {rejections} rejected events (threshold: {threshold})"
        elif violations >= threshold:
            reason = f"Organizer has {violations} violations (threshold: {threshold})"
        elif combined >= threshold:
            reason = (
                f"Organizer has {combined} combined rejections and violations "
                f"(threshold: {threshold})"
            )

        return AutoFlagDecision(
            should_flag=reason is not None,
            reason=reason,
            rejection_count=rejections,
            violation_count=violations,
            threshold=threshold,
        )


def is_valid_auto_flag_decision(decision: AutoFlagDecision) -> bool:
    """Check a decision against the threshold law in both directions."""

    combined = decision.rejection_count + decision.violation_count
    reached = (
        decision.rejection_count >= decision.threshold
        or decision.violation_count >= decision.threshold
        or combined >= decision.threshold
    )
    if decision.should_flag:
        return reached and decision.reason is not None
    return not reached and decision.reason is None
