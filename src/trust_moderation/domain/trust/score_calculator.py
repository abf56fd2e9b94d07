"""Pure trust score arithmetic for users and organizers.

Every term is computed from one factor, capped at its own category limit,
and summed onto the base score. The raw total is rounded and clamped to the
score bounds. The breakdown keeps each capped contribution plus the clamp
adjustment, so ``base + sum(contributions) + clamp_adjustment == score``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final, Literal

from trust_moderation.domain.trust.factors import (
    OrganizerTrustFactors,
    SubjectTrustFactors,
    TrustFactors,
)

MIN_SCORE: Final[int] = 0
MAX_SCORE: Final[int] = 100
DAYS_PER_AGE_BUCKET: Final[int] = 30

TrustLevel = Literal["excellent", "good", "fair", "poor", "critical"]


@dataclass(frozen=True)
class SubjectScoringConfig:
    """Per-category points and caps for user scoring."""

    base_score: int = 50
    age_bonus_per_bucket: int = 2
    age_bonus_max: int = 20
    successful_event_bonus: int = 3
    successful_event_bonus_max: int = 15
    valid_report_bonus: int = 2
    valid_report_bonus_max: int = 10
    report_received_penalty: int = 5
    report_received_penalty_max: int = 25
    moderation_action_penalty: int = 10
    moderation_action_penalty_max: int = 30
    verified_identity_bonus: int = 5


@dataclass(frozen=True)
class OrganizerScoringConfig:
    """Per-category points and caps for organizer scoring."""

    base_score: int = 50
    age_bonus_per_bucket: int = 1
    age_bonus_max: int = 10
    approved_event_bonus: int = 5
    approved_event_bonus_max: int = 25
    # One point per this many participants (0.1 per participant, floored).
    participants_per_bonus_point: int = 10
    participant_bonus_max: int = 15
    rejected_event_penalty: int = 10
    rejected_event_penalty_max: int = 30
    violation_penalty: int = 15
    violation_penalty_max: int = 45


@dataclass(frozen=True)
class ScoreContribution:
    """One named, already-capped term of a trust score."""

    name: str
    points: int


@dataclass(frozen=True)
class TrustScoreBreakdown:
    """Itemized explanation of how a score was reached."""

    base_score: int
    contributions: tuple[ScoreContribution, ...]
    clamp_adjustment: int
    final_score: int

    @property
    def raw_total(self) -> int:
        """Return base plus contributions before clamping."""

        return self.base_score + sum(item.points for item in self.contributions)

    def points_for(self, name: str) -> int:
        """Return the capped points for one named contribution."""

        for item in self.contributions:
            if item.name == name:
                return item.points
        raise KeyError(name)

    def as_dict(self) -> dict[str, int]:
        """Return a flat mapping suitable for JSON persistence."""

        payload = {"base_score": self.base_score}
        payload.update({item.name: item.points for item in self.contributions})
        payload["clamp_adjustment"] = self.clamp_adjustment
        payload["final_score"] = self.final_score
        return payload


@dataclass(frozen=True)
class TrustScoreResult:
    """Bounded score with the factors and breakdown that produced it."""

    score: int
    factors: TrustFactors
    breakdown: TrustScoreBreakdown
    computed_at: datetime


def _bonus(count: int, *, per_unit: int, cap: int) -> int:
    return min(count * per_unit, cap)


def _penalty(count: int, *, per_unit: int, cap: int) -> int:
    return -min(count * per_unit, cap)


def _finalize(base_score: int, contributions: tuple[ScoreContribution, ...]) -> TrustScoreBreakdown:
    raw_total = base_score + sum(item.points for item in contributions)
    final_score = max(MIN_SCORE, min(MAX_SCORE, round(raw_total)))
    return TrustScoreBreakdown(
        base_score=base_score,
        contributions=contributions,
        clamp_adjustment=final_score - raw_total,
        final_score=final_score,
    )


class TrustScoreCalculator:
    """Deterministic factor-snapshot to score transform."""

    def __init__(
        self,
        *,
        subject_config: SubjectScoringConfig | None = None,
        organizer_config: OrganizerScoringConfig | None = None,
    ) -> None:
        self._subject_config = subject_config or SubjectScoringConfig()
        self._organizer_config = organizer_config or OrganizerScoringConfig()

    def calculate(
        self,
        factors: TrustFactors,
        *,
        computed_at: datetime | None = None,
    ) -> TrustScoreResult:
        """Score one factor snapshot; identical inputs yield identical results."""

        if isinstance(factors, SubjectTrustFactors):
            breakdown = self._subject_breakdown(factors)
        elif isinstance(factors, OrganizerTrustFactors):
            breakdown = self._organizer_breakdown(factors)
        else:
            raise TypeError(f"unsupported factor snapshot: {type(factors).__name__}")

        return TrustScoreResult(
            score=breakdown.final_score,
            factors=factors,
            breakdown=breakdown,
            computed_at=computed_at or datetime.now(tz=UTC),
        )

    def _subject_breakdown(self, factors: SubjectTrustFactors) -> TrustScoreBreakdown:
        config = self._subject_config
        age_buckets = factors.account_age_days // DAYS_PER_AGE_BUCKET
        contributions = (
            ScoreContribution(
                "account_age_bonus",
                _bonus(age_buckets, per_unit=config.age_bonus_per_bucket, cap=config.age_bonus_max),
            ),
            ScoreContribution(
                "successful_events_bonus",
                _bonus(
                    factors.successful_events,
                    per_unit=config.successful_event_bonus,
                    cap=config.successful_event_bonus_max,
                ),
            ),
            ScoreContribution(
                "valid_reports_bonus",
                _bonus(
                    factors.reports_filed_valid,
                    per_unit=config.valid_report_bonus,
                    cap=config.valid_report_bonus_max,
                ),
            ),
            ScoreContribution(
                "reports_received_penalty",
                _penalty(
                    factors.reports_received,
                    per_unit=config.report_received_penalty,
                    cap=config.report_received_penalty_max,
                ),
            ),
            ScoreContribution(
                "moderation_penalty",
                _penalty(
                    factors.moderation_actions,
                    per_unit=config.moderation_action_penalty,
                    cap=config.moderation_action_penalty_max,
                ),
            ),
            ScoreContribution(
                "verification_bonus",
                config.verified_identity_bonus if factors.verified_identity else 0,
            ),
        )
        return _finalize(config.base_score, contributions)

    def _organizer_breakdown(self, factors: OrganizerTrustFactors) -> TrustScoreBreakdown:
        config = self._organizer_config
        age_buckets = factors.account_age_days // DAYS_PER_AGE_BUCKET
        contributions = (
            ScoreContribution(
                "account_age_bonus",
                _bonus(age_buckets, per_unit=config.age_bonus_per_bucket, cap=config.age_bonus_max),
            ),
            ScoreContribution(
                "approved_events_bonus",
                _bonus(
                    factors.approved_events,
                    per_unit=config.approved_event_bonus,
                    cap=config.approved_event_bonus_max,
                ),
            ),
            ScoreContribution(
                "participants_bonus",
                min(
                    factors.total_participants // config.participants_per_bonus_point,
                    config.participant_bonus_max,
                ),
            ),
            ScoreContribution(
                "rejected_events_penalty",
                _penalty(
                    factors.rejected_events,
                    per_unit=config.rejected_event_penalty,
                    cap=config.rejected_event_penalty_max,
                ),
            ),
            ScoreContribution(
                "violations_penalty",
                _penalty(
                    factors.violations,
                    per_unit=config.violation_penalty,
                    cap=config.violation_penalty_max,
                ),
            ),
        )
        return _finalize(config.base_score, contributions)


def is_valid_trust_score(value: object) -> bool:
    """Return whether a value is an integer inside the score bounds."""

    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and MIN_SCORE <= value <= MAX_SCORE
    )


def trust_level(score: int) -> TrustLevel:
    """Map a score to its display band."""

    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    if score >= 20:
        return "poor"
    return "critical"
