"""Application service for trust scoring, auto-flagging, and review policy."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from trust_moderation.application.ports.activity_repository_port import ActivityRepositoryPort
from trust_moderation.application.ports.factor_snapshot_port import FactorSnapshotPort
from trust_moderation.application.ports.trust_score_repository_port import (
    FlaggedOrganizer,
    TrustScoreRepositoryPort,
)
from trust_moderation.domain.activity.events import (
    ActivityEventCreateInput,
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
)
from trust_moderation.domain.trust.auto_flag import AutoFlagDecision, AutoFlagDetector
from trust_moderation.domain.trust.factors import (
    OrganizerTrustFactors,
    SubjectKind,
    TrustFactors,
)
from trust_moderation.domain.trust.flag_state import (
    Flagged,
    requires_manual_review,
)
from trust_moderation.domain.trust.score_calculator import TrustScoreCalculator, TrustScoreResult

NowCallable = Callable[[], datetime]
logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SubjectNotFoundError(LookupError):
    """Raised when a scored or moderated subject does not exist."""

    def __init__(self, *, kind: SubjectKind, subject_id: str) -> None:
        super().__init__(f"{kind.value} not found: {subject_id}")
        self.kind = kind
        self.subject_id = subject_id


@dataclass(frozen=True)
class ReviewRequirement:
    """Whether an organizer's submissions must be reviewed by hand, and why."""

    organizer_id: str
    requires_manual_review: bool
    flag_reason: str | None


class TrustScoreService:
    """Compute, persist, and act on trust scores."""

    def __init__(
        self,
        *,
        factors: FactorSnapshotPort,
        scores: TrustScoreRepositoryPort,
        calculator: TrustScoreCalculator | None = None,
        auto_flag_detector: AutoFlagDetector | None = None,
        activity: ActivityRepositoryPort | None = None,
        now: NowCallable = _utc_now,
    ) -> None:
        self._factors = factors
        self._scores = scores
        self._calculator = calculator or TrustScoreCalculator()
        self._auto_flag_detector = auto_flag_detector or AutoFlagDetector()
        self._activity = activity
        self._now = now

    async def score(self, *, subject_id: str, kind: SubjectKind) -> TrustScoreResult:
        """Recompute and store the latest score for one subject.

        Organizer recomputation also evaluates the auto-flag rule.
        """

        factors = await self._fetch_factors(subject_id=subject_id, kind=kind)
        result = self._calculator.calculate(factors, computed_at=self._now())
        await self._scores.upsert_score_snapshot(subject_id=subject_id, kind=kind, result=result)
        logger.info(
            "trust_score_computed kind=%s subject_id=%s score=%s",
            kind.value,
            subject_id,
            result.score,
        )

        if isinstance(factors, OrganizerTrustFactors):
            await self._apply_auto_flag(organizer_id=subject_id, factors=factors)
        return result

    async def check_auto_flag(self, *, organizer_id: str) -> AutoFlagDecision:
        """Evaluate the auto-flag rule for one organizer and apply it if it fires."""

        factors = await self._factors.fetch_organizer_factors(organizer_id=organizer_id)
        if factors is None:
            raise SubjectNotFoundError(kind=SubjectKind.ORGANIZER, subject_id=organizer_id)
        return await self._apply_auto_flag(organizer_id=organizer_id, factors=factors)

    async def check_review_requirement(self, *, organizer_id: str) -> ReviewRequirement:
        state = await self._scores.get_flag_state(organizer_id=organizer_id)
        return ReviewRequirement(
            organizer_id=organizer_id,
            requires_manual_review=requires_manual_review(state),
            flag_reason=state.reason if isinstance(state, Flagged) else None,
        )

    async def list_flagged_organizers(self) -> list[FlaggedOrganizer]:
        """Return every flagged organizer, most recently flagged first."""

        return await self._scores.list_flagged_organizers()

    async def _fetch_factors(self, *, subject_id: str, kind: SubjectKind) -> TrustFactors:
        factors: TrustFactors | None
        if kind == SubjectKind.ORGANIZER:
            factors = await self._factors.fetch_organizer_factors(organizer_id=subject_id)
        else:
            factors = await self._factors.fetch_subject_factors(subject_id=subject_id)
        if factors is None:
            raise SubjectNotFoundError(kind=kind, subject_id=subject_id)
        return factors

    async def _apply_auto_flag(
        self,
        *,
        organizer_id: str,
        factors: OrganizerTrustFactors,
    ) -> AutoFlagDecision:
        decision = self._auto_flag_detector.should_flag(factors)
        if not decision.should_flag or decision.reason is None:
            return decision

        # Existing flags are kept as-is; auto-flagging never clears or rewrites them.
        current = await self._scores.get_flag_state(organizer_id=organizer_id)
        if current.is_flagged:
            return decision

        await self._scores.upsert_flag_state(
            organizer_id=organizer_id,
            state=Flagged(reason=decision.reason, flagged_at=self._now()),
        )
        logger.warning(
            "auto_flag_applied organizer_id=%s rejections=%s violations=%s threshold=%s",
            organizer_id,
            decision.rejection_count,
            decision.violation_count,
            decision.threshold,
        )
        if self._activity is not None:
            await self._activity.append_event(
                ActivityEventCreateInput(
                    activity_type=ActivityType.MODERATION_ACTION,
                    target_type=ActivityTargetType.ORGANIZER,
                    target_id=organizer_id,
                    action="Organizer automatically flagged",
                    metadata={
                        "reason": decision.reason,
                        "rejection_count": decision.rejection_count,
                        "violation_count": decision.violation_count,
                        "threshold": decision.threshold,
                    },
                    severity=ActivitySeverity.WARNING,
                )
            )
        return decision
