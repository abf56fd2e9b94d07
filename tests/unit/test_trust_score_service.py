from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from trust_moderation.application.ports.trust_score_repository_port import FlaggedOrganizer
from trust_moderation.application.services.trust_score_service import (
    SubjectNotFoundError,
    TrustScoreService,
)
from trust_moderation.domain.activity.events import (
    ActivityEvent,
    ActivityEventCreateInput,
    ActivitySeverity,
)
from trust_moderation.domain.trust.auto_flag import AutoFlagDetector
from trust_moderation.domain.trust.factors import (
    OrganizerTrustFactors,
    SubjectKind,
    SubjectTrustFactors,
)
from trust_moderation.domain.trust.flag_state import NOT_FLAGGED, Flagged, FlagState
from trust_moderation.domain.trust.score_calculator import TrustScoreResult

NOW = datetime(2026, 6, 1, 8, 0, tzinfo=UTC)


class FakeFactorSnapshots:
    def __init__(
        self,
        *,
        subjects: dict[str, SubjectTrustFactors] | None = None,
        organizers: dict[str, OrganizerTrustFactors] | None = None,
    ) -> None:
        self._subjects = subjects or {}
        self._organizers = organizers or {}

    async def fetch_subject_factors(self, *, subject_id: str) -> SubjectTrustFactors | None:
        return self._subjects.get(subject_id)

    async def fetch_organizer_factors(self, *, organizer_id: str) -> OrganizerTrustFactors | None:
        return self._organizers.get(organizer_id)


class FakeScoreRepository:
    def __init__(self, state: FlagState = NOT_FLAGGED) -> None:
        self.state = state
        self.flagged: list[FlaggedOrganizer] = []
        self.snapshots: list[tuple[str, SubjectKind, TrustScoreResult]] = []
        self.flag_writes: list[FlagState] = []

    async def upsert_score_snapshot(
        self,
        *,
        subject_id: str,
        kind: SubjectKind,
        result: TrustScoreResult,
    ) -> None:
        self.snapshots.append((subject_id, kind, result))

    async def upsert_flag_state(
        self,
        *,
        organizer_id: str,
        state: FlagState,
        flagged_by: str | None = None,
    ) -> None:
        _ = organizer_id, flagged_by
        self.flag_writes.append(state)
        self.state = state

    async def get_flag_state(self, *, organizer_id: str) -> FlagState:
        _ = organizer_id
        return self.state

    async def list_flagged_organizers(self) -> list[FlaggedOrganizer]:
        return list(self.flagged)


class FakeActivityRepository:
    def __init__(self) -> None:
        self.events: list[ActivityEventCreateInput] = []

    async def append_event(self, payload: ActivityEventCreateInput) -> ActivityEvent:
        self.events.append(payload)
        return ActivityEvent(
            event_id=uuid4(),
            activity_type=payload.activity_type,
            target_type=payload.target_type,
            target_id=payload.target_id,
            action=payload.action,
            severity=payload.severity,
            occurred_at=NOW,
            metadata=payload.metadata,
        )

    async def query_events(self, *, filters, cursor=None, limit):  # pragma: no cover
        raise NotImplementedError


@pytest.mark.asyncio
async def test_score_user_persists_snapshot() -> None:
    scores = FakeScoreRepository()
    service = TrustScoreService(
        factors=FakeFactorSnapshots(
            subjects={"user-1": SubjectTrustFactors(account_age_days=60, verified_identity=True)}
        ),
        scores=scores,
        now=lambda: NOW,
    )

    result = await service.score(subject_id="user-1", kind=SubjectKind.USER)

    assert result.score == 59
    assert result.computed_at == NOW
    assert scores.snapshots == [("user-1", SubjectKind.USER, result)]
    assert scores.flag_writes == []


@pytest.mark.asyncio
async def test_score_missing_subject_raises() -> None:
    service = TrustScoreService(factors=FakeFactorSnapshots(), scores=FakeScoreRepository())

    with pytest.raises(SubjectNotFoundError) as excinfo:
        await service.score(subject_id="ghost", kind=SubjectKind.ORGANIZER)

    assert excinfo.value.kind == SubjectKind.ORGANIZER


@pytest.mark.asyncio
async def test_organizer_score_auto_flags_at_threshold() -> None:
    scores = FakeScoreRepository()
    activity = FakeActivityRepository()
    service = TrustScoreService(
        factors=FakeFactorSnapshots(
            organizers={"org-1": OrganizerTrustFactors(rejected_events=2, violations=1)}
        ),
        scores=scores,
        activity=activity,
        now=lambda: NOW,
    )

    await service.score(subject_id="org-1", kind=SubjectKind.ORGANIZER)

    assert len(scores.flag_writes) == 1
    state = scores.flag_writes[0]
    assert isinstance(state, Flagged)
    assert state.flagged_at == NOW
    assert "combined rejections and violations" in state.reason
    assert activity.events[0].severity == ActivitySeverity.WARNING
    assert activity.events[0].action == "Organizer automatically flagged"


@pytest.mark.asyncio
async def test_auto_flag_keeps_existing_flag() -> None:
    existing = Flagged(reason="manual review", flagged_at=datetime(2026, 1, 1, tzinfo=UTC))
    scores = FakeScoreRepository(state=existing)
    service = TrustScoreService(
        factors=FakeFactorSnapshots(organizers={"org-1": OrganizerTrustFactors(violations=5)}),
        scores=scores,
    )

    decision = await service.check_auto_flag(organizer_id="org-1")

    assert decision.should_flag is True
    assert scores.flag_writes == []
    assert scores.state is existing


@pytest.mark.asyncio
async def test_auto_flag_below_threshold_leaves_state_untouched() -> None:
    scores = FakeScoreRepository()
    service = TrustScoreService(
        factors=FakeFactorSnapshots(organizers={"org-1": OrganizerTrustFactors(rejected_events=1)}),
        scores=scores,
        auto_flag_detector=AutoFlagDetector(threshold=2),
    )

    decision = await service.check_auto_flag(organizer_id="org-1")

    assert decision.should_flag is False
    assert scores.flag_writes == []


@pytest.mark.asyncio
async def test_check_auto_flag_unknown_organizer() -> None:
    service = TrustScoreService(factors=FakeFactorSnapshots(), scores=FakeScoreRepository())

    with pytest.raises(SubjectNotFoundError):
        await service.check_auto_flag(organizer_id="org-404")


@pytest.mark.asyncio
async def test_review_requirement_follows_flag_state() -> None:
    flagged = Flagged(reason="spam", flagged_at=NOW)
    service = TrustScoreService(
        factors=FakeFactorSnapshots(),
        scores=FakeScoreRepository(state=flagged),
    )
    clean_service = TrustScoreService(factors=FakeFactorSnapshots(), scores=FakeScoreRepository())

    requirement = await service.check_review_requirement(organizer_id="org-1")
    clean = await clean_service.check_review_requirement(organizer_id="org-2")

    assert requirement.requires_manual_review is True
    assert requirement.flag_reason == "spam"
    assert clean.requires_manual_review is False
    assert clean.flag_reason is None


@pytest.mark.asyncio
async def test_list_flagged_organizers_returns_repository_order() -> None:
    scores = FakeScoreRepository()
    scores.flagged = [
        FlaggedOrganizer(
            organizer_id="org-2",
            score=18,
            flag=Flagged(reason="spam", flagged_at=NOW),
            flagged_by="admin-1",
        ),
        FlaggedOrganizer(
            organizer_id="org-1",
            score=25,
            flag=Flagged(reason="auto", flagged_at=NOW),
            flagged_by=None,
        ),
    ]
    service = TrustScoreService(factors=FakeFactorSnapshots(), scores=scores)

    flagged = await service.list_flagged_organizers()

    assert [item.organizer_id for item in flagged] == ["org-2", "org-1"]
    assert flagged[0].flag.reason == "spam"
    assert flagged[1].flagged_by is None
