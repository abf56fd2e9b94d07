"""Port for latest trust score snapshots and organizer flag state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from trust_moderation.domain.trust.factors import SubjectKind
from trust_moderation.domain.trust.flag_state import Flagged, FlagState
from trust_moderation.domain.trust.score_calculator import TrustScoreResult


@dataclass(frozen=True)
class FlaggedOrganizer:
    """Organizer currently under a flag, with its latest score."""

    organizer_id: str
    score: int
    flag: Flagged
    flagged_by: str | None


class TrustScoreRepositoryPort(Protocol):
    """Trust score repository contract; snapshots are replaced wholesale."""

    async def upsert_score_snapshot(
        self,
        *,
        subject_id: str,
        kind: SubjectKind,
        result: TrustScoreResult,
    ) -> None:
        """Insert or replace the latest score for one subject."""

    async def upsert_flag_state(
        self,
        *,
        organizer_id: str,
        state: FlagState,
        flagged_by: str | None = None,
    ) -> None:
        """Write all flag columns together for one organizer."""

    async def get_flag_state(self, *, organizer_id: str) -> FlagState:
        """Return current flag state; organizers without a row are not flagged."""

    async def list_flagged_organizers(self) -> list[FlaggedOrganizer]:
        """Return flagged organizers, most recently flagged first."""
