"""Port for moderated members and their team memberships."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from trust_moderation.domain.moderation.ban_cascade import MemberModerationStatus


class TeamRemovalError(RuntimeError):
    """Raised when a member cannot be detached from one team."""

    def __init__(self, *, team_id: UUID, message: str) -> None:
        super().__init__(f"team {team_id}: {message}")
        self.team_id = team_id


@dataclass(frozen=True)
class ModeratedMember:
    """Member profile with its moderation status and organizer link."""

    member_id: str
    email: str
    display_name: str | None
    moderation_status: MemberModerationStatus
    organizer_id: str | None = None

    @property
    def is_organizer(self) -> bool:
        return self.organizer_id is not None

    @property
    def label(self) -> str:
        return self.display_name or self.email


@dataclass(frozen=True)
class TeamMembership:
    """One team a member belongs to, with the event that team competes in."""

    team_id: UUID
    team_name: str
    event_id: UUID
    event_name: str


class MemberRepositoryPort(Protocol):
    """Member persistence contract used by the ban cascade."""

    async def get_member(self, *, member_id: str) -> ModeratedMember | None:
        """Return member or None when missing."""

    async def list_team_memberships(self, *, member_id: str) -> list[TeamMembership]:
        """Return every team the member is currently registered with."""

    async def list_affected_member_ids(
        self,
        *,
        member_id: str,
        team_ids: Sequence[UUID],
        event_ids: Sequence[UUID],
    ) -> list[str]:
        """Return distinct teammates and event participants, excluding the member."""

    async def remove_from_team(self, *, member_id: str, team_id: UUID) -> None:
        """Detach the member's registration from a team; raise TeamRemovalError on failure."""

    async def set_moderation_status(
        self,
        *,
        member_id: str,
        status: MemberModerationStatus,
    ) -> None:
        """Persist a new moderation status."""
