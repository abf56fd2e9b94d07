"""Pure planning of the side effects a member ban triggers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class MemberModerationStatus(StrEnum):
    """Moderation lifecycle of a platform member."""

    ACTIVE = "active"
    WARNED = "warned"
    MUTED = "muted"
    SUSPENDED = "suspended"
    BANNED = "banned"


@dataclass(frozen=True)
class BanCascadeInput:
    """Everything known about a member before the ban is applied."""

    member_id: str
    is_organizer: bool
    active_event_ids: tuple[UUID, ...]
    team_ids: tuple[UUID, ...]
    affected_member_ids: tuple[str, ...]


@dataclass(frozen=True)
class BanCascadePlan:
    """Events to unpublish, teams to leave, and members to notify."""

    member_id: str
    events_to_unpublish: tuple[UUID, ...]
    teams_to_leave: tuple[UUID, ...]
    members_to_notify: tuple[str, ...]

    @property
    def should_unpublish_events(self) -> bool:
        return bool(self.events_to_unpublish)

    @property
    def should_remove_from_teams(self) -> bool:
        return bool(self.teams_to_leave)

    @property
    def should_notify(self) -> bool:
        return bool(self.members_to_notify)


def plan_ban_cascade(cascade: BanCascadeInput) -> BanCascadePlan:
    """Plan the cascade; only organizers lose their events.

    Notified members are deduplicated in first-seen order and never include
    the banned member.
    """

    members_to_notify = tuple(
        dict.fromkeys(
            member_id
            for member_id in cascade.affected_member_ids
            if member_id != cascade.member_id
        )
    )
    return BanCascadePlan(
        member_id=cascade.member_id,
        events_to_unpublish=(
            tuple(dict.fromkeys(cascade.active_event_ids)) if cascade.is_organizer else ()
        ),
        teams_to_leave=tuple(dict.fromkeys(cascade.team_ids)),
        members_to_notify=members_to_notify,
    )


def is_valid_ban_cascade(cascade: BanCascadeInput, plan: BanCascadePlan) -> bool:
    """Check that a plan covers every event, team, and member the input requires."""

    if cascade.is_organizer and not set(cascade.active_event_ids) <= set(
        plan.events_to_unpublish
    ):
        return False
    if not cascade.is_organizer and plan.events_to_unpublish:
        return False
    if not set(cascade.team_ids) <= set(plan.teams_to_leave):
        return False
    expected_members = set(cascade.affected_member_ids) - {cascade.member_id}
    return set(plan.members_to_notify) == expected_members
