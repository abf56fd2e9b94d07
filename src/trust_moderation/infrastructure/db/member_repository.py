"""SQLAlchemy adapter for member profiles and their team registrations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.ports.member_repository_port import (
    MemberRepositoryPort,
    ModeratedMember,
    TeamMembership,
    TeamRemovalError,
)
from trust_moderation.domain.moderation.ban_cascade import MemberModerationStatus
from trust_moderation.infrastructure.db.metadata import (
    event_registrations,
    event_teams,
    organizer_events,
    organizers,
    profiles,
)


class MemberNotFoundError(LookupError):
    """Raised when a status update targets a missing profile."""

    def __init__(self, *, member_id: str) -> None:
        super().__init__(f"member not found: {member_id}")
        self.member_id = member_id


class SqlAlchemyMemberRepository(MemberRepositoryPort):
    """Member repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_member(self, *, member_id: str) -> ModeratedMember | None:
        """Return the profile with the organizer it owns, if any."""

        statement = (
            sa.select(
                profiles.c.profile_id,
                profiles.c.email,
                profiles.c.display_name,
                profiles.c.moderation_status,
                organizers.c.organizer_id,
            )
            .select_from(
                profiles.outerjoin(
                    organizers,
                    organizers.c.profile_id == profiles.c.profile_id,
                )
            )
            .where(profiles.c.profile_id == member_id)
            .order_by(organizers.c.created_at.asc())
            .limit(1)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return ModeratedMember(
            member_id=cast(str, row["profile_id"]),
            email=cast(str, row["email"]),
            display_name=cast(str | None, row["display_name"]),
            moderation_status=MemberModerationStatus(cast(str, row["moderation_status"])),
            organizer_id=cast(str | None, row["organizer_id"]),
        )

    async def list_team_memberships(self, *, member_id: str) -> list[TeamMembership]:
        statement = (
            sa.select(
                event_teams.c.team_id,
                event_teams.c.team_name,
                organizer_events.c.event_id,
                organizer_events.c.title,
            )
            .select_from(
                event_registrations.join(
                    event_teams,
                    event_teams.c.team_id == event_registrations.c.team_id,
                ).join(
                    organizer_events,
                    organizer_events.c.event_id == event_teams.c.event_id,
                )
            )
            .where(event_registrations.c.profile_id == member_id)
            .order_by(event_teams.c.created_at.asc(), event_teams.c.team_id.asc())
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [
            TeamMembership(
                team_id=cast(UUID, row["team_id"]),
                team_name=cast(str, row["team_name"]),
                event_id=cast(UUID, row["event_id"]),
                event_name=cast(str, row["title"]),
            )
            for row in result.mappings().all()
        ]

    async def list_affected_member_ids(
        self,
        *,
        member_id: str,
        team_ids: Sequence[UUID],
        event_ids: Sequence[UUID],
    ) -> list[str]:
        """Return teammates and event participants sorted by id."""

        if not team_ids and not event_ids:
            return []

        conditions: list[sa.ColumnElement[bool]] = []
        if team_ids:
            conditions.append(event_registrations.c.team_id.in_(list(team_ids)))
        if event_ids:
            conditions.append(event_registrations.c.event_id.in_(list(event_ids)))
        statement = (
            sa.select(event_registrations.c.profile_id)
            .where(sa.or_(*conditions), event_registrations.c.profile_id != member_id)
            .distinct()
            .order_by(event_registrations.c.profile_id.asc())
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [cast(str, profile_id) for profile_id in result.scalars().all()]

    async def remove_from_team(self, *, member_id: str, team_id: UUID) -> None:
        async with self._session_factory() as session:
            updated = cast(
                CursorResult[Any],
                await session.execute(
                    sa.update(event_registrations)
                    .where(
                        event_registrations.c.profile_id == member_id,
                        event_registrations.c.team_id == team_id,
                    )
                    .values(team_id=None)
                ),
            )
            if updated.rowcount == 0:
                await session.rollback()
                raise TeamRemovalError(team_id=team_id, message="member is not on this team")
            await session.commit()

    async def set_moderation_status(
        self,
        *,
        member_id: str,
        status: MemberModerationStatus,
    ) -> None:
        async with self._session_factory() as session:
            updated = cast(
                CursorResult[Any],
                await session.execute(
                    sa.update(profiles)
                    .where(profiles.c.profile_id == member_id)
                    .values(moderation_status=status.value)
                ),
            )
            if updated.rowcount == 0:
                await session.rollback()
                raise MemberNotFoundError(member_id=member_id)
            await session.commit()
