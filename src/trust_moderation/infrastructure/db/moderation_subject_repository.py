"""SQLAlchemy adapter for organizers and their dependent events."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.ports.moderation_subject_repository_port import (
    DependentEntity,
    EntityTransition,
    EntityTransitionError,
    ModerationSubject,
    ModerationSubjectRepositoryPort,
)
from trust_moderation.infrastructure.db.metadata import (
    event_registrations,
    organizer_events,
    organizers,
)
from trust_moderation.infrastructure.db.timestamps import to_utc

NowCallable = Callable[[], datetime]

ACTIVE_EVENT_STATUSES: tuple[str, ...] = ("published", "pending_review")


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SqlAlchemyModerationSubjectRepository(ModerationSubjectRepositoryPort):
    """Organizer and organizer-event repository backed by SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        now: NowCallable = _utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._now = now

    async def get_subject(self, *, subject_id: str) -> ModerationSubject | None:
        event_count = (
            sa.select(sa.func.count())
            .select_from(organizer_events)
            .where(organizer_events.c.organizer_id == organizers.c.organizer_id)
            .scalar_subquery()
        )
        statement = sa.select(
            organizers.c.organizer_id,
            organizers.c.display_name,
            event_count.label("total_dependents"),
        ).where(organizers.c.organizer_id == subject_id)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return ModerationSubject(
            subject_id=cast(str, row["organizer_id"]),
            display_name=cast(str, row["display_name"]),
            total_dependents=int(row["total_dependents"]),
        )

    async def list_active_dependents(self, *, subject_id: str) -> list[DependentEntity]:
        """Return published or pending events, oldest first."""

        participant_count = (
            sa.select(sa.func.count())
            .select_from(event_registrations)
            .where(event_registrations.c.event_id == organizer_events.c.event_id)
            .scalar_subquery()
        )
        statement = (
            sa.select(
                organizer_events.c.event_id,
                organizer_events.c.title,
                organizer_events.c.status,
                participant_count.label("participant_count"),
            )
            .where(
                organizer_events.c.organizer_id == subject_id,
                organizer_events.c.status.in_(ACTIVE_EVENT_STATUSES),
            )
            .order_by(organizer_events.c.created_at.asc(), organizer_events.c.event_id.asc())
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [
            DependentEntity(
                entity_id=cast(UUID, row["event_id"]),
                name=cast(str, row["title"]),
                state=cast(str, row["status"]),
                participant_count=int(row["participant_count"]),
            )
            for row in result.mappings().all()
        ]

    async def transition_entity_state(
        self,
        *,
        entity_id: UUID,
        new_state: str,
        note: str,
    ) -> EntityTransition:
        """Move one active event to ``new_state`` and record the note as admin notes."""

        async with self._session_factory() as session:
            current = await session.execute(
                sa.select(organizer_events.c.status, organizer_events.c.admin_notes).where(
                    organizer_events.c.event_id == entity_id
                )
            )
            row = current.mappings().first()
            if row is None:
                raise EntityTransitionError(entity_id=entity_id, message="entity not found")

            before = {"status": row["status"], "admin_notes": row["admin_notes"]}
            # Guarded on status so a concurrent change does not get overwritten.
            updated = cast(
                CursorResult[Any],
                await session.execute(
                    sa.update(organizer_events)
                    .where(
                        organizer_events.c.event_id == entity_id,
                        organizer_events.c.status.in_(ACTIVE_EVENT_STATUSES),
                    )
                    .values(status=new_state, admin_notes=note, updated_at=to_utc(self._now()))
                ),
            )
            if updated.rowcount != 1:
                await session.rollback()
                raise EntityTransitionError(
                    entity_id=entity_id,
                    message=f"entity is not active (status={row['status']})",
                )
            await session.commit()

        return EntityTransition(
            entity_id=entity_id,
            before=before,
            after={"status": new_state, "admin_notes": note},
        )
