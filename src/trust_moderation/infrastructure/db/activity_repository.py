"""SQLAlchemy adapter for the activity feed with keyset pagination."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.ports.activity_repository_port import (
    ActivityCursor,
    ActivityPage,
    ActivityRepositoryPort,
)
from trust_moderation.domain.activity.events import (
    ActivityEvent,
    ActivityEventCreateInput,
    ActivityFilters,
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
)
from trust_moderation.infrastructure.db.metadata import admin_activity_feed
from trust_moderation.infrastructure.db.timestamps import ensure_utc, to_utc

NowCallable = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SqlAlchemyActivityRepository(ActivityRepositoryPort):
    """Activity repository backed by SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        now: NowCallable = _utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._now = now

    async def append_event(self, payload: ActivityEventCreateInput) -> ActivityEvent:
        """Insert one feed row stamped with the current time."""

        statement = (
            sa.insert(admin_activity_feed)
            .values(
                event_id=uuid4(),
                activity_type=payload.activity_type.value,
                actor_id=payload.actor_id,
                actor_email=payload.actor_email,
                target_type=payload.target_type.value,
                target_id=payload.target_id,
                target_name=payload.target_name,
                action=payload.action,
                metadata_json=dict(payload.metadata),
                severity=payload.severity.value,
                occurred_at=to_utc(self._now()),
            )
            .returning(*admin_activity_feed.c)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)
            await session.commit()

        return _to_activity_event(result.mappings().one())

    async def query_events(
        self,
        *,
        filters: ActivityFilters,
        cursor: str | None = None,
        limit: int,
    ) -> ActivityPage:
        """Return one newest-first page; ties on occurred_at are broken by event id."""

        if limit < 1:
            raise ValueError("limit must be at least 1")

        feed = admin_activity_feed
        conditions: list[sa.ColumnElement[bool]] = []
        if filters.activity_types:
            activity_types = sorted(item.value for item in filters.activity_types)
            conditions.append(feed.c.activity_type.in_(activity_types))
        if filters.severities:
            conditions.append(feed.c.severity.in_(sorted(s.value for s in filters.severities)))
        if filters.target_types:
            conditions.append(feed.c.target_type.in_(sorted(t.value for t in filters.target_types)))
        if filters.actor_id is not None:
            conditions.append(feed.c.actor_id == filters.actor_id)
        if filters.target_id is not None:
            conditions.append(feed.c.target_id == filters.target_id)
        if filters.occurred_from is not None:
            conditions.append(feed.c.occurred_at >= to_utc(filters.occurred_from))
        if filters.occurred_to is not None:
            conditions.append(feed.c.occurred_at <= to_utc(filters.occurred_to))
        if cursor is not None:
            position = ActivityCursor.decode(cursor)
            cursor_at = to_utc(position.occurred_at)
            conditions.append(
                sa.or_(
                    feed.c.occurred_at < cursor_at,
                    sa.and_(feed.c.occurred_at == cursor_at, feed.c.event_id < position.event_id),
                )
            )

        statement = (
            sa.select(feed)
            .where(*conditions)
            .order_by(feed.c.occurred_at.desc(), feed.c.event_id.desc())
            .limit(limit + 1)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        events = [_to_activity_event(row) for row in result.mappings().all()]
        has_more = len(events) > limit
        events = events[:limit]
        next_cursor = None
        if has_more:
            last = events[-1]
            next_cursor = ActivityCursor(
                occurred_at=last.occurred_at,
                event_id=last.event_id,
            ).encode()
        return ActivityPage(events=events, has_more=has_more, next_cursor=next_cursor)


def _to_activity_event(row: sa.RowMapping) -> ActivityEvent:
    raw_event_id = row["event_id"]
    return ActivityEvent(
        event_id=raw_event_id if isinstance(raw_event_id, UUID) else UUID(str(raw_event_id)),
        activity_type=ActivityType(cast(str, row["activity_type"])),
        target_type=ActivityTargetType(cast(str, row["target_type"])),
        target_id=cast(str, row["target_id"]),
        action=cast(str, row["action"]),
        severity=ActivitySeverity(cast(str, row["severity"])),
        occurred_at=ensure_utc(cast(datetime, row["occurred_at"])),
        actor_id=cast(str | None, row["actor_id"]),
        actor_email=cast(str | None, row["actor_email"]),
        target_name=cast(str | None, row["target_name"]),
        metadata=cast("dict[str, Any]", row["metadata_json"] or {}),
    )
