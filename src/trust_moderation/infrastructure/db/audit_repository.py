"""SQLAlchemy adapter for append-only admin audit entries."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.ports.audit_repository_port import AuditRepositoryPort
from trust_moderation.domain.audit.entries import (
    MAX_AUDIT_PAGE_SIZE,
    AuditActionType,
    AuditEntryCreateInput,
    AuditLogEntry,
    AuditLogFilters,
    AuditPage,
    AuditTargetType,
)
from trust_moderation.infrastructure.db.metadata import admin_audit_logs
from trust_moderation.infrastructure.db.timestamps import ensure_utc, to_utc

NowCallable = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SqlAlchemyAuditRepository(AuditRepositoryPort):
    """Audit repository backed by SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        now: NowCallable = _utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._now = now

    async def append_entry(self, payload: AuditEntryCreateInput) -> AuditLogEntry:
        """Insert one audit row and return the stored entry."""

        statement = (
            sa.insert(admin_audit_logs)
            .values(
                entry_id=uuid4(),
                action_type=payload.action_type.value,
                actor_id=payload.actor_id,
                actor_email=payload.actor_email,
                target_type=payload.target_type.value,
                target_id=payload.target_id,
                reason=payload.reason,
                before_state=_json_or_none(payload.before_state),
                after_state=_json_or_none(payload.after_state),
                created_at=to_utc(self._now()),
            )
            .returning(*admin_audit_logs.c)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)
            await session.commit()

        return _to_audit_entry(result.mappings().one())

    async def list_for_target(
        self,
        *,
        target_type: AuditTargetType,
        target_id: str,
    ) -> list[AuditLogEntry]:
        """Return entries for one target, oldest first."""

        statement = (
            sa.select(admin_audit_logs)
            .where(
                admin_audit_logs.c.target_type == target_type.value,
                admin_audit_logs.c.target_id == target_id,
            )
            .order_by(admin_audit_logs.c.created_at.asc(), admin_audit_logs.c.entry_id.asc())
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [_to_audit_entry(row) for row in result.mappings().all()]

    async def query_entries(
        self,
        *,
        filters: AuditLogFilters,
        page: int = 1,
        limit: int = 50,
    ) -> AuditPage:
        """Return one numbered page, newest first; ties on created_at break by entry id."""

        if page < 1:
            raise ValueError("page must be at least 1")
        if limit < 1:
            raise ValueError("limit must be at least 1")
        limit = min(limit, MAX_AUDIT_PAGE_SIZE)

        logs = admin_audit_logs
        conditions: list[sa.ColumnElement[bool]] = []
        if filters.actor_id is not None:
            conditions.append(logs.c.actor_id == filters.actor_id)
        if filters.action_types:
            conditions.append(logs.c.action_type.in_(sorted(a.value for a in filters.action_types)))
        if filters.target_types:
            conditions.append(logs.c.target_type.in_(sorted(t.value for t in filters.target_types)))
        if filters.target_id is not None:
            conditions.append(logs.c.target_id == filters.target_id)
        if filters.created_from is not None:
            conditions.append(logs.c.created_at >= to_utc(filters.created_from))
        if filters.created_to is not None:
            conditions.append(logs.c.created_at <= to_utc(filters.created_to))

        count_statement = sa.select(sa.func.count()).select_from(logs).where(*conditions)
        statement = (
            sa.select(logs)
            .where(*conditions)
            .order_by(logs.c.created_at.desc(), logs.c.entry_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        async with self._session_factory() as session:
            total = int((await session.execute(count_statement)).scalar_one())
            result = await session.execute(statement)

        return AuditPage(
            entries=[_to_audit_entry(row) for row in result.mappings().all()],
            total=total,
            page=page,
            limit=limit,
        )


def _json_or_none(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    return dict(value)


def _to_audit_entry(row: sa.RowMapping) -> AuditLogEntry:
    raw_entry_id = row["entry_id"]
    return AuditLogEntry(
        entry_id=raw_entry_id if isinstance(raw_entry_id, UUID) else UUID(str(raw_entry_id)),
        action_type=AuditActionType(cast(str, row["action_type"])),
        actor_id=cast(str, row["actor_id"]),
        actor_email=cast(str, row["actor_email"]),
        target_type=AuditTargetType(cast(str, row["target_type"])),
        target_id=cast(str, row["target_id"]),
        reason=cast(str, row["reason"]),
        before_state=cast("dict[str, Any] | None", row["before_state"]),
        after_state=cast("dict[str, Any] | None", row["after_state"]),
        created_at=ensure_utc(cast(datetime, row["created_at"])),
    )
