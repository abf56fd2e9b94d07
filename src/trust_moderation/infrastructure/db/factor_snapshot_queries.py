"""SQLAlchemy aggregation of raw behavioral counts into trust factors."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import cast

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.ports.factor_snapshot_port import FactorSnapshotPort
from trust_moderation.domain.audit.entries import AuditActionType, AuditTargetType
from trust_moderation.domain.trust.factors import OrganizerTrustFactors, SubjectTrustFactors
from trust_moderation.infrastructure.db.metadata import (
    admin_audit_logs,
    event_registrations,
    organizer_events,
    organizers,
    profiles,
    user_reports,
)
from trust_moderation.infrastructure.db.timestamps import ensure_utc

NowCallable = Callable[[], datetime]

USER_MODERATION_ACTIONS: tuple[str, ...] = (
    AuditActionType.USER_WARNED.value,
    AuditActionType.USER_MUTED.value,
    AuditActionType.USER_SUSPENDED.value,
    AuditActionType.USER_BANNED.value,
)
ORGANIZER_VIOLATION_ACTIONS: tuple[str, ...] = (
    AuditActionType.ORGANIZER_WARNED.value,
    AuditActionType.ORGANIZER_VIOLATION.value,
)
APPROVED_EVENT_STATUSES: tuple[str, ...] = ("published", "ended")


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _age_days(created_at: datetime, now: datetime) -> int:
    return max((now - ensure_utc(created_at)).days, 0)


def _count(table: sa.Table, *conditions: sa.ColumnElement[bool]) -> sa.ScalarSelect[int]:
    return sa.select(sa.func.count()).select_from(table).where(*conditions).scalar_subquery()


class SqlAlchemyFactorSnapshotQueries(FactorSnapshotPort):
    """Build factor snapshots with one aggregate query per subject."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        now: NowCallable = _utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._now = now

    async def fetch_subject_factors(self, *, subject_id: str) -> SubjectTrustFactors | None:
        statement = sa.select(
            profiles.c.created_at,
            profiles.c.is_verified,
            _count(
                event_registrations,
                event_registrations.c.profile_id == profiles.c.profile_id,
                event_registrations.c.completed.is_(True),
            ).label("successful_events"),
            _count(
                user_reports,
                user_reports.c.reporter_id == profiles.c.profile_id,
                user_reports.c.status == "valid",
            ).label("reports_filed_valid"),
            _count(
                user_reports,
                user_reports.c.reported_id == profiles.c.profile_id,
            ).label("reports_received"),
            _count(
                admin_audit_logs,
                admin_audit_logs.c.target_type == AuditTargetType.USER.value,
                admin_audit_logs.c.target_id == profiles.c.profile_id,
                admin_audit_logs.c.action_type.in_(USER_MODERATION_ACTIONS),
            ).label("moderation_actions"),
        ).where(profiles.c.profile_id == subject_id)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return SubjectTrustFactors(
            account_age_days=_age_days(cast(datetime, row["created_at"]), self._now()),
            successful_events=int(row["successful_events"]),
            reports_filed_valid=int(row["reports_filed_valid"]),
            reports_received=int(row["reports_received"]),
            moderation_actions=int(row["moderation_actions"]),
            verified_identity=bool(row["is_verified"]),
        )

    async def fetch_organizer_factors(self, *, organizer_id: str) -> OrganizerTrustFactors | None:
        owned_event = organizer_events.c.organizer_id == organizers.c.organizer_id
        participants = (
            sa.select(sa.func.count())
            .select_from(
                event_registrations.join(
                    organizer_events,
                    event_registrations.c.event_id == organizer_events.c.event_id,
                )
            )
            .where(owned_event)
            .scalar_subquery()
        )
        statement = sa.select(
            organizers.c.created_at,
            _count(organizer_events, owned_event).label("total_events"),
            _count(
                organizer_events,
                owned_event,
                organizer_events.c.status.in_(APPROVED_EVENT_STATUSES),
            ).label("approved_events"),
            _count(
                organizer_events,
                owned_event,
                organizer_events.c.status == "rejected",
            ).label("rejected_events"),
            participants.label("total_participants"),
            _count(
                admin_audit_logs,
                admin_audit_logs.c.target_type == AuditTargetType.ORGANIZER.value,
                admin_audit_logs.c.target_id == organizers.c.organizer_id,
                admin_audit_logs.c.action_type.in_(ORGANIZER_VIOLATION_ACTIONS),
            ).label("violations"),
        ).where(organizers.c.organizer_id == organizer_id)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return OrganizerTrustFactors(
            account_age_days=_age_days(cast(datetime, row["created_at"]), self._now()),
            total_events=int(row["total_events"]),
            approved_events=int(row["approved_events"]),
            rejected_events=int(row["rejected_events"]),
            total_participants=int(row["total_participants"]),
            violations=int(row["violations"]),
        )
