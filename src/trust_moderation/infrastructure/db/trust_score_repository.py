"""SQLAlchemy adapter for trust score snapshots and organizer flags."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.ports.trust_score_repository_port import (
    FlaggedOrganizer,
    TrustScoreRepositoryPort,
)
from trust_moderation.domain.trust.factors import SubjectKind
from trust_moderation.domain.trust.flag_state import (
    NOT_FLAGGED,
    Flagged,
    FlagState,
    flag_state_columns,
    flag_state_from_columns,
)
from trust_moderation.domain.trust.score_calculator import TrustScoreResult
from trust_moderation.infrastructure.db.metadata import (
    organizer_trust_scores,
    user_trust_scores,
)
from trust_moderation.infrastructure.db.timestamps import ensure_utc, ensure_utc_or_none, to_utc


class SqlAlchemyTrustScoreRepository(TrustScoreRepositoryPort):
    """Trust score repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert_score_snapshot(
        self,
        *,
        subject_id: str,
        kind: SubjectKind,
        result: TrustScoreResult,
    ) -> None:
        """Replace the latest score row; organizer flag columns are left untouched."""

        values: dict[str, Any] = {
            "score": result.score,
            "factors": result.factors.as_dict(),
            "breakdown": result.breakdown.as_dict(),
            "last_calculated_at": to_utc(result.computed_at),
        }
        if kind == SubjectKind.ORGANIZER:
            table, key_column = organizer_trust_scores, organizer_trust_scores.c.organizer_id
            key_name = "organizer_id"
        else:
            table, key_column = user_trust_scores, user_trust_scores.c.subject_id
            key_name = "subject_id"

        async with self._session_factory() as session:
            updated = cast(
                CursorResult[Any],
                await session.execute(
                    sa.update(table).where(key_column == subject_id).values(**values)
                ),
            )
            if updated.rowcount == 0:
                await session.execute(sa.insert(table).values(**{key_name: subject_id}, **values))
            await session.commit()

    async def upsert_flag_state(
        self,
        *,
        organizer_id: str,
        state: FlagState,
        flagged_by: str | None = None,
    ) -> None:
        """Write is_flagged, flag_reason, and flagged_at in one statement."""

        columns = flag_state_columns(state)
        flagged_at = columns["flagged_at"]
        values: dict[str, Any] = {
            "is_flagged": columns["is_flagged"],
            "flag_reason": columns["flag_reason"],
            "flagged_at": to_utc(flagged_at) if isinstance(flagged_at, datetime) else None,
            "flagged_by": flagged_by if state.is_flagged else None,
        }

        async with self._session_factory() as session:
            updated = cast(
                CursorResult[Any],
                await session.execute(
                    sa.update(organizer_trust_scores)
                    .where(organizer_trust_scores.c.organizer_id == organizer_id)
                    .values(**values)
                ),
            )
            if updated.rowcount == 0:
                await session.execute(
                    sa.insert(organizer_trust_scores).values(organizer_id=organizer_id, **values)
                )
            await session.commit()

    async def get_flag_state(self, *, organizer_id: str) -> FlagState:
        """Return stored flag state; organizers without a score row are not flagged."""

        statement = sa.select(
            organizer_trust_scores.c.is_flagged,
            organizer_trust_scores.c.flag_reason,
            organizer_trust_scores.c.flagged_at,
        ).where(organizer_trust_scores.c.organizer_id == organizer_id)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return NOT_FLAGGED
        return flag_state_from_columns(
            is_flagged=bool(row["is_flagged"]),
            reason=cast(str | None, row["flag_reason"]),
            flagged_at=ensure_utc_or_none(cast(datetime | None, row["flagged_at"])),
        )

    async def list_flagged_organizers(self) -> list[FlaggedOrganizer]:
        """Return flagged organizers ordered by flagged_at descending."""

        statement = (
            sa.select(
                organizer_trust_scores.c.organizer_id,
                organizer_trust_scores.c.score,
                organizer_trust_scores.c.flag_reason,
                organizer_trust_scores.c.flagged_at,
                organizer_trust_scores.c.flagged_by,
            )
            .where(organizer_trust_scores.c.is_flagged.is_(True))
            .order_by(
                organizer_trust_scores.c.flagged_at.desc(),
                organizer_trust_scores.c.organizer_id.asc(),
            )
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [
            FlaggedOrganizer(
                organizer_id=cast(str, row["organizer_id"]),
                score=int(row["score"]),
                flag=Flagged(
                    reason=cast(str, row["flag_reason"]),
                    flagged_at=ensure_utc(cast(datetime, row["flagged_at"])),
                ),
                flagged_by=cast(str | None, row["flagged_by"]),
            )
            for row in result.mappings().all()
        ]

    async def get_score(self, *, subject_id: str, kind: SubjectKind) -> int | None:
        """Return the latest stored score, if any."""

        if kind == SubjectKind.ORGANIZER:
            statement = sa.select(organizer_trust_scores.c.score).where(
                organizer_trust_scores.c.organizer_id == subject_id
            )
        else:
            statement = sa.select(user_trust_scores.c.score).where(
                user_trust_scores.c.subject_id == subject_id
            )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        score = result.scalar_one_or_none()
        return None if score is None else int(score)
