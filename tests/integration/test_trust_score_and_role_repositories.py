from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import uuid4

import pytest
from alembic.config import Config

from alembic import command
from trust_moderation.application.ports.admin_role_repository_port import DuplicateAdminRoleError
from trust_moderation.domain.auth.roles import (
    AdminPermission,
    AdminRoleType,
    apply_admin_role_update,
    build_admin_role,
)
from trust_moderation.domain.trust.factors import (
    OrganizerTrustFactors,
    SubjectKind,
    SubjectTrustFactors,
)
from trust_moderation.domain.trust.flag_state import NOT_FLAGGED, Flagged
from trust_moderation.domain.trust.score_calculator import TrustScoreCalculator
from trust_moderation.infrastructure.db.admin_role_repository import SqlAlchemyAdminRoleRepository
from trust_moderation.infrastructure.db.session import create_session_factory
from trust_moderation.infrastructure.db.trust_score_repository import (
    SqlAlchemyTrustScoreRepository,
)

COMPUTED_AT = datetime(2026, 4, 2, 12, 0, tzinfo=UTC)


def _upgrade_head(tmp_path: Path, filename: str) -> str:
    db_path = tmp_path / filename
    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", f"sqlite+pysqlite:///{db_path}")
    command.upgrade(alembic_config, "head")
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.mark.asyncio
async def test_score_snapshot_upsert_replaces_previous_value(tmp_path: Path) -> None:
    async_url = _upgrade_head(tmp_path, "scores.db")
    repository = SqlAlchemyTrustScoreRepository(create_session_factory(async_url))
    calculator = TrustScoreCalculator()

    first = calculator.calculate(SubjectTrustFactors(), computed_at=COMPUTED_AT)
    second = calculator.calculate(
        SubjectTrustFactors(account_age_days=120, verified_identity=True),
        computed_at=COMPUTED_AT,
    )

    await repository.upsert_score_snapshot(subject_id="user-1", kind=SubjectKind.USER, result=first)
    assert await repository.get_score(subject_id="user-1", kind=SubjectKind.USER) == first.score

    await repository.upsert_score_snapshot(
        subject_id="user-1",
        kind=SubjectKind.USER,
        result=second,
    )
    assert await repository.get_score(subject_id="user-1", kind=SubjectKind.USER) == second.score
    assert await repository.get_score(subject_id="user-2", kind=SubjectKind.USER) is None


@pytest.mark.asyncio
async def test_organizer_score_upsert_keeps_flag_columns(tmp_path: Path) -> None:
    async_url = _upgrade_head(tmp_path, "organizer_scores.db")
    repository = SqlAlchemyTrustScoreRepository(create_session_factory(async_url))
    flagged = Flagged(reason="manual review", flagged_at=COMPUTED_AT)

    await repository.upsert_flag_state(organizer_id="org-1", state=flagged, flagged_by="admin-1")
    result = TrustScoreCalculator().calculate(
        OrganizerTrustFactors(approved_events=3, total_events=3),
        computed_at=COMPUTED_AT,
    )
    await repository.upsert_score_snapshot(
        subject_id="org-1",
        kind=SubjectKind.ORGANIZER,
        result=result,
    )

    assert await repository.get_flag_state(organizer_id="org-1") == flagged
    assert await repository.get_score(subject_id="org-1", kind=SubjectKind.ORGANIZER) == (
        result.score
    )


@pytest.mark.asyncio
async def test_flag_state_round_trip(tmp_path: Path) -> None:
    async_url = _upgrade_head(tmp_path, "flags.db")
    repository = SqlAlchemyTrustScoreRepository(create_session_factory(async_url))

    assert await repository.get_flag_state(organizer_id="org-missing") == NOT_FLAGGED

    flagged = Flagged(reason="Organizer status revoked: fraud", flagged_at=COMPUTED_AT)
    await repository.upsert_flag_state(organizer_id="org-1", state=flagged, flagged_by="admin-1")
    assert await repository.get_flag_state(organizer_id="org-1") == flagged
    assert await repository.get_score(subject_id="org-1", kind=SubjectKind.ORGANIZER) == 50

    await repository.upsert_flag_state(organizer_id="org-1", state=NOT_FLAGGED)
    assert await repository.get_flag_state(organizer_id="org-1") == NOT_FLAGGED


@pytest.mark.asyncio
async def test_flagged_organizers_are_listed_newest_first(tmp_path: Path) -> None:
    async_url = _upgrade_head(tmp_path, "flagged_list.db")
    repository = SqlAlchemyTrustScoreRepository(create_session_factory(async_url))
    older = Flagged(reason="auto: low score", flagged_at=COMPUTED_AT - timedelta(days=2))
    newer = Flagged(reason="manual review", flagged_at=COMPUTED_AT)

    await repository.upsert_flag_state(organizer_id="org-old", state=older)
    await repository.upsert_flag_state(organizer_id="org-new", state=newer, flagged_by="admin-1")
    await repository.upsert_flag_state(organizer_id="org-clean", state=NOT_FLAGGED)
    await repository.upsert_flag_state(organizer_id="org-cleared", state=newer)
    await repository.upsert_flag_state(organizer_id="org-cleared", state=NOT_FLAGGED)

    flagged = await repository.list_flagged_organizers()

    assert [item.organizer_id for item in flagged] == ["org-new", "org-old"]
    assert flagged[0].flag == newer
    assert flagged[0].flagged_by == "admin-1"
    assert flagged[0].score == 50
    assert flagged[1].flag == older
    assert flagged[1].flagged_by is None


@pytest.mark.asyncio
async def test_admin_role_create_fetch_update_delete(tmp_path: Path) -> None:
    async_url = _upgrade_head(tmp_path, "roles.db")
    repository = SqlAlchemyAdminRoleRepository(create_session_factory(async_url))
    role = build_admin_role(
        role_id=uuid4(),
        subject_id="admin-2",
        role_type=AdminRoleType.MODERATOR,
        created_at=COMPUTED_AT,
        created_by="admin-1",
        overrides={AdminPermission.REVOKE_ORGANIZERS: True},
    )

    await repository.create_role(role)
    stored = await repository.get_by_subject_id(subject_id="admin-2")

    assert stored is not None
    assert stored.role_id == role.role_id
    assert stored.role_type == AdminRoleType.MODERATOR
    assert stored.is_granted(AdminPermission.REVOKE_ORGANIZERS)
    assert stored.is_granted(AdminPermission.MODERATE_USERS)
    assert not stored.is_granted(AdminPermission.MANAGE_ADMINS)
    assert stored.created_at == COMPUTED_AT

    promoted = apply_admin_role_update(
        stored,
        updated_at=datetime(2026, 4, 3, tzinfo=UTC),
        role_type=AdminRoleType.ADMIN,
    )
    await repository.save_role(promoted)
    reloaded = await repository.get_by_subject_id(subject_id="admin-2")

    assert reloaded is not None
    assert reloaded.role_type == AdminRoleType.ADMIN
    assert dict(reloaded.permissions) == dict(promoted.permissions)

    assert await repository.delete_role(subject_id="admin-2") is True
    assert await repository.delete_role(subject_id="admin-2") is False
    assert await repository.get_by_subject_id(subject_id="admin-2") is None


@pytest.mark.asyncio
async def test_admin_role_is_unique_per_subject(tmp_path: Path) -> None:
    async_url = _upgrade_head(tmp_path, "roles_unique.db")
    repository = SqlAlchemyAdminRoleRepository(create_session_factory(async_url))

    await repository.create_role(
        build_admin_role(
            role_id=uuid4(),
            subject_id="admin-2",
            role_type=AdminRoleType.VIEWER,
            created_at=COMPUTED_AT,
        )
    )

    with pytest.raises(DuplicateAdminRoleError):
        await repository.create_role(
            build_admin_role(
                role_id=uuid4(),
                subject_id="admin-2",
                role_type=AdminRoleType.ADMIN,
                created_at=COMPUTED_AT,
            )
        )


@pytest.mark.asyncio
async def test_save_role_for_unknown_subject_raises(tmp_path: Path) -> None:
    async_url = _upgrade_head(tmp_path, "roles_missing.db")
    repository = SqlAlchemyAdminRoleRepository(create_session_factory(async_url))
    role = build_admin_role(
        role_id=uuid4(),
        subject_id="ghost",
        role_type=AdminRoleType.VIEWER,
        created_at=COMPUTED_AT,
    )

    with pytest.raises(LookupError):
        await repository.save_role(role)
