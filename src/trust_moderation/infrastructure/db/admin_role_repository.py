"""SQLAlchemy adapter for admin role assignments."""

from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.ports.admin_role_repository_port import (
    AdminRoleRepositoryPort,
    DuplicateAdminRoleError,
)
from trust_moderation.domain.auth.roles import (
    AdminRole,
    AdminRoleType,
    merge_permissions,
)
from trust_moderation.infrastructure.db.metadata import admin_roles
from trust_moderation.infrastructure.db.timestamps import ensure_utc, to_utc


def _is_duplicate_subject_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "subject_id" in message or "uq_admin_roles_subject_id" in message


class SqlAlchemyAdminRoleRepository(AdminRoleRepositoryPort):
    """Admin role repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_subject_id(self, *, subject_id: str) -> AdminRole | None:
        statement = sa.select(admin_roles).where(admin_roles.c.subject_id == subject_id).limit(1)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_admin_role(row)

    async def create_role(self, role: AdminRole) -> AdminRole:
        """Insert a role row; one role per subject."""

        statement = sa.insert(admin_roles).values(
            role_id=role.role_id,
            subject_id=role.subject_id,
            role_type=role.role_type.value,
            permissions=_permissions_json(role),
            created_by=role.created_by,
            created_at=to_utc(role.created_at),
            updated_at=to_utc(role.updated_at),
        )

        async with self._session_factory() as session:
            try:
                await session.execute(statement)
                await session.commit()
            except IntegrityError as error:
                await session.rollback()
                if _is_duplicate_subject_error(error):
                    raise DuplicateAdminRoleError(subject_id=role.subject_id) from error
                raise
        return role

    async def save_role(self, role: AdminRole) -> AdminRole:
        statement = (
            sa.update(admin_roles)
            .where(admin_roles.c.role_id == role.role_id)
            .values(
                role_type=role.role_type.value,
                permissions=_permissions_json(role),
                updated_at=to_utc(role.updated_at),
            )
        )

        async with self._session_factory() as session:
            result = cast(CursorResult[Any], await session.execute(statement))
            await session.commit()

        if result.rowcount == 0:
            raise LookupError(f"admin role not found: {role.role_id}")
        return role

    async def delete_role(self, *, subject_id: str) -> bool:
        statement = sa.delete(admin_roles).where(admin_roles.c.subject_id == subject_id)

        async with self._session_factory() as session:
            result = cast(CursorResult[Any], await session.execute(statement))
            await session.commit()

        return bool(result.rowcount)


def _permissions_json(role: AdminRole) -> dict[str, bool]:
    return {permission.value: granted for permission, granted in role.permissions.items()}


def _to_admin_role(row: sa.RowMapping) -> AdminRole:
    raw_role_id = row["role_id"]
    role_type = AdminRoleType(cast(str, row["role_type"]))
    # Rows written before a permission existed fall back to the role default for it.
    permissions = merge_permissions(role_type, cast("dict[str, bool]", row["permissions"]))
    return AdminRole(
        role_id=raw_role_id if isinstance(raw_role_id, UUID) else UUID(str(raw_role_id)),
        subject_id=cast(str, row["subject_id"]),
        role_type=role_type,
        permissions=MappingProxyType(permissions),
        created_by=cast(str | None, row["created_by"]),
        created_at=ensure_utc(cast(datetime, row["created_at"])),
        updated_at=ensure_utc(cast(datetime, row["updated_at"])),
    )
