"""Application service for granting, updating, and removing admin roles."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from uuid import uuid4

from trust_moderation.application.ports.admin_role_repository_port import AdminRoleRepositoryPort
from trust_moderation.application.ports.audit_repository_port import AuditRepositoryPort
from trust_moderation.application.services.moderation_service import (
    ActingAdmin,
    InvalidModerationReasonError,
    PermissionDeniedError,
)
from trust_moderation.domain.audit.entries import (
    AuditActionType,
    AuditEntryCreateInput,
    AuditTargetType,
)
from trust_moderation.domain.auth.permissions import PermissionEnforcer
from trust_moderation.domain.auth.roles import (
    AdminPermission,
    AdminRole,
    AdminRoleType,
    apply_admin_role_update,
    build_admin_role,
    enabled_permissions,
)

NowCallable = Callable[[], datetime]
logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class AdminRoleNotFoundError(LookupError):
    """Raised when the target subject holds no admin role."""

    def __init__(self, *, subject_id: str) -> None:
        super().__init__(f"admin role not found for subject: {subject_id}")
        self.subject_id = subject_id


class SelfRoleManagementError(PermissionError):
    """Raised when an admin tries to change or remove their own role."""

    def __init__(self) -> None:
        super().__init__("admins cannot manage their own role")


def _role_snapshot(role: AdminRole) -> dict[str, object]:
    return {
        "role_type": role.role_type.value,
        "permissions": [permission.value for permission in enabled_permissions(role.permissions)],
    }


class AdminRoleService:
    """Manage admin roles under the can_manage_admins rules."""

    def __init__(
        self,
        *,
        roles: AdminRoleRepositoryPort,
        audit: AuditRepositoryPort,
        permissions: PermissionEnforcer | None = None,
        now: NowCallable = _utc_now,
    ) -> None:
        self._roles = roles
        self._audit = audit
        self._permissions = permissions or PermissionEnforcer()
        self._now = now

    async def grant_role(
        self,
        *,
        subject_id: str,
        role_type: AdminRoleType | str,
        reason: str,
        acting_admin: ActingAdmin,
        overrides: Mapping[AdminPermission | str, bool] | None = None,
    ) -> AdminRole:
        """Assign a new role to a subject that holds none."""

        reason = _require_reason(reason)
        role = build_admin_role(
            role_id=uuid4(),
            subject_id=subject_id,
            role_type=role_type,
            created_at=self._now(),
            created_by=acting_admin.admin_id,
            overrides=overrides,
        )
        self._authorize(acting_admin, target=role)

        created = await self._roles.create_role(role)
        await self._write_audit(
            acting_admin=acting_admin,
            role=created,
            reason=reason,
            before=None,
            after=_role_snapshot(created),
        )
        logger.info(
            "admin_role_granted subject_id=%s role_type=%s admin_id=%s",
            subject_id,
            created.role_type.value,
            acting_admin.admin_id,
        )
        return created

    async def update_role(
        self,
        *,
        subject_id: str,
        reason: str,
        acting_admin: ActingAdmin,
        role_type: AdminRoleType | str | None = None,
        overrides: Mapping[AdminPermission | str, bool] | None = None,
    ) -> AdminRole:
        """Change role type and/or permission overrides of an existing role."""

        reason = _require_reason(reason)
        existing = await self._load_target(subject_id=subject_id, acting_admin=acting_admin)
        updated = apply_admin_role_update(
            existing,
            updated_at=self._now(),
            role_type=role_type,
            overrides=overrides,
        )
        # Promotion to super_admin needs the same authority as managing one.
        self._authorize(acting_admin, target=updated)

        saved = await self._roles.save_role(updated)
        await self._write_audit(
            acting_admin=acting_admin,
            role=saved,
            reason=reason,
            before=_role_snapshot(existing),
            after=_role_snapshot(saved),
        )
        logger.info(
            "admin_role_updated subject_id=%s role_type=%s admin_id=%s",
            subject_id,
            saved.role_type.value,
            acting_admin.admin_id,
        )
        return saved

    async def remove_role(
        self,
        *,
        subject_id: str,
        reason: str,
        acting_admin: ActingAdmin,
    ) -> None:
        """Delete a subject's role."""

        reason = _require_reason(reason)
        existing = await self._load_target(subject_id=subject_id, acting_admin=acting_admin)

        removed = await self._roles.delete_role(subject_id=subject_id)
        if not removed:
            raise AdminRoleNotFoundError(subject_id=subject_id)
        await self._write_audit(
            acting_admin=acting_admin,
            role=existing,
            reason=reason,
            before=_role_snapshot(existing),
            after=None,
        )
        logger.info(
            "admin_role_removed subject_id=%s admin_id=%s",
            subject_id,
            acting_admin.admin_id,
        )

    async def _load_target(self, *, subject_id: str, acting_admin: ActingAdmin) -> AdminRole:
        if subject_id == acting_admin.admin_id:
            raise SelfRoleManagementError()
        existing = await self._roles.get_by_subject_id(subject_id=subject_id)
        if existing is None:
            raise AdminRoleNotFoundError(subject_id=subject_id)
        self._authorize(acting_admin, target=existing)
        return existing

    def _authorize(self, acting_admin: ActingAdmin, *, target: AdminRole) -> None:
        decision = self._permissions.can_manage_admin_role(acting_admin.role, target)
        if not decision.allowed:
            logger.warning(
                "admin_role_permission_denied admin_id=%s target=%s reason=%s",
                acting_admin.admin_id,
                target.subject_id,
                decision.reason,
            )
            raise PermissionDeniedError(action="manage_admin_role", reason=decision.reason)

    async def _write_audit(
        self,
        *,
        acting_admin: ActingAdmin,
        role: AdminRole,
        reason: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        await self._audit.append_entry(
            AuditEntryCreateInput(
                action_type=AuditActionType.ROLE_CHANGED,
                actor_id=acting_admin.admin_id,
                actor_email=acting_admin.email,
                target_type=AuditTargetType.ADMIN_ROLE,
                target_id=role.subject_id,
                reason=reason,
                before_state=before,
                after_state=after,
            )
        )


def _require_reason(reason: str) -> str:
    stripped = reason.strip()
    if not stripped:
        raise InvalidModerationReasonError()
    return stripped
