"""Allow/deny decisions for admin actions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from trust_moderation.domain.auth.roles import (
    AdminPermission,
    AdminRole,
    AdminRoleType,
    parse_permission,
)

NO_ROLE_REASON = "No admin role assigned"
GRANTED_REASON = "Permission granted"
SUPER_ADMIN_TARGET_REASON = "Cannot manage super_admin role"


@dataclass(frozen=True)
class PermissionCheckResult:
    """Decision plus a human-readable reason; never a bare boolean."""

    allowed: bool
    reason: str
    required_permission: AdminPermission | None = None
    role_type: AdminRoleType | None = None


def _denied_reason(permissions: Iterable[AdminPermission]) -> str:
    return "Permission denied: " + ", ".join(permission.value for permission in permissions)


class PermissionEnforcer:
    """Stateless role/permission checks.

    Every check returns a result for absent roles as well; only unknown
    permission names raise.
    """

    def check_permission(
        self,
        role: AdminRole | None,
        permission: AdminPermission | str,
    ) -> PermissionCheckResult:
        resolved = parse_permission(permission)
        if role is None:
            return PermissionCheckResult(
                allowed=False,
                reason=NO_ROLE_REASON,
                required_permission=resolved,
            )
        if role.is_granted(resolved):
            return PermissionCheckResult(
                allowed=True,
                reason=GRANTED_REASON,
                required_permission=resolved,
                role_type=role.role_type,
            )
        return PermissionCheckResult(
            allowed=False,
            reason=_denied_reason([resolved]),
            required_permission=resolved,
            role_type=role.role_type,
        )

    def check_any(
        self,
        role: AdminRole | None,
        permissions: Iterable[AdminPermission | str],
    ) -> PermissionCheckResult:
        """Allow when at least one listed permission is granted."""

        resolved = [parse_permission(permission) for permission in permissions]
        if role is None:
            return PermissionCheckResult(allowed=False, reason=NO_ROLE_REASON)
        for permission in resolved:
            if role.is_granted(permission):
                return PermissionCheckResult(
                    allowed=True,
                    reason=GRANTED_REASON,
                    required_permission=permission,
                    role_type=role.role_type,
                )
        return PermissionCheckResult(
            allowed=False,
            reason=_denied_reason(resolved),
            role_type=role.role_type,
        )

    def check_all(
        self,
        role: AdminRole | None,
        permissions: Iterable[AdminPermission | str],
    ) -> PermissionCheckResult:
        """Allow when every listed permission is granted; an empty list is allowed."""

        resolved = [parse_permission(permission) for permission in permissions]
        if role is None:
            return PermissionCheckResult(allowed=False, reason=NO_ROLE_REASON)
        missing = [permission for permission in resolved if not role.is_granted(permission)]
        if missing:
            return PermissionCheckResult(
                allowed=False,
                reason=_denied_reason(missing),
                required_permission=missing[0],
                role_type=role.role_type,
            )
        return PermissionCheckResult(
            allowed=True,
            reason=GRANTED_REASON,
            role_type=role.role_type,
        )

    def can_manage_admin_role(
        self,
        acting: AdminRole | None,
        target: AdminRole | None = None,
    ) -> PermissionCheckResult:
        """Require can_manage_admins; super_admin targets need a super_admin actor."""

        base = self.check_permission(acting, AdminPermission.MANAGE_ADMINS)
        if not base.allowed or acting is None:
            return base
        if (
            target is not None
            and target.role_type == AdminRoleType.SUPER_ADMIN
            and acting.role_type != AdminRoleType.SUPER_ADMIN
        ):
            return PermissionCheckResult(
                allowed=False,
                reason=SUPER_ADMIN_TARGET_REASON,
                required_permission=AdminPermission.MANAGE_ADMINS,
                role_type=acting.role_type,
            )
        return base
