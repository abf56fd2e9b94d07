"""Admin role types, permission vocabulary, and default permission tables."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType
from uuid import UUID


class AdminRoleType(StrEnum):
    """Supported admin role types, lowest privilege first."""

    VIEWER = "viewer"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AdminPermission(StrEnum):
    """Every permission an admin role can carry."""

    APPROVE_EVENTS = "can_approve_hackathons"
    REJECT_EVENTS = "can_reject_hackathons"
    DELETE_EVENTS = "can_delete_hackathons"
    EDIT_EVENTS = "can_edit_hackathons"
    UNPUBLISH_EVENTS = "can_unpublish_hackathons"
    FEATURE_EVENTS = "can_feature_hackathons"
    MODERATE_USERS = "can_moderate_users"
    BAN_USERS = "can_ban_users"
    DELETE_USERS = "can_delete_users"
    MANAGE_ADMINS = "can_manage_admins"
    VIEW_AUDIT_LOGS = "can_view_audit_logs"
    EXPORT_DATA = "can_export_data"
    ACCESS_ANALYTICS = "can_access_analytics"
    SEND_ANNOUNCEMENTS = "can_send_announcements"
    MANAGE_QUEUE = "can_manage_queue"
    REVOKE_ORGANIZERS = "can_revoke_organizers"


class UnknownRoleTypeError(ValueError):
    """Raised when a role name is not one of the supported role types."""

    def __init__(self, *, value: object) -> None:
        super().__init__(f"unknown admin role type: {value!r}")
        self.value = value


class UnknownPermissionError(ValueError):
    """Raised when a permission name is not part of the permission vocabulary."""

    def __init__(self, *, value: object) -> None:
        super().__init__(f"unknown admin permission: {value!r}")
        self.value = value


PermissionMap = Mapping[AdminPermission, bool]

_ROLE_LEVELS: Mapping[AdminRoleType, int] = MappingProxyType(
    {
        AdminRoleType.VIEWER: 1,
        AdminRoleType.MODERATOR: 2,
        AdminRoleType.ADMIN: 3,
        AdminRoleType.SUPER_ADMIN: 4,
    }
)

_GRANTED_BY_DEFAULT: Mapping[AdminRoleType, frozenset[AdminPermission]] = MappingProxyType(
    {
        AdminRoleType.SUPER_ADMIN: frozenset(AdminPermission),
        AdminRoleType.ADMIN: frozenset(AdminPermission)
        - {AdminPermission.DELETE_USERS, AdminPermission.MANAGE_ADMINS},
        AdminRoleType.MODERATOR: frozenset(
            {
                AdminPermission.APPROVE_EVENTS,
                AdminPermission.REJECT_EVENTS,
                AdminPermission.MODERATE_USERS,
                AdminPermission.VIEW_AUDIT_LOGS,
                AdminPermission.ACCESS_ANALYTICS,
                AdminPermission.MANAGE_QUEUE,
            }
        ),
        AdminRoleType.VIEWER: frozenset({AdminPermission.ACCESS_ANALYTICS}),
    }
)


@dataclass(frozen=True)
class AdminRole:
    """Role assignment for one admin subject."""

    role_id: UUID
    subject_id: str
    role_type: AdminRoleType
    permissions: PermissionMap
    created_by: str | None
    created_at: datetime
    updated_at: datetime

    def is_granted(self, permission: AdminPermission) -> bool:
        return self.permissions.get(permission) is True


def parse_role_type(value: AdminRoleType | str) -> AdminRoleType:
    """Resolve a role name, raising on anything outside the vocabulary."""

    try:
        return AdminRoleType(value)
    except ValueError as error:
        raise UnknownRoleTypeError(value=value) from error


def parse_permission(value: AdminPermission | str) -> AdminPermission:
    """Resolve a permission name, raising on anything outside the vocabulary."""

    try:
        return AdminPermission(value)
    except ValueError as error:
        raise UnknownPermissionError(value=value) from error


def default_permissions(role_type: AdminRoleType | str) -> dict[AdminPermission, bool]:
    """Return a fresh full permission map for a role type."""

    granted = _GRANTED_BY_DEFAULT[parse_role_type(role_type)]
    return {permission: permission in granted for permission in AdminPermission}


def merge_permissions(
    role_type: AdminRoleType | str,
    overrides: Mapping[AdminPermission | str, bool] | None = None,
) -> dict[AdminPermission, bool]:
    """Apply explicit overrides on top of a role type's defaults."""

    merged = default_permissions(role_type)
    for key, value in (overrides or {}).items():
        merged[parse_permission(key)] = bool(value)
    return merged


def build_admin_role(
    *,
    role_id: UUID,
    subject_id: str,
    role_type: AdminRoleType | str,
    created_at: datetime,
    created_by: str | None = None,
    overrides: Mapping[AdminPermission | str, bool] | None = None,
) -> AdminRole:
    """Build a new role with default permissions plus overrides."""

    if not subject_id.strip():
        raise ValueError("subject_id cannot be blank")
    resolved = parse_role_type(role_type)
    return AdminRole(
        role_id=role_id,
        subject_id=subject_id,
        role_type=resolved,
        permissions=MappingProxyType(merge_permissions(resolved, overrides)),
        created_by=created_by,
        created_at=created_at,
        updated_at=created_at,
    )


def apply_admin_role_update(
    role: AdminRole,
    *,
    updated_at: datetime,
    role_type: AdminRoleType | str | None = None,
    overrides: Mapping[AdminPermission | str, bool] | None = None,
) -> AdminRole:
    """Return an updated copy of a role.

    A role type change resets permissions to the new type's defaults before
    overrides are applied; otherwise overrides patch the current map.
    """

    if role_type is None and overrides is None:
        raise ValueError("at least one of role_type or overrides must be provided")

    new_type = role.role_type if role_type is None else parse_role_type(role_type)
    if new_type != role.role_type:
        permissions = merge_permissions(new_type, overrides)
    else:
        permissions = dict(role.permissions)
        for key, value in (overrides or {}).items():
            permissions[parse_permission(key)] = bool(value)

    return replace(
        role,
        role_type=new_type,
        permissions=MappingProxyType(permissions),
        updated_at=updated_at,
    )


def enabled_permissions(permissions: PermissionMap) -> list[AdminPermission]:
    """Return granted permissions in vocabulary order."""

    return [permission for permission in AdminPermission if permissions.get(permission) is True]


def disabled_permissions(permissions: PermissionMap) -> list[AdminPermission]:
    """Return withheld permissions in vocabulary order."""

    return [permission for permission in AdminPermission if permissions.get(permission) is not True]


def get_role_level(role_type: AdminRoleType | str) -> int:
    """Return the privilege rank of a role type (viewer=1 .. super_admin=4)."""

    return _ROLE_LEVELS[parse_role_type(role_type)]


def has_higher_or_equal_role(
    acting: AdminRoleType | str,
    target: AdminRoleType | str,
) -> bool:
    return get_role_level(acting) >= get_role_level(target)
