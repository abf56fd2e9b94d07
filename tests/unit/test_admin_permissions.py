from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from trust_moderation.domain.auth.permissions import (
    GRANTED_REASON,
    NO_ROLE_REASON,
    SUPER_ADMIN_TARGET_REASON,
    PermissionEnforcer,
)
from trust_moderation.domain.auth.roles import (
    AdminPermission,
    AdminRole,
    AdminRoleType,
    UnknownPermissionError,
    UnknownRoleTypeError,
    apply_admin_role_update,
    build_admin_role,
    default_permissions,
    disabled_permissions,
    enabled_permissions,
    get_role_level,
    has_higher_or_equal_role,
)

CREATED_AT = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)


def _role(
    role_type: AdminRoleType,
    overrides: dict[AdminPermission | str, bool] | None = None,
) -> AdminRole:
    return build_admin_role(
        role_id=uuid4(),
        subject_id=f"{role_type.value}-1",
        role_type=role_type,
        created_at=CREATED_AT,
        overrides=overrides,
    )


def test_default_permission_tables() -> None:
    assert all(default_permissions(AdminRoleType.SUPER_ADMIN).values())

    admin_disabled = disabled_permissions(default_permissions(AdminRoleType.ADMIN))
    assert admin_disabled == [AdminPermission.DELETE_USERS, AdminPermission.MANAGE_ADMINS]

    moderator = enabled_permissions(default_permissions(AdminRoleType.MODERATOR))
    assert moderator == [
        AdminPermission.APPROVE_EVENTS,
        AdminPermission.REJECT_EVENTS,
        AdminPermission.MODERATE_USERS,
        AdminPermission.VIEW_AUDIT_LOGS,
        AdminPermission.ACCESS_ANALYTICS,
        AdminPermission.MANAGE_QUEUE,
    ]

    viewer = enabled_permissions(default_permissions("viewer"))
    assert viewer == [AdminPermission.ACCESS_ANALYTICS]


def test_role_levels_are_ordered() -> None:
    levels = [get_role_level(role_type) for role_type in AdminRoleType]

    assert levels == [1, 2, 3, 4]
    assert has_higher_or_equal_role("admin", "moderator")
    assert has_higher_or_equal_role(AdminRoleType.ADMIN, AdminRoleType.ADMIN)
    assert not has_higher_or_equal_role("viewer", "moderator")


def test_unknown_names_raise() -> None:
    with pytest.raises(UnknownRoleTypeError):
        get_role_level("owner")
    with pytest.raises(UnknownPermissionError):
        PermissionEnforcer().check_permission(_role(AdminRoleType.ADMIN), "can_fly")


def test_overrides_apply_on_top_of_defaults() -> None:
    role = _role(
        AdminRoleType.MODERATOR,
        overrides={"can_revoke_organizers": True, AdminPermission.MANAGE_QUEUE: False},
    )

    assert role.is_granted(AdminPermission.REVOKE_ORGANIZERS)
    assert not role.is_granted(AdminPermission.MANAGE_QUEUE)
    assert role.is_granted(AdminPermission.MODERATE_USERS)


def test_role_type_change_resets_permissions() -> None:
    role = _role(AdminRoleType.VIEWER, overrides={"can_export_data": True})
    updated_at = datetime(2026, 2, 1, tzinfo=UTC)

    promoted = apply_admin_role_update(role, updated_at=updated_at, role_type="moderator")

    assert promoted.role_type == AdminRoleType.MODERATOR
    assert not promoted.is_granted(AdminPermission.EXPORT_DATA)
    assert promoted.is_granted(AdminPermission.MODERATE_USERS)
    assert promoted.updated_at == updated_at
    assert promoted.created_at == CREATED_AT


def test_override_only_update_patches_current_map() -> None:
    role = _role(AdminRoleType.VIEWER, overrides={"can_export_data": True})

    patched = apply_admin_role_update(
        role,
        updated_at=CREATED_AT,
        overrides={"can_view_audit_logs": True},
    )

    assert patched.is_granted(AdminPermission.EXPORT_DATA)
    assert patched.is_granted(AdminPermission.VIEW_AUDIT_LOGS)


def test_empty_update_is_rejected() -> None:
    with pytest.raises(ValueError):
        apply_admin_role_update(_role(AdminRoleType.ADMIN), updated_at=CREATED_AT)


def test_check_permission_reasons() -> None:
    enforcer = PermissionEnforcer()
    moderator = _role(AdminRoleType.MODERATOR)

    granted = enforcer.check_permission(moderator, AdminPermission.MODERATE_USERS)
    denied = enforcer.check_permission(moderator, "can_ban_users")
    absent = enforcer.check_permission(None, AdminPermission.MODERATE_USERS)

    assert granted.allowed is True
    assert granted.reason == GRANTED_REASON
    assert granted.role_type == AdminRoleType.MODERATOR
    assert denied.allowed is False
    assert denied.reason == "Permission denied: can_ban_users"
    assert absent.allowed is False
    assert absent.reason == NO_ROLE_REASON


def test_check_any_and_check_all() -> None:
    enforcer = PermissionEnforcer()
    moderator = _role(AdminRoleType.MODERATOR)

    any_result = enforcer.check_any(
        moderator,
        [AdminPermission.BAN_USERS, AdminPermission.MODERATE_USERS],
    )
    all_result = enforcer.check_all(
        moderator,
        [AdminPermission.BAN_USERS, AdminPermission.MODERATE_USERS, AdminPermission.EXPORT_DATA],
    )

    assert any_result.allowed is True
    assert any_result.required_permission == AdminPermission.MODERATE_USERS
    assert all_result.allowed is False
    assert all_result.reason == "Permission denied: can_ban_users, can_export_data"
    assert enforcer.check_all(moderator, []).allowed is True
    assert enforcer.check_any(moderator, []).allowed is False
    assert enforcer.check_all(None, []).allowed is False


def test_only_super_admin_manages_super_admins() -> None:
    enforcer = PermissionEnforcer()
    super_admin = _role(AdminRoleType.SUPER_ADMIN)
    admin_with_manage = _role(AdminRoleType.ADMIN, overrides={"can_manage_admins": True})
    plain_admin = _role(AdminRoleType.ADMIN)

    assert enforcer.can_manage_admin_role(super_admin, super_admin).allowed is True
    assert enforcer.can_manage_admin_role(admin_with_manage, _role(AdminRoleType.VIEWER)).allowed

    blocked = enforcer.can_manage_admin_role(admin_with_manage, super_admin)
    assert blocked.allowed is False
    assert blocked.reason == SUPER_ADMIN_TARGET_REASON

    assert enforcer.can_manage_admin_role(plain_admin).allowed is False
    assert enforcer.can_manage_admin_role(None).reason == NO_ROLE_REASON


@pytest.mark.parametrize("permission", list(AdminPermission))
def test_absent_role_is_denied_every_permission(permission: AdminPermission) -> None:
    enforcer = PermissionEnforcer()

    result = enforcer.check_permission(None, permission)

    assert result.allowed is False
    assert result.reason == NO_ROLE_REASON
    assert result.required_permission == permission
    assert result.role_type is None
    assert enforcer.check_permission(None, permission.value).allowed is False
