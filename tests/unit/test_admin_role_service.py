from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from trust_moderation.application.ports.admin_role_repository_port import DuplicateAdminRoleError
from trust_moderation.application.services.admin_role_service import (
    AdminRoleNotFoundError,
    AdminRoleService,
    SelfRoleManagementError,
)
from trust_moderation.application.services.moderation_service import (
    ActingAdmin,
    InvalidActingAdminError,
    InvalidModerationReasonError,
    PermissionDeniedError,
)
from trust_moderation.domain.audit.entries import (
    AuditActionType,
    AuditEntryCreateInput,
    AuditLogEntry,
    AuditTargetType,
)
from trust_moderation.domain.auth.roles import (
    AdminPermission,
    AdminRole,
    AdminRoleType,
    build_admin_role,
)

NOW = datetime(2026, 7, 1, 12, 0, tzinfo=UTC)


class FakeRoleRepository:
    def __init__(self, roles: list[AdminRole] | None = None) -> None:
        self.roles = {role.subject_id: role for role in roles or []}

    async def get_by_subject_id(self, *, subject_id: str) -> AdminRole | None:
        return self.roles.get(subject_id)

    async def create_role(self, role: AdminRole) -> AdminRole:
        if role.subject_id in self.roles:
            raise DuplicateAdminRoleError(subject_id=role.subject_id)
        self.roles[role.subject_id] = role
        return role

    async def save_role(self, role: AdminRole) -> AdminRole:
        self.roles[role.subject_id] = role
        return role

    async def delete_role(self, *, subject_id: str) -> bool:
        return self.roles.pop(subject_id, None) is not None


class FakeAuditRepository:
    def __init__(self) -> None:
        self.entries: list[AuditEntryCreateInput] = []

    async def append_entry(self, payload: AuditEntryCreateInput) -> AuditLogEntry:
        self.entries.append(payload)
        return AuditLogEntry(
            entry_id=uuid4(),
            action_type=payload.action_type,
            actor_id=payload.actor_id,
            actor_email=payload.actor_email,
            target_type=payload.target_type,
            target_id=payload.target_id,
            reason=payload.reason,
            before_state=payload.before_state,
            after_state=payload.after_state,
            created_at=NOW,
        )

    async def query_entries(self, *, filters, page=1, limit=50):  # pragma: no cover
        raise NotImplementedError


def _role(subject_id: str, role_type: AdminRoleType) -> AdminRole:
    return build_admin_role(
        role_id=uuid4(),
        subject_id=subject_id,
        role_type=role_type,
        created_at=NOW,
    )


def _acting(role_type: AdminRoleType, **overrides: bool) -> ActingAdmin:
    role = build_admin_role(
        role_id=uuid4(),
        subject_id="actor-1",
        role_type=role_type,
        created_at=NOW,
        overrides=overrides or None,
    )
    return ActingAdmin(admin_id="actor-1", email="actor@example.org", role=role)


@pytest.mark.asyncio
async def test_grant_role_creates_and_audits() -> None:
    roles = FakeRoleRepository()
    audit = FakeAuditRepository()
    service = AdminRoleService(roles=roles, audit=audit, now=lambda: NOW)

    created = await service.grant_role(
        subject_id="user-9",
        role_type="moderator",
        reason="joining the review rota",
        acting_admin=_acting(AdminRoleType.SUPER_ADMIN),
        overrides={"can_export_data": True},
    )

    assert created.role_type == AdminRoleType.MODERATOR
    assert created.created_by == "actor-1"
    assert created.is_granted(AdminPermission.EXPORT_DATA)
    assert roles.roles["user-9"] is created

    entry = audit.entries[0]
    assert entry.action_type == AuditActionType.ROLE_CHANGED
    assert entry.target_type == AuditTargetType.ADMIN_ROLE
    assert entry.before_state is None
    assert entry.after_state is not None
    assert entry.after_state["role_type"] == "moderator"
    assert "can_export_data" in entry.after_state["permissions"]


@pytest.mark.asyncio
async def test_grant_duplicate_role_propagates() -> None:
    roles = FakeRoleRepository([_role("user-9", AdminRoleType.VIEWER)])
    audit = FakeAuditRepository()
    service = AdminRoleService(roles=roles, audit=audit)

    with pytest.raises(DuplicateAdminRoleError):
        await service.grant_role(
            subject_id="user-9",
            role_type="viewer",
            reason="again",
            acting_admin=_acting(AdminRoleType.SUPER_ADMIN),
        )

    assert audit.entries == []


@pytest.mark.asyncio
async def test_admin_without_manage_permission_is_denied() -> None:
    service = AdminRoleService(roles=FakeRoleRepository(), audit=FakeAuditRepository())

    with pytest.raises(PermissionDeniedError):
        await service.grant_role(
            subject_id="user-9",
            role_type="viewer",
            reason="help",
            acting_admin=_acting(AdminRoleType.ADMIN),
        )


@pytest.mark.asyncio
async def test_only_super_admin_can_promote_to_super_admin() -> None:
    roles = FakeRoleRepository([_role("user-9", AdminRoleType.ADMIN)])
    service = AdminRoleService(roles=roles, audit=FakeAuditRepository(), now=lambda: NOW)

    with pytest.raises(PermissionDeniedError):
        await service.update_role(
            subject_id="user-9",
            role_type="super_admin",
            reason="promotion",
            acting_admin=_acting(AdminRoleType.ADMIN, can_manage_admins=True),
        )

    assert roles.roles["user-9"].role_type == AdminRoleType.ADMIN


@pytest.mark.asyncio
async def test_update_role_records_before_and_after() -> None:
    roles = FakeRoleRepository([_role("user-9", AdminRoleType.VIEWER)])
    audit = FakeAuditRepository()
    service = AdminRoleService(roles=roles, audit=audit, now=lambda: NOW)

    updated = await service.update_role(
        subject_id="user-9",
        role_type=AdminRoleType.MODERATOR,
        reason="promotion",
        acting_admin=_acting(AdminRoleType.ADMIN, can_manage_admins=True),
    )

    assert updated.role_type == AdminRoleType.MODERATOR
    entry = audit.entries[0]
    assert entry.before_state == {"role_type": "viewer", "permissions": ["can_access_analytics"]}
    assert entry.after_state is not None
    assert entry.after_state["role_type"] == "moderator"


@pytest.mark.asyncio
async def test_remove_role() -> None:
    roles = FakeRoleRepository([_role("user-9", AdminRoleType.MODERATOR)])
    audit = FakeAuditRepository()
    service = AdminRoleService(roles=roles, audit=audit)

    await service.remove_role(
        subject_id="user-9",
        reason="left the team",
        acting_admin=_acting(AdminRoleType.SUPER_ADMIN),
    )

    assert "user-9" not in roles.roles
    assert audit.entries[0].after_state is None


@pytest.mark.asyncio
async def test_remove_missing_role_raises() -> None:
    service = AdminRoleService(roles=FakeRoleRepository(), audit=FakeAuditRepository())

    with pytest.raises(AdminRoleNotFoundError):
        await service.remove_role(
            subject_id="user-9",
            reason="cleanup",
            acting_admin=_acting(AdminRoleType.SUPER_ADMIN),
        )


@pytest.mark.asyncio
async def test_admin_cannot_manage_own_role() -> None:
    roles = FakeRoleRepository([_role("actor-1", AdminRoleType.SUPER_ADMIN)])
    service = AdminRoleService(roles=roles, audit=FakeAuditRepository())

    with pytest.raises(SelfRoleManagementError):
        await service.remove_role(
            subject_id="actor-1",
            reason="oops",
            acting_admin=_acting(AdminRoleType.SUPER_ADMIN),
        )


@pytest.mark.asyncio
async def test_blank_reason_is_rejected() -> None:
    service = AdminRoleService(roles=FakeRoleRepository(), audit=FakeAuditRepository())

    with pytest.raises(InvalidModerationReasonError):
        await service.grant_role(
            subject_id="user-9",
            role_type="viewer",
            reason=" ",
            acting_admin=_acting(AdminRoleType.SUPER_ADMIN),
        )


@pytest.mark.asyncio
async def test_unattributable_actor_never_reaches_role_writes() -> None:
    roles = FakeRoleRepository([_role("user-9", AdminRoleType.VIEWER)])
    audit = FakeAuditRepository()
    service = AdminRoleService(roles=roles, audit=audit, now=lambda: NOW)
    super_admin = _acting(AdminRoleType.SUPER_ADMIN).role

    with pytest.raises(InvalidActingAdminError) as excinfo:
        await service.grant_role(
            subject_id="user-10",
            role_type="viewer",
            reason="new analyst",
            acting_admin=ActingAdmin(admin_id="actor-1", email="not-an-email", role=super_admin),
        )
    assert excinfo.value.field_name == "email"

    with pytest.raises(InvalidActingAdminError) as excinfo:
        await service.update_role(
            subject_id="user-9",
            reason="promotion",
            acting_admin=ActingAdmin(admin_id="  ", email="actor@example.org", role=super_admin),
            role_type="moderator",
        )
    assert excinfo.value.field_name == "admin_id"

    assert set(roles.roles) == {"user-9"}
    assert roles.roles["user-9"].role_type == AdminRoleType.VIEWER
    assert audit.entries == []
