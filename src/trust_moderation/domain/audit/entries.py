"""Append-only audit log records and write validation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID


class AuditActionType(StrEnum):
    """Administrative actions recorded in the audit log."""

    EVENT_APPROVED = "hackathon_approved"
    EVENT_REJECTED = "hackathon_rejected"
    EVENT_PUBLISHED = "hackathon_published"
    EVENT_UNPUBLISHED = "hackathon_unpublished"
    EVENT_DELETED = "hackathon_deleted"
    USER_WARNED = "user_warned"
    USER_MUTED = "user_muted"
    USER_SUSPENDED = "user_suspended"
    USER_BANNED = "user_banned"
    USER_UNBANNED = "user_unbanned"
    ORGANIZER_APPROVED = "organizer_approved"
    ORGANIZER_REJECTED = "organizer_rejected"
    ORGANIZER_REVOKED = "organizer_revoked"
    ORGANIZER_WARNED = "organizer_warned"
    ORGANIZER_VIOLATION = "organizer_violation"
    ORGANIZER_FLAGGED = "organizer_flagged"
    ORGANIZER_UNFLAGGED = "organizer_unflagged"
    SUBMISSION_FLAGGED = "submission_flagged"
    SUBMISSION_UNFLAGGED = "submission_unflagged"
    ROLE_CHANGED = "role_changed"
    SETTINGS_CHANGED = "settings_changed"


class AuditTargetType(StrEnum):
    """Kinds of entities an audit entry can describe."""

    EVENT = "hackathon"
    USER = "user"
    ORGANIZER = "organizer"
    SUBMISSION = "submission"
    REGISTRATION = "registration"
    ADMIN_ROLE = "admin_role"
    REPORT = "report"
    SYSTEM = "system"


class InvalidAuditEntryError(ValueError):
    """Raised when an audit write payload is missing a required field."""

    def __init__(self, *, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


@dataclass(frozen=True)
class AuditEntryCreateInput:
    """Validated payload for appending one audit entry; ``reason`` is stored trimmed."""

    action_type: AuditActionType
    actor_id: str
    actor_email: str
    target_type: AuditTargetType
    target_id: str
    reason: str
    before_state: Mapping[str, Any] | None = None
    after_state: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.actor_id.strip():
            raise InvalidAuditEntryError(field_name="actor_id", message="cannot be blank")
        if "@" not in self.actor_email:
            raise InvalidAuditEntryError(
                field_name="actor_email",
                message="must be a valid email address",
            )
        if not self.target_id.strip():
            raise InvalidAuditEntryError(field_name="target_id", message="cannot be blank")
        if not self.reason.strip():
            raise InvalidAuditEntryError(field_name="reason", message="cannot be blank")
        object.__setattr__(self, "reason", self.reason.strip())


@dataclass(frozen=True)
class AuditLogEntry:
    """Audit entry as persisted; never updated or deleted."""

    entry_id: UUID
    action_type: AuditActionType
    actor_id: str
    actor_email: str
    target_type: AuditTargetType
    target_id: str
    reason: str
    before_state: Mapping[str, Any] | None
    after_state: Mapping[str, Any] | None
    created_at: datetime


MAX_AUDIT_PAGE_SIZE = 100


@dataclass(frozen=True)
class AuditLogFilters:
    """Audit query criteria; empty collections mean "no constraint"."""

    actor_id: str | None = None
    action_types: frozenset[AuditActionType] = frozenset()
    target_types: frozenset[AuditTargetType] = frozenset()
    target_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


@dataclass(frozen=True)
class AuditPage:
    """One numbered page of audit entries, newest first."""

    entries: list[AuditLogEntry]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages
