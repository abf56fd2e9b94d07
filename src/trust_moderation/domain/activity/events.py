"""Activity feed records, vocabulary, and in-memory filtering helpers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID


class ActivityType(StrEnum):
    """Platform events recorded in the activity feed."""

    USER_SIGNUP = "user_signup"
    EVENT_CREATED = "hackathon_created"
    EVENT_PUBLISHED = "hackathon_published"
    EVENT_UNPUBLISHED = "hackathon_unpublished"
    EVENT_ENDED = "hackathon_ended"
    REGISTRATION_CREATED = "registration_created"
    REGISTRATION_CANCELLED = "registration_cancelled"
    TEAM_FORMED = "team_formed"
    TEAM_JOINED = "team_joined"
    TEAM_LEFT = "team_left"
    SUBMISSION_CREATED = "submission_created"
    SUBMISSION_UPDATED = "submission_updated"
    MODERATION_ACTION = "moderation_action"
    REPORT_FILED = "report_filed"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    ORGANIZER_APPROVED = "organizer_approved"
    ORGANIZER_REVOKED = "organizer_revoked"
    JUDGE_ADDED = "judge_added"
    JUDGE_REMOVED = "judge_removed"


class ActivityTargetType(StrEnum):
    """Kinds of entities an activity can point at."""

    EVENT = "hackathon"
    USER = "user"
    TEAM = "team"
    SUBMISSION = "submission"
    REGISTRATION = "registration"
    ORGANIZER = "organizer"
    JUDGE = "judge"
    REPORT = "report"
    SYSTEM = "system"


class ActivitySeverity(StrEnum):
    """Severity levels rendered by the feed."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class InvalidActivityEventError(ValueError):
    """Raised when an activity write payload fails validation."""


@dataclass(frozen=True)
class ActivityEventCreateInput:
    """Input payload for appending one activity event."""

    activity_type: ActivityType
    target_type: ActivityTargetType
    target_id: str
    action: str
    actor_id: str | None = None
    actor_email: str | None = None
    target_name: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    severity: ActivitySeverity = ActivitySeverity.INFO

    def __post_init__(self) -> None:
        if not self.target_id.strip():
            raise InvalidActivityEventError("target_id cannot be blank")
        if not self.action.strip():
            raise InvalidActivityEventError("action cannot be blank")


@dataclass(frozen=True)
class ActivityEvent:
    """Append-only activity record as read back from the feed."""

    event_id: UUID
    activity_type: ActivityType
    target_type: ActivityTargetType
    target_id: str
    action: str
    severity: ActivitySeverity
    occurred_at: datetime
    actor_id: str | None = None
    actor_email: str | None = None
    target_name: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActivityFilters:
    """Feed query criteria; empty collections mean "no constraint"."""

    activity_types: frozenset[ActivityType] = frozenset()
    severities: frozenset[ActivitySeverity] = frozenset()
    target_types: frozenset[ActivityTargetType] = frozenset()
    actor_id: str | None = None
    target_id: str | None = None
    occurred_from: datetime | None = None
    occurred_to: datetime | None = None

    def matches(self, event: ActivityEvent) -> bool:
        """Return whether one event satisfies every configured criterion."""

        if self.activity_types and event.activity_type not in self.activity_types:
            return False
        if self.severities and event.severity not in self.severities:
            return False
        if self.target_types and event.target_type not in self.target_types:
            return False
        if self.actor_id is not None and event.actor_id != self.actor_id:
            return False
        if self.target_id is not None and event.target_id != self.target_id:
            return False
        if self.occurred_from is not None and event.occurred_at < self.occurred_from:
            return False
        if self.occurred_to is not None and event.occurred_at > self.occurred_to:
            return False
        return True


def filter_events(events: Iterable[ActivityEvent], filters: ActivityFilters) -> list[ActivityEvent]:
    """Return events matching the filters, preserving input order."""

    return [event for event in events if filters.matches(event)]


def sort_events_newest_first(events: Iterable[ActivityEvent]) -> list[ActivityEvent]:
    """Return a new list ordered by ``occurred_at`` descending."""

    return sorted(events, key=lambda event: event.occurred_at, reverse=True)


def are_events_newest_first(events: list[ActivityEvent]) -> bool:
    """Return whether a list is already in feed order."""

    return all(
        current.occurred_at >= following.occurred_at
        for current, following in zip(events, events[1:], strict=False)
    )
