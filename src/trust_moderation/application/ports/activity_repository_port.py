"""Port for the append-only activity feed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from trust_moderation.domain.activity.events import (
    ActivityEvent,
    ActivityEventCreateInput,
    ActivityFilters,
)


class InvalidActivityCursorError(ValueError):
    """Raised when a pagination cursor cannot be decoded."""


@dataclass(frozen=True)
class ActivityCursor:
    """Position of the last event returned; pages continue strictly after it."""

    occurred_at: datetime
    event_id: UUID

    def encode(self) -> str:
        return f"{self.occurred_at.isoformat()}|{self.event_id}"

    @classmethod
    def decode(cls, raw: str) -> ActivityCursor:
        occurred_at_text, separator, event_id_text = raw.partition("|")
        if not separator:
            raise InvalidActivityCursorError(f"malformed activity cursor: {raw!r}")
        try:
            return cls(
                occurred_at=datetime.fromisoformat(occurred_at_text),
                event_id=UUID(event_id_text),
            )
        except ValueError as error:
            raise InvalidActivityCursorError(f"malformed activity cursor: {raw!r}") from error


@dataclass(frozen=True)
class ActivityPage:
    """One newest-first page of activity events."""

    events: list[ActivityEvent]
    has_more: bool
    next_cursor: str | None


class ActivityRepositoryPort(Protocol):
    """Async activity feed contract."""

    async def append_event(self, payload: ActivityEventCreateInput) -> ActivityEvent:
        """Append one event and return the persisted record."""

    async def query_events(
        self,
        *,
        filters: ActivityFilters,
        cursor: str | None = None,
        limit: int,
    ) -> ActivityPage:
        """Return events matching filters ordered by occurred_at descending."""
