"""Port for moderated organizers and the events that depend on them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID


class EntityTransitionError(RuntimeError):
    """Raised when one dependent entity cannot move to the requested state."""

    def __init__(self, *, entity_id: UUID, message: str) -> None:
        super().__init__(f"entity {entity_id}: {message}")
        self.entity_id = entity_id


@dataclass(frozen=True)
class ModerationSubject:
    """Organizer summary loaded before a moderation action."""

    subject_id: str
    display_name: str
    total_dependents: int


@dataclass(frozen=True)
class DependentEntity:
    """Active event owned by a subject."""

    entity_id: UUID
    name: str
    state: str
    participant_count: int


@dataclass(frozen=True)
class EntityTransition:
    """Before/after snapshots of one successful state transition."""

    entity_id: UUID
    before: dict[str, Any]
    after: dict[str, Any]


class ModerationSubjectRepositoryPort(Protocol):
    """Subject and dependent-entity persistence contract."""

    async def get_subject(self, *, subject_id: str) -> ModerationSubject | None:
        """Return subject summary or None when missing."""

    async def list_active_dependents(self, *, subject_id: str) -> list[DependentEntity]:
        """Return dependents currently in an active state."""

    async def transition_entity_state(
        self,
        *,
        entity_id: UUID,
        new_state: str,
        note: str,
    ) -> EntityTransition:
        """Move one entity to a new state; raise EntityTransitionError on conflict."""
