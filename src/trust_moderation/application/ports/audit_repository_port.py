"""Port for append-only admin audit entries."""

from __future__ import annotations

from typing import Protocol

from trust_moderation.domain.audit.entries import (
    AuditEntryCreateInput,
    AuditLogEntry,
    AuditLogFilters,
    AuditPage,
)


class AuditRepositoryPort(Protocol):
    """Async audit repository contract."""

    async def append_entry(self, payload: AuditEntryCreateInput) -> AuditLogEntry:
        """Append an audit entry and return the persisted record."""

    async def query_entries(
        self,
        *,
        filters: AuditLogFilters,
        page: int = 1,
        limit: int = 50,
    ) -> AuditPage:
        """Return one page of matching entries, newest first; limit is capped."""
