"""Port for admin role assignments."""

from __future__ import annotations

from typing import Protocol

from trust_moderation.domain.auth.roles import AdminRole


class DuplicateAdminRoleError(ValueError):
    """Raised when a subject already holds an admin role."""

    def __init__(self, *, subject_id: str) -> None:
        super().__init__(f"admin role already exists for subject: {subject_id}")
        self.subject_id = subject_id


class AdminRoleRepositoryPort(Protocol):
    """Admin role repository contract."""

    async def get_by_subject_id(self, *, subject_id: str) -> AdminRole | None:
        """Return the role held by one subject, if any."""

    async def create_role(self, role: AdminRole) -> AdminRole:
        """Insert a new role; raise DuplicateAdminRoleError if one exists."""

    async def save_role(self, role: AdminRole) -> AdminRole:
        """Persist role type and permissions of an existing role."""

    async def delete_role(self, *, subject_id: str) -> bool:
        """Delete a subject's role and return whether a row was removed."""
