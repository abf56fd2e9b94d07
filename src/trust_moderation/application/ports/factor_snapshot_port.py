"""Port for aggregating raw behavioral counts into factor snapshots."""

from __future__ import annotations

from typing import Protocol

from trust_moderation.domain.trust.factors import OrganizerTrustFactors, SubjectTrustFactors


class FactorSnapshotPort(Protocol):
    """Read-only factor aggregation contract."""

    async def fetch_subject_factors(self, *, subject_id: str) -> SubjectTrustFactors | None:
        """Return user factors, or None when the user does not exist."""

    async def fetch_organizer_factors(self, *, organizer_id: str) -> OrganizerTrustFactors | None:
        """Return organizer factors, or None when the organizer does not exist."""
