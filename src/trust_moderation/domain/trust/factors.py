"""Immutable factor snapshots consumed by trust scoring and auto-flagging."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import StrEnum


class SubjectKind(StrEnum):
    """Kinds of scored subjects, each with its own factor shape."""

    USER = "user"
    ORGANIZER = "organizer"


class InvalidTrustFactorsError(ValueError):
    """Raised when a factor snapshot carries a malformed or out-of-range value."""

    def __init__(self, *, field_name: str, value: object) -> None:
        super().__init__(f"invalid trust factor {field_name}={value!r}")
        self.field_name = field_name
        self.value = value


def _require_count(*, field_name: str, value: object) -> None:
    # bool is an int subclass but never a valid count.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidTrustFactorsError(field_name=field_name, value=value)


@dataclass(frozen=True)
class SubjectTrustFactors:
    """Behavioral counts for a platform user."""

    account_age_days: int = 0
    successful_events: int = 0
    reports_filed_valid: int = 0
    reports_received: int = 0
    moderation_actions: int = 0
    verified_identity: bool = False

    def __post_init__(self) -> None:
        for item in fields(self):
            if item.name == "verified_identity":
                continue
            _require_count(field_name=item.name, value=getattr(self, item.name))
        if not isinstance(self.verified_identity, bool):
            raise InvalidTrustFactorsError(
                field_name="verified_identity",
                value=self.verified_identity,
            )

    def as_dict(self) -> dict[str, int | bool]:
        """Return a JSON-ready mapping of every factor."""

        return {item.name: getattr(self, item.name) for item in fields(self)}


@dataclass(frozen=True)
class OrganizerTrustFactors:
    """Event-history counts for an organizer."""

    account_age_days: int = 0
    total_events: int = 0
    approved_events: int = 0
    rejected_events: int = 0
    total_participants: int = 0
    violations: int = 0

    def __post_init__(self) -> None:
        for item in fields(self):
            _require_count(field_name=item.name, value=getattr(self, item.name))

    def as_dict(self) -> dict[str, int]:
        """Return a JSON-ready mapping of every factor."""

        return {item.name: getattr(self, item.name) for item in fields(self)}


TrustFactors = SubjectTrustFactors | OrganizerTrustFactors


def subject_factors_from_mapping(raw: dict[str, object]) -> SubjectTrustFactors:
    """Build user factors from a persisted mapping, rejecting unknown keys."""

    known = {item.name for item in fields(SubjectTrustFactors)}
    for key in raw:
        if key not in known:
            raise InvalidTrustFactorsError(field_name=key, value=raw[key])
    return SubjectTrustFactors(**raw)  # type: ignore[arg-type]


def organizer_factors_from_mapping(raw: dict[str, object]) -> OrganizerTrustFactors:
    """Build organizer factors from a persisted mapping, rejecting unknown keys."""

    known = {item.name for item in fields(OrganizerTrustFactors)}
    for key in raw:
        if key not in known:
            raise InvalidTrustFactorsError(field_name=key, value=raw[key])
    return OrganizerTrustFactors(**raw)  # type: ignore[arg-type]
