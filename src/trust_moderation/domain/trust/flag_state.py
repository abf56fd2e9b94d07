"""Tagged flag state for moderated subjects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


class InvalidFlagStateError(ValueError):
    """Raised when a flagged state is built without a usable reason or timestamp."""


@dataclass(frozen=True)
class Flagged:
    """Subject is flagged; reason and timestamp are always present."""

    reason: str
    flagged_at: datetime

    def __post_init__(self) -> None:
        if not isinstance(self.reason, str) or not self.reason.strip():
            raise InvalidFlagStateError("flag reason cannot be blank")
        if not isinstance(self.flagged_at, datetime):
            raise InvalidFlagStateError("flagged_at must be a datetime")

    @property
    def is_flagged(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFlagged:
    """Subject carries no flag."""

    @property
    def is_flagged(self) -> bool:
        return False


FlagState = Flagged | NotFlagged

NOT_FLAGGED = NotFlagged()


def flag_state_from_columns(
    *,
    is_flagged: bool,
    reason: str | None,
    flagged_at: datetime | None,
) -> FlagState:
    """Rebuild a flag state from three loosely-typed persisted columns."""

    if not is_flagged:
        return NOT_FLAGGED
    if reason is None or flagged_at is None:
        raise InvalidFlagStateError("flagged row is missing reason or flagged_at")
    return Flagged(reason=reason, flagged_at=flagged_at)


def flag_state_columns(state: FlagState) -> dict[str, object]:
    """Return the persisted column triple for one flag state."""

    if isinstance(state, Flagged):
        return {"is_flagged": True, "flag_reason": state.reason, "flagged_at": state.flagged_at}
    return {"is_flagged": False, "flag_reason": None, "flagged_at": None}


def requires_manual_review(state: FlagState) -> bool:
    """Return whether submissions from this subject must be reviewed by hand."""

    return state.is_flagged


def can_auto_approve_submission(state: FlagState, *, auto_approve_enabled: bool) -> bool:
    """Flagged organizers never get auto-approval, whatever the event setting."""

    if state.is_flagged:
        return False
    return auto_approve_enabled
