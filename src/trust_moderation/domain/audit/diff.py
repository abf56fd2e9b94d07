"""Field-level diff between two state snapshots."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ChangeType(StrEnum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class DiffEntry:
    """One changed field; ``before``/``after`` are None for added/removed keys."""

    field: str
    change_type: ChangeType
    before: Any = None
    after: Any = None


@dataclass(frozen=True)
class AuditDiff:
    entries: tuple[DiffEntry, ...]

    @property
    def has_changes(self) -> bool:
        return bool(self.entries)

    @property
    def changed_fields(self) -> list[str]:
        return [entry.field for entry in self.entries]


_SCALAR_SEQUENCES = (str, bytes, bytearray)


def deep_equal(left: object, right: object) -> bool:
    """Structural equality that keeps booleans distinct from numbers."""

    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if isinstance(left, int | float) and isinstance(right, int | float):
        return left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if left.keys() != right.keys():
            return False
        return all(deep_equal(left[key], right[key]) for key in left)
    if (
        isinstance(left, Sequence)
        and isinstance(right, Sequence)
        and not isinstance(left, _SCALAR_SEQUENCES)
        and not isinstance(right, _SCALAR_SEQUENCES)
    ):
        if len(left) != len(right):
            return False
        return all(deep_equal(a, b) for a, b in zip(left, right, strict=True))
    if type(left) is not type(right):
        return False
    return left == right


def compute_diff(
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
) -> AuditDiff:
    """Diff two snapshots; equal fields are omitted entirely.

    Keys are visited in ``before`` order, followed by keys only present in
    ``after``. A missing snapshot behaves like an empty one.
    """

    before_state = before or {}
    after_state = after or {}
    ordered_keys = list(before_state)
    ordered_keys.extend(key for key in after_state if key not in before_state)

    entries: list[DiffEntry] = []
    for key in ordered_keys:
        in_before = key in before_state
        in_after = key in after_state
        if not in_before:
            entries.append(DiffEntry(key, ChangeType.ADDED, after=after_state[key]))
        elif not in_after:
            entries.append(DiffEntry(key, ChangeType.REMOVED, before=before_state[key]))
        elif not deep_equal(before_state[key], after_state[key]):
            entries.append(
                DiffEntry(
                    key,
                    ChangeType.MODIFIED,
                    before=before_state[key],
                    after=after_state[key],
                )
            )
    return AuditDiff(entries=tuple(entries))
