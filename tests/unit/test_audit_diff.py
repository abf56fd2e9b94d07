from __future__ import annotations

import pytest

from trust_moderation.domain.audit.diff import ChangeType, DiffEntry, compute_diff, deep_equal
from trust_moderation.domain.audit.entries import (
    AuditActionType,
    AuditEntryCreateInput,
    AuditPage,
    AuditTargetType,
    InvalidAuditEntryError,
)


def test_diff_reports_modified_added_and_removed_in_order() -> None:
    diff = compute_diff(
        {"status": "published", "title": "Hack Night", "capacity": 100},
        {"status": "unpublished", "capacity": 100, "admin_notes": "revoked"},
    )

    assert diff.entries == (
        DiffEntry("status", ChangeType.MODIFIED, before="published", after="unpublished"),
        DiffEntry("title", ChangeType.REMOVED, before="Hack Night"),
        DiffEntry("admin_notes", ChangeType.ADDED, after="revoked"),
    )
    assert diff.changed_fields == ["status", "title", "admin_notes"]
    assert diff.has_changes


def test_identical_snapshots_have_no_changes() -> None:
    state = {"tags": ["ai", "web"], "limits": {"teams": 4}}

    assert not compute_diff(state, {"tags": ["ai", "web"], "limits": {"teams": 4}}).has_changes
    assert not compute_diff(None, None).has_changes


def test_missing_snapshot_behaves_like_empty() -> None:
    created = compute_diff(None, {"role_type": "viewer"})
    removed = compute_diff({"role_type": "viewer"}, None)

    assert created.entries == (DiffEntry("role_type", ChangeType.ADDED, after="viewer"),)
    assert removed.entries == (DiffEntry("role_type", ChangeType.REMOVED, before="viewer"),)


def test_deep_equal_structure() -> None:
    assert deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})
    assert deep_equal([1, 2], (1, 2))
    assert deep_equal(1, 1.0)
    assert not deep_equal({"a": 1}, {"a": 1, "b": None})
    assert not deep_equal([1, 2], [2, 1])


def test_deep_equal_keeps_booleans_distinct() -> None:
    assert not deep_equal(True, 1)
    assert not deep_equal(0, False)
    assert deep_equal(False, False)
    assert not deep_equal("1", 1)
    assert not deep_equal(None, 0)

    diff = compute_diff({"is_flagged": 0}, {"is_flagged": False})
    assert diff.changed_fields == ["is_flagged"]


def test_audit_input_trims_reason() -> None:
    payload = AuditEntryCreateInput(
        action_type=AuditActionType.ORGANIZER_REVOKED,
        actor_id="admin-1",
        actor_email="admin@example.org",
        target_type=AuditTargetType.ORGANIZER,
        target_id="org-1",
        reason="  repeated spam  ",
    )

    assert payload.reason == "repeated spam"


@pytest.mark.parametrize(
    ("field_name", "overrides"),
    [
        ("actor_id", {"actor_id": " "}),
        ("actor_email", {"actor_email": "admin.example.org"}),
        ("target_id", {"target_id": ""}),
        ("reason", {"reason": "\n"}),
    ],
)
def test_audit_input_rejects_invalid_fields(
    field_name: str,
    overrides: dict[str, str],
) -> None:
    values = {
        "actor_id": "admin-1",
        "actor_email": "admin@example.org",
        "target_id": "org-1",
        "reason": "spam",
    }
    values.update(overrides)

    with pytest.raises(InvalidAuditEntryError) as excinfo:
        AuditEntryCreateInput(
            action_type=AuditActionType.ORGANIZER_FLAGGED,
            target_type=AuditTargetType.ORGANIZER,
            **values,
        )

    assert excinfo.value.field_name == field_name


@pytest.mark.parametrize(
    ("total", "page", "expected_pages", "expected_more"),
    [(0, 1, 0, False), (50, 1, 1, False), (51, 1, 2, True), (51, 2, 2, False)],
)
def test_audit_page_counts(
    total: int,
    page: int,
    expected_pages: int,
    expected_more: bool,
) -> None:
    audit_page = AuditPage(entries=[], total=total, page=page, limit=50)

    assert audit_page.total_pages == expected_pages
    assert audit_page.has_more is expected_more
