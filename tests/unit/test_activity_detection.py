from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from trust_moderation.domain.activity.events import (
    ActivityEvent,
    ActivityEventCreateInput,
    ActivityFilters,
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
    InvalidActivityEventError,
    are_events_newest_first,
    filter_events,
    sort_events_newest_first,
)
from trust_moderation.domain.activity.pattern_detection import (
    InvalidDetectionConfigError,
    PatternThreshold,
    SuspiciousPattern,
    SuspiciousPatternDetector,
    parse_pattern,
)
from trust_moderation.domain.activity.spike_detection import (
    AnomalySpikeDetector,
    SpikeDetectionConfig,
    is_valid_spike_detection,
    summarize_activity,
)

NOW = datetime(2026, 5, 10, 14, 0, tzinfo=UTC)


def _event(
    *,
    minutes_ago: float,
    activity_type: ActivityType = ActivityType.REGISTRATION_CREATED,
    actor_id: str | None = "user-1",
    severity: ActivitySeverity = ActivitySeverity.INFO,
) -> ActivityEvent:
    return ActivityEvent(
        event_id=uuid4(),
        activity_type=activity_type,
        target_type=ActivityTargetType.REGISTRATION,
        target_id=str(uuid4()),
        action="registered",
        severity=severity,
        occurred_at=NOW - timedelta(minutes=minutes_ago),
        actor_id=actor_id,
    )


def test_create_input_rejects_blank_action() -> None:
    with pytest.raises(InvalidActivityEventError):
        ActivityEventCreateInput(
            activity_type=ActivityType.USER_SIGNUP,
            target_type=ActivityTargetType.USER,
            target_id="user-1",
            action="   ",
        )


def test_filters_combine_every_criterion() -> None:
    matching = _event(minutes_ago=2, severity=ActivitySeverity.WARNING)
    events = [
        matching,
        _event(minutes_ago=2, actor_id="user-2", severity=ActivitySeverity.WARNING),
        _event(minutes_ago=30, severity=ActivitySeverity.WARNING),
        _event(minutes_ago=2, severity=ActivitySeverity.INFO),
    ]
    filters = ActivityFilters(
        activity_types=frozenset({ActivityType.REGISTRATION_CREATED}),
        severities=frozenset({ActivitySeverity.WARNING}),
        actor_id="user-1",
        occurred_from=NOW - timedelta(minutes=10),
        occurred_to=NOW,
    )

    assert filter_events(events, filters) == [matching]


def test_sort_orders_newest_first() -> None:
    events = [_event(minutes_ago=9), _event(minutes_ago=1), _event(minutes_ago=4)]

    ordered = sort_events_newest_first(events)

    assert [round((NOW - item.occurred_at).total_seconds() / 60) for item in ordered] == [1, 4, 9]
    assert are_events_newest_first(ordered)
    assert not are_events_newest_first(events)


def test_rapid_registrations_detected_at_threshold() -> None:
    events = [_event(minutes_ago=minute * 0.4) for minute in range(10)]

    result = SuspiciousPatternDetector().detect(
        events,
        SuspiciousPattern.RAPID_REGISTRATIONS,
        now=NOW,
    )

    assert result.is_detected is True
    assert result.count == 10
    assert result.details == "Detected 10 rapid registrations events in 5 minutes (threshold: 10)"


def test_pattern_ignores_events_outside_window_and_type() -> None:
    events = [_event(minutes_ago=1) for _ in range(9)]
    events.append(_event(minutes_ago=6))
    events.append(_event(minutes_ago=1, activity_type=ActivityType.TEAM_JOINED))

    result = SuspiciousPatternDetector().detect(
        events,
        SuspiciousPattern.RAPID_REGISTRATIONS,
        now=NOW,
    )

    assert result.is_detected is False
    assert result.count == 9
    assert result.details == "No suspicious pattern detected (9/10 in 5 minutes)"


def test_pattern_window_includes_its_boundary() -> None:
    detector = SuspiciousPatternDetector(
        thresholds={SuspiciousPattern.REPEATED_REPORTS: PatternThreshold(2, 10)}
    )
    events = [
        _event(minutes_ago=10, activity_type=ActivityType.REPORT_FILED),
        _event(minutes_ago=0, activity_type=ActivityType.REPORT_FILED),
    ]

    result = detector.detect(events, "repeated_reports", now=NOW)

    assert result.is_detected is True
    assert result.window_start == NOW - timedelta(minutes=10)


def test_pattern_scoped_to_actor() -> None:
    events = [_event(minutes_ago=1, actor_id="user-1") for _ in range(4)]
    events += [_event(minutes_ago=1, actor_id="user-2") for _ in range(8)]

    result = SuspiciousPatternDetector().detect(
        events,
        SuspiciousPattern.RAPID_REGISTRATIONS,
        now=NOW,
        actor_id="user-2",
    )

    assert result.count == 8
    assert result.actor_id == "user-2"


def test_threshold_overrides_merge_with_defaults() -> None:
    detector = SuspiciousPatternDetector(
        thresholds={SuspiciousPattern.SPAM_SUBMISSIONS: PatternThreshold(3, 2)}
    )

    assert detector.threshold_for("spam_submissions") == PatternThreshold(3, 2)
    assert detector.threshold_for(SuspiciousPattern.MASS_TEAM_JOINS) == PatternThreshold(15, 10)


def test_unknown_pattern_and_bad_threshold_are_rejected() -> None:
    with pytest.raises(InvalidDetectionConfigError):
        parse_pattern("midnight_logins")
    with pytest.raises(InvalidDetectionConfigError):
        PatternThreshold(count=0, time_window_minutes=5)


def test_spike_detected_when_current_rate_doubles_average() -> None:
    events = [_event(minutes_ago=6 + index) for index in range(45)]
    events += [_event(minutes_ago=index * 0.3) for index in range(15)]

    result = AnomalySpikeDetector().detect(events, now=NOW)

    assert result.current_window_count == 15
    assert result.average_window_count == 60
    assert result.current_rate == pytest.approx(3.0)
    assert result.average_rate == pytest.approx(1.0)
    assert result.ratio == pytest.approx(3.0)
    assert result.is_spike is True
    assert is_valid_spike_detection(result)


def test_recorded_detections_do_not_feed_the_spike_rate() -> None:
    events = [_event(minutes_ago=6 + index) for index in range(45)]
    events += [_event(minutes_ago=index * 0.3) for index in range(15)]
    events += [
        _event(minutes_ago=0.1, activity_type=ActivityType.SUSPICIOUS_ACTIVITY)
        for _ in range(20)
    ]

    result = AnomalySpikeDetector().detect(events, now=NOW)

    assert result.current_window_count == 15
    assert result.average_window_count == 60
    assert result.ratio == pytest.approx(3.0)


def test_low_volume_never_counts_as_spike() -> None:
    events = [_event(minutes_ago=index * 0.5) for index in range(5)]

    result = AnomalySpikeDetector().detect(events, now=NOW)

    assert result.ratio > 2.0
    assert result.is_spike is False
    assert is_valid_spike_detection(result)


def test_rate_exactly_at_threshold_is_not_a_spike() -> None:
    config = SpikeDetectionConfig(
        spike_threshold=2.0,
        average_window_minutes=10,
        current_window_minutes=5,
        minimum_activities=1,
    )
    events = [_event(minutes_ago=1) for _ in range(10)]

    result = AnomalySpikeDetector(config=config).detect(events, now=NOW)

    assert result.current_rate == pytest.approx(2.0)
    assert result.average_rate == pytest.approx(1.0)
    assert result.is_spike is False


def test_empty_feed_has_zero_ratio() -> None:
    result = AnomalySpikeDetector().detect([], now=NOW)

    assert result.ratio == 0.0
    assert result.is_spike is False


def test_spike_config_rejects_current_window_longer_than_average() -> None:
    with pytest.raises(InvalidDetectionConfigError):
        SpikeDetectionConfig(average_window_minutes=5, current_window_minutes=10)


def test_summary_counts_today_and_suspicious() -> None:
    events = [
        _event(minutes_ago=1, activity_type=ActivityType.SUSPICIOUS_ACTIVITY),
        _event(minutes_ago=2, severity=ActivitySeverity.CRITICAL),
        _event(minutes_ago=3),
        _event(minutes_ago=15 * 60),
    ]

    summary = summarize_activity(events, now=NOW)

    assert summary.recent_suspicious_count == 2
    assert summary.total_activities_today == 3
    assert summary.activities_by_type == {
        "suspicious_activity": 1,
        "registration_created": 3,
    }
    assert summary.activities_by_severity == {"info": 3, "critical": 1}
    assert summary.is_spike is False
