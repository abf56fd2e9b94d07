"""Threshold detection of suspicious behavioral bursts in the activity feed."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from types import MappingProxyType

from trust_moderation.domain.activity.events import ActivityEvent, ActivityType


class SuspiciousPattern(StrEnum):
    """Named behavioral patterns watched by the monitor."""

    RAPID_REGISTRATIONS = "rapid_registrations"
    BULK_ACCOUNT_CREATION = "bulk_account_creation"
    SPAM_SUBMISSIONS = "spam_submissions"
    UNUSUAL_LOGIN_PATTERN = "unusual_login_pattern"
    MASS_TEAM_JOINS = "mass_team_joins"
    REPEATED_REPORTS = "repeated_reports"


class InvalidDetectionConfigError(ValueError):
    """Raised when a detection threshold or window cannot be evaluated."""


@dataclass(frozen=True)
class PatternThreshold:
    """Minimum event count inside a trailing window."""

    count: int
    time_window_minutes: int

    def __post_init__(self) -> None:
        if self.count < 1:
            raise InvalidDetectionConfigError("pattern count must be at least 1")
        if self.time_window_minutes < 1:
            raise InvalidDetectionConfigError("pattern window must be at least 1 minute")


DEFAULT_PATTERN_THRESHOLDS: Mapping[SuspiciousPattern, PatternThreshold] = MappingProxyType(
    {
        SuspiciousPattern.RAPID_REGISTRATIONS: PatternThreshold(10, 5),
        SuspiciousPattern.BULK_ACCOUNT_CREATION: PatternThreshold(5, 10),
        SuspiciousPattern.SPAM_SUBMISSIONS: PatternThreshold(20, 30),
        SuspiciousPattern.UNUSUAL_LOGIN_PATTERN: PatternThreshold(10, 5),
        SuspiciousPattern.MASS_TEAM_JOINS: PatternThreshold(15, 10),
        SuspiciousPattern.REPEATED_REPORTS: PatternThreshold(5, 60),
    }
)

# No dedicated login event exists yet, so login bursts are read from signups.
PATTERN_ACTIVITY_TYPES: Mapping[SuspiciousPattern, frozenset[ActivityType]] = MappingProxyType(
    {
        SuspiciousPattern.RAPID_REGISTRATIONS: frozenset({ActivityType.REGISTRATION_CREATED}),
        SuspiciousPattern.BULK_ACCOUNT_CREATION: frozenset({ActivityType.USER_SIGNUP}),
        SuspiciousPattern.SPAM_SUBMISSIONS: frozenset(
            {ActivityType.SUBMISSION_CREATED, ActivityType.SUBMISSION_UPDATED}
        ),
        SuspiciousPattern.UNUSUAL_LOGIN_PATTERN: frozenset({ActivityType.USER_SIGNUP}),
        SuspiciousPattern.MASS_TEAM_JOINS: frozenset(
            {ActivityType.TEAM_JOINED, ActivityType.TEAM_FORMED}
        ),
        SuspiciousPattern.REPEATED_REPORTS: frozenset({ActivityType.REPORT_FILED}),
    }
)


@dataclass(frozen=True)
class PatternDetectionResult:
    """Evidence for one pattern evaluation, detected or not."""

    pattern: SuspiciousPattern
    is_detected: bool
    actor_id: str | None
    count: int
    threshold: int
    time_window_minutes: int
    window_start: datetime
    window_end: datetime
    details: str


class SuspiciousPatternDetector:
    """Count matching events in a trailing window and compare to a threshold."""

    def __init__(
        self,
        *,
        thresholds: Mapping[SuspiciousPattern, PatternThreshold] | None = None,
    ) -> None:
        merged = dict(DEFAULT_PATTERN_THRESHOLDS)
        if thresholds:
            merged.update(thresholds)
        self._thresholds = MappingProxyType(merged)

    @property
    def thresholds(self) -> Mapping[SuspiciousPattern, PatternThreshold]:
        return self._thresholds

    def threshold_for(self, pattern: SuspiciousPattern | str) -> PatternThreshold:
        return self._thresholds[parse_pattern(pattern)]

    def window_start(self, pattern: SuspiciousPattern | str, *, now: datetime) -> datetime:
        """Return the oldest timestamp still inside the pattern window."""

        threshold = self.threshold_for(pattern)
        return now - timedelta(minutes=threshold.time_window_minutes)

    def detect(
        self,
        events: Iterable[ActivityEvent],
        pattern: SuspiciousPattern | str,
        *,
        now: datetime,
        actor_id: str | None = None,
    ) -> PatternDetectionResult:
        """Evaluate one pattern over already-materialized events."""

        resolved = parse_pattern(pattern)
        threshold = self._thresholds[resolved]
        window_start = now - timedelta(minutes=threshold.time_window_minutes)
        relevant_types = PATTERN_ACTIVITY_TYPES[resolved]

        count = 0
        for event in events:
            if event.activity_type not in relevant_types:
                continue
            if not window_start <= event.occurred_at <= now:
                continue
            if actor_id is not None and event.actor_id != actor_id:
                continue
            count += 1

        is_detected = count >= threshold.count
        if is_detected:
            details = (
                f"Detected {count} {resolved.value.replace('_', ' ')} events in "
                f"{threshold.time_window_minutes} minutes (threshold: {threshold.count})"
            )
        else:
            details = (
                f"No suspicious pattern detected ({count}/{threshold.count} in "
                f"{threshold.time_window_minutes} minutes)"
            )

        return PatternDetectionResult(
            pattern=resolved,
            is_detected=is_detected,
            actor_id=actor_id,
            count=count,
            threshold=threshold.count,
            time_window_minutes=threshold.time_window_minutes,
            window_start=window_start,
            window_end=now,
            details=details,
        )


def parse_pattern(pattern: SuspiciousPattern | str) -> SuspiciousPattern:
    try:
        return SuspiciousPattern(pattern)
    except ValueError as error:
        raise InvalidDetectionConfigError(f"unknown suspicious pattern: {pattern}") from error
