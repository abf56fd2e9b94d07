"""Rate-based anomaly detection and feed summaries."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from trust_moderation.domain.activity.events import (
    ActivityEvent,
    ActivitySeverity,
    ActivityType,
)
from trust_moderation.domain.activity.pattern_detection import InvalidDetectionConfigError


@dataclass(frozen=True)
class SpikeDetectionConfig:
    """Windows and ratio used to decide whether the current rate is a spike."""

    spike_threshold: float = 2.0
    average_window_minutes: int = 60
    current_window_minutes: int = 5
    minimum_activities: int = 10

    def __post_init__(self) -> None:
        if self.spike_threshold <= 0:
            raise InvalidDetectionConfigError("spike_threshold must be positive")
        if self.average_window_minutes <= 0 or self.current_window_minutes <= 0:
            raise InvalidDetectionConfigError("spike windows must be positive")
        if self.current_window_minutes > self.average_window_minutes:
            raise InvalidDetectionConfigError(
                "current window cannot be longer than the average window"
            )
        if self.minimum_activities < 0:
            raise InvalidDetectionConfigError("minimum_activities cannot be negative")


@dataclass(frozen=True)
class SpikeDetectionResult:
    """Both rates, their ratio, and the spike decision."""

    is_spike: bool
    current_rate: float
    average_rate: float
    ratio: float
    threshold: float
    current_window_count: int
    average_window_count: int
    minimum_activities: int


@dataclass(frozen=True)
class ActivitySummary:
    """Dashboard counters derived from one batch of recent events."""

    activities_per_minute: float
    average_activities_per_minute: float
    is_spike: bool
    recent_suspicious_count: int
    total_activities_today: int
    activities_by_type: dict[str, int]
    activities_by_severity: dict[str, int]


def _count_since(events: list[ActivityEvent], *, start: datetime, now: datetime) -> int:
    return sum(1 for event in events if start <= event.occurred_at <= now)


class AnomalySpikeDetector:
    """Compare the current-window rate to the rolling average rate."""

    def __init__(self, *, config: SpikeDetectionConfig | None = None) -> None:
        self._config = config or SpikeDetectionConfig()

    @property
    def config(self) -> SpikeDetectionConfig:
        return self._config

    @property
    def lookback(self) -> timedelta:
        """Return how far back events are needed to evaluate a spike."""

        return timedelta(minutes=self._config.average_window_minutes)

    def detect(self, events: Iterable[ActivityEvent], *, now: datetime) -> SpikeDetectionResult:
        """Evaluate the spike rule for events observed up to ``now``."""

        config = self._config
        # Recorded detections do not count toward the platform rate.
        materialized = [
            event for event in events if event.activity_type != ActivityType.SUSPICIOUS_ACTIVITY
        ]
        current_count = _count_since(
            materialized,
            start=now - timedelta(minutes=config.current_window_minutes),
            now=now,
        )
        average_count = _count_since(
            materialized,
            start=now - timedelta(minutes=config.average_window_minutes),
            now=now,
        )

        current_rate = current_count / config.current_window_minutes
        average_rate = average_count / config.average_window_minutes
        ratio = current_rate / average_rate if average_rate > 0 else 0.0
        is_spike = (
            current_rate > average_rate * config.spike_threshold
            and average_count >= config.minimum_activities
        )

        return SpikeDetectionResult(
            is_spike=is_spike,
            current_rate=current_rate,
            average_rate=average_rate,
            ratio=ratio,
            threshold=config.spike_threshold,
            current_window_count=current_count,
            average_window_count=average_count,
            minimum_activities=config.minimum_activities,
        )


def is_valid_spike_detection(result: SpikeDetectionResult) -> bool:
    """Check that a reported spike really clears both the rate and volume floors."""

    clears_rate = result.current_rate > result.average_rate * result.threshold
    clears_volume = result.average_window_count >= result.minimum_activities
    return result.is_spike == (clears_rate and clears_volume)


def summarize_activity(
    events: Iterable[ActivityEvent],
    *,
    now: datetime,
    config: SpikeDetectionConfig | None = None,
) -> ActivitySummary:
    """Build feed counters; "today" starts at midnight in ``now``'s timezone."""

    materialized = list(events)
    spike = AnomalySpikeDetector(config=config).detect(materialized, now=now)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    suspicious = sum(
        1
        for event in materialized
        if event.severity == ActivitySeverity.CRITICAL
        or event.activity_type == ActivityType.SUSPICIOUS_ACTIVITY
    )
    today = sum(1 for event in materialized if event.occurred_at >= start_of_day)
    by_type = Counter(str(event.activity_type) for event in materialized)
    by_severity = Counter(str(event.severity) for event in materialized)

    return ActivitySummary(
        activities_per_minute=spike.current_rate,
        average_activities_per_minute=spike.average_rate,
        is_spike=spike.is_spike,
        recent_suspicious_count=suspicious,
        total_activities_today=today,
        activities_by_type=dict(by_type),
        activities_by_severity=dict(by_severity),
    )
