"""Application service for suspicious pattern and spike monitoring."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from trust_moderation.application.ports.activity_repository_port import ActivityRepositoryPort
from trust_moderation.domain.activity.events import (
    ActivityEvent,
    ActivityEventCreateInput,
    ActivityFilters,
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
)
from trust_moderation.domain.activity.pattern_detection import (
    PATTERN_ACTIVITY_TYPES,
    PatternDetectionResult,
    SuspiciousPattern,
    SuspiciousPatternDetector,
    parse_pattern,
)
from trust_moderation.domain.activity.spike_detection import (
    ActivitySummary,
    AnomalySpikeDetector,
    SpikeDetectionResult,
    summarize_activity,
)

NowCallable = Callable[[], datetime]
logger = logging.getLogger(__name__)

PLATFORM_TARGET_ID = "platform"
SPIKE_DETECTION_KEY = "activity_spike"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class UndetectedActivityError(ValueError):
    """Raised when asked to record a detection that did not fire."""


class ActivityMonitoringService:
    """Fetch trailing windows of the feed and run the detectors over them."""

    def __init__(
        self,
        *,
        activity: ActivityRepositoryPort,
        pattern_detector: SuspiciousPatternDetector | None = None,
        spike_detector: AnomalySpikeDetector | None = None,
        page_size: int = 100,
        now: NowCallable = _utc_now,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._activity = activity
        self._pattern_detector = pattern_detector or SuspiciousPatternDetector()
        self._spike_detector = spike_detector or AnomalySpikeDetector()
        self._page_size = page_size
        self._now = now

    async def detect_pattern(
        self,
        *,
        pattern: SuspiciousPattern | str,
        actor_id: str | None = None,
    ) -> PatternDetectionResult:
        """Evaluate one named pattern, optionally scoped to one actor."""

        now = self._now()
        resolved = parse_pattern(pattern)
        events = await self._collect(
            ActivityFilters(
                activity_types=PATTERN_ACTIVITY_TYPES[resolved],
                actor_id=actor_id,
                occurred_from=self._pattern_detector.window_start(resolved, now=now),
                occurred_to=now,
            )
        )
        result = self._pattern_detector.detect(events, resolved, now=now, actor_id=actor_id)
        if result.is_detected:
            logger.warning(
                "suspicious_pattern_detected pattern=%s actor_id=%s count=%s threshold=%s",
                result.pattern.value,
                actor_id,
                result.count,
                result.threshold,
            )
        return result

    async def detect_spike(self) -> SpikeDetectionResult:
        """Compare the current platform-wide rate to the rolling average."""

        now = self._now()
        events = await self._collect(
            ActivityFilters(occurred_from=now - self._spike_detector.lookback, occurred_to=now)
        )
        result = self._spike_detector.detect(events, now=now)
        if result.is_spike:
            logger.warning(
                "activity_spike_detected current_rate=%.3f average_rate=%.3f ratio=%.3f",
                result.current_rate,
                result.average_rate,
                result.ratio,
            )
        return result

    async def check_all_patterns(
        self,
        *,
        actor_id: str | None = None,
    ) -> list[PatternDetectionResult]:
        """Evaluate every configured pattern in declaration order."""

        results: list[PatternDetectionResult] = []
        for pattern in SuspiciousPattern:
            results.append(await self.detect_pattern(pattern=pattern, actor_id=actor_id))
        return results

    async def record_suspicious_activity(
        self,
        *,
        detection: PatternDetectionResult | SpikeDetectionResult,
    ) -> ActivityEvent:
        """Append a critical suspicious-activity event describing one detection."""

        event = await self._activity.append_event(_detection_payload(detection))
        logger.info("suspicious_activity_recorded event_id=%s", event.event_id)
        return event

    async def record_new_suspicious_activity(
        self,
        *,
        detection: PatternDetectionResult | SpikeDetectionResult,
    ) -> ActivityEvent | None:
        """Record a detection unless the same one is already recorded inside its window.

        Returns None when an earlier sweep already reported this detection.
        """

        payload = _detection_payload(detection)
        now = self._now()
        if isinstance(detection, PatternDetectionResult):
            window_start = detection.window_start
        else:
            window_start = now - timedelta(
                minutes=self._spike_detector.config.current_window_minutes
            )
        recorded = await self._collect(
            ActivityFilters(
                activity_types=frozenset({ActivityType.SUSPICIOUS_ACTIVITY}),
                target_id=payload.target_id,
                occurred_from=window_start,
                occurred_to=now,
            )
        )
        detection_key = payload.metadata["detection"]
        if any(event.metadata.get("detection") == detection_key for event in recorded):
            logger.info(
                "suspicious_activity_already_recorded detection=%s target_id=%s",
                detection_key,
                payload.target_id,
            )
            return None

        event = await self._activity.append_event(payload)
        logger.info("suspicious_activity_recorded event_id=%s", event.event_id)
        return event

    async def get_stats(self) -> ActivitySummary:
        """Summarize today's feed together with the current spike state."""

        now = self._now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        occurred_from = min(start_of_day, now - self._spike_detector.lookback)
        events = await self._collect(ActivityFilters(occurred_from=occurred_from, occurred_to=now))
        return summarize_activity(events, now=now, config=self._spike_detector.config)

    async def _collect(self, filters: ActivityFilters) -> list[ActivityEvent]:
        events: list[ActivityEvent] = []
        cursor: str | None = None
        while True:
            page = await self._activity.query_events(
                filters=filters,
                cursor=cursor,
                limit=self._page_size,
            )
            events.extend(page.events)
            if not page.has_more or page.next_cursor is None:
                return events
            cursor = page.next_cursor


def _detection_payload(
    detection: PatternDetectionResult | SpikeDetectionResult,
) -> ActivityEventCreateInput:
    if isinstance(detection, PatternDetectionResult):
        if not detection.is_detected:
            raise UndetectedActivityError(f"pattern {detection.pattern.value} was not detected")
        return ActivityEventCreateInput(
            activity_type=ActivityType.SUSPICIOUS_ACTIVITY,
            target_type=(
                ActivityTargetType.USER
                if detection.actor_id is not None
                else ActivityTargetType.SYSTEM
            ),
            target_id=detection.actor_id or PLATFORM_TARGET_ID,
            action=detection.details,
            metadata={
                "detection": detection.pattern.value,
                "pattern": detection.pattern.value,
                "count": detection.count,
                "threshold": detection.threshold,
                "time_window_minutes": detection.time_window_minutes,
            },
            severity=ActivitySeverity.CRITICAL,
        )

    if not detection.is_spike:
        raise UndetectedActivityError("activity spike was not detected")
    return ActivityEventCreateInput(
        activity_type=ActivityType.SUSPICIOUS_ACTIVITY,
        target_type=ActivityTargetType.SYSTEM,
        target_id=PLATFORM_TARGET_ID,
        action=(
            f"Activity spike: {detection.current_rate:.2f}/min against "
            f"{detection.average_rate:.2f}/min average (threshold: {detection.threshold}x)"
        ),
        metadata={
            "detection": SPIKE_DETECTION_KEY,
            "current_rate": detection.current_rate,
            "average_rate": detection.average_rate,
            "ratio": detection.ratio,
            "threshold": detection.threshold,
            "average_window_count": detection.average_window_count,
        },
        severity=ActivitySeverity.CRITICAL,
    )
