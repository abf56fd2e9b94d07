"""activity monitor entrypoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trust_moderation.application.services.activity_monitoring_service import (
    ActivityMonitoringService,
)
from trust_moderation.config.engine_config import build_engine_config
from trust_moderation.config.settings import Settings, load_settings
from trust_moderation.domain.activity.pattern_detection import PatternDetectionResult
from trust_moderation.domain.activity.spike_detection import SpikeDetectionResult
from trust_moderation.infrastructure.db.activity_repository import SqlAlchemyActivityRepository
from trust_moderation.infrastructure.db.session import create_session_factory
from trust_moderation.infrastructure.logging import configure_logging

SleepCallable = Callable[[float], Awaitable[None]]
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitorSweepResult:
    """Counts from one platform-wide detection sweep."""

    spike_detected: bool
    patterns_detected: tuple[str, ...]
    recorded_events: int
    skipped_duplicates: int
    recording_failures: int


def build_monitoring_service(
    *,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> ActivityMonitoringService:
    """Compose the monitoring service over the SQLAlchemy activity feed."""

    engine_config = build_engine_config(settings)
    return ActivityMonitoringService(
        activity=SqlAlchemyActivityRepository(session_factory),
        pattern_detector=engine_config.pattern_detector,
        spike_detector=engine_config.spike_detector,
        page_size=engine_config.activity_page_size,
    )


async def run_monitor_sweep(service: ActivityMonitoringService) -> MonitorSweepResult:
    """Detect a spike and every pattern platform-wide, recording each new hit."""

    spike = await service.detect_spike()
    patterns = await service.check_all_patterns()
    detections: list[PatternDetectionResult | SpikeDetectionResult] = []
    if spike.is_spike:
        detections.append(spike)
    detections.extend(result for result in patterns if result.is_detected)

    recorded = 0
    skipped = 0
    failures = 0
    for detection in detections:
        try:
            event = await service.record_new_suspicious_activity(detection=detection)
        except Exception as error:  # noqa: BLE001
            failures += 1
            logger.warning("suspicious_activity_record_failed error=%s", error)
            continue
        if event is None:
            skipped += 1
        else:
            recorded += 1

    result = MonitorSweepResult(
        spike_detected=spike.is_spike,
        patterns_detected=tuple(
            item.pattern.value for item in patterns if item.is_detected
        ),
        recorded_events=recorded,
        skipped_duplicates=skipped,
        recording_failures=failures,
    )
    logger.info(
        "monitor_sweep_complete spike=%s patterns=%s recorded=%s skipped=%s failures=%s",
        result.spike_detected,
        ",".join(result.patterns_detected) or "-",
        result.recorded_events,
        result.skipped_duplicates,
        result.recording_failures,
    )
    return result


async def run_until_stopped(
    service: ActivityMonitoringService,
    stop_event: asyncio.Event,
    *,
    poll_interval_seconds: float,
    sleep: SleepCallable = asyncio.sleep,
) -> int:
    """Sweep repeatedly until stop_event is set; return the number of sweeps."""

    sweeps = 0
    while not stop_event.is_set():
        try:
            await run_monitor_sweep(service)
        except Exception:  # noqa: BLE001
            logger.exception("monitor_sweep_failed")
        sweeps += 1
        if stop_event.is_set():
            break
        await sleep(poll_interval_seconds)
    return sweeps


async def _run_monitor() -> None:
    settings = load_settings()
    configure_logging(level=settings.log_level)
    logger.info(
        "activity_monitor_starting poll_interval_seconds=%s",
        settings.monitor_poll_interval_seconds,
    )

    session_factory = create_session_factory(settings.database_url)
    service = build_monitoring_service(settings=settings, session_factory=session_factory)
    stop_event = asyncio.Event()

    await run_until_stopped(
        service,
        stop_event,
        poll_interval_seconds=settings.monitor_poll_interval_seconds,
    )


def main() -> None:
    """Run periodic suspicious-activity sweeps."""

    asyncio.run(_run_monitor())


if __name__ == "__main__":
    main()
