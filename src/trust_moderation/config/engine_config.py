"""Translate settings into the config structures injected into the engine."""

from __future__ import annotations

from dataclasses import dataclass

from trust_moderation.application.services.moderation_service import ModerationPolicy
from trust_moderation.config.settings import Settings
from trust_moderation.domain.activity.pattern_detection import (
    PatternThreshold,
    SuspiciousPattern,
    SuspiciousPatternDetector,
)
from trust_moderation.domain.activity.spike_detection import (
    AnomalySpikeDetector,
    SpikeDetectionConfig,
)
from trust_moderation.domain.trust.auto_flag import AutoFlagDetector


@dataclass(frozen=True)
class EngineConfig:
    """Detector and policy instances built from one settings object."""

    auto_flag_detector: AutoFlagDetector
    pattern_detector: SuspiciousPatternDetector
    spike_detector: AnomalySpikeDetector
    moderation_policy: ModerationPolicy
    activity_page_size: int


def build_engine_config(settings: Settings) -> EngineConfig:
    """Build engine components; raises InvalidDetectionConfigError on bad windows."""

    overrides = {
        SuspiciousPattern(name): PatternThreshold(
            count=override.count,
            time_window_minutes=override.time_window_minutes,
        )
        for name, override in settings.suspicious_pattern_overrides.items()
    }
    spike_config = SpikeDetectionConfig(
        spike_threshold=settings.spike_threshold,
        average_window_minutes=settings.spike_average_window_minutes,
        current_window_minutes=settings.spike_current_window_minutes,
        minimum_activities=settings.spike_minimum_activities,
    )
    return EngineConfig(
        auto_flag_detector=AutoFlagDetector(threshold=settings.auto_flag_threshold),
        pattern_detector=SuspiciousPatternDetector(thresholds=overrides),
        spike_detector=AnomalySpikeDetector(config=spike_config),
        moderation_policy=ModerationPolicy(
            cascade_max_concurrency=settings.cascade_max_concurrency,
        ),
        activity_page_size=settings.activity_query_page_size,
    )
