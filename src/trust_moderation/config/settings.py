"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trust_moderation.domain.activity.pattern_detection import SuspiciousPattern

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]
PositiveFloat = Annotated[float, Field(gt=0.0)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]
PositiveInt = Annotated[int, Field(gt=0)]


class PatternThresholdOverride(BaseModel):
    """One pattern's replacement count and window."""

    model_config = ConfigDict(extra="forbid")

    count: PositiveInt
    time_window_minutes: PositiveInt


class Settings(BaseSettings):
    """Environment-driven engine settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    auto_flag_threshold: PositiveInt = Field(default=3, validation_alias="AUTO_FLAG_THRESHOLD")
    spike_threshold: PositiveFloat = Field(default=2.0, validation_alias="SPIKE_THRESHOLD")
    spike_average_window_minutes: PositiveInt = Field(
        default=60,
        validation_alias="SPIKE_AVERAGE_WINDOW_MINUTES",
    )
    spike_current_window_minutes: PositiveInt = Field(
        default=5,
        validation_alias="SPIKE_CURRENT_WINDOW_MINUTES",
    )
    spike_minimum_activities: NonNegativeInt = Field(
        default=10,
        validation_alias="SPIKE_MINIMUM_ACTIVITIES",
    )
    suspicious_pattern_overrides: dict[str, PatternThresholdOverride] = Field(
        default_factory=dict,
        validation_alias="SUSPICIOUS_PATTERN_OVERRIDES",
    )
    cascade_max_concurrency: PositiveInt = Field(
        default=4,
        validation_alias="CASCADE_MAX_CONCURRENCY",
    )
    monitor_poll_interval_seconds: NonNegativeFloat = Field(
        default=60.0,
        validation_alias="MONITOR_POLL_INTERVAL_SECONDS",
    )
    activity_query_page_size: PositiveInt = Field(
        default=100,
        validation_alias="ACTIVITY_QUERY_PAGE_SIZE",
    )

    @field_validator("suspicious_pattern_overrides")
    @classmethod
    def _known_patterns_only(
        cls,
        value: dict[str, PatternThresholdOverride],
    ) -> dict[str, PatternThresholdOverride]:
        known = {pattern.value for pattern in SuspiciousPattern}
        unknown = sorted(set(value) - known)
        if unknown:
            raise ValueError(f"unknown suspicious patterns: {', '.join(unknown)}")
        return value


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache engine settings."""

    return Settings()  # type: ignore[call-arg]
