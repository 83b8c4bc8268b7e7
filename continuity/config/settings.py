"""
Engine Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from continuity.config import settings

    # Access settings
    redis_url = settings.REDIS_URL
    horizon = settings.STALE_HORIZON_HOURS
"""

from functools import lru_cache
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings

from continuity.enums.learning import WeekStart


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Learning Continuity Engine"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Storage
    REDIS_URL: str = "redis://localhost:6379/0"
    STORAGE_KEY_PREFIX: str = "continuity"

    # Calendar handling for streaks and insights.
    # Day boundaries are evaluated in this timezone, never by subtracting timestamps.
    STUDY_TIMEZONE: str = "UTC"
    WEEK_START: WeekStart = WeekStart.MONDAY

    # Goals assigned to a user's streak record on first touch
    DEFAULT_DAILY_GOAL_MINUTES: int = 60  # 1 hour per day
    DEFAULT_WEEKLY_GOAL_MINUTES: int = 600  # 10 hours per week

    # Continue learning
    CONTINUE_LEARNING_LIMIT: int = 5
    STALE_HORIZON_HOURS: float = 72.0  # 3 days until a suggestion goes stale
    MAX_QUICK_ACTIONS: int = 3

    # Retention sweep: completed sessions untouched for this long get archived
    RETENTION_HORIZON_DAYS: int = 30

    # Insights
    INSIGHTS_TOP_N: int = 3
    STRONG_SUBJECT_THRESHOLD: float = 0.7

    @field_validator("STUDY_TIMEZONE")
    @classmethod
    def validate_study_timezone(cls, v: str) -> str:
        """Fail at load time on unknown IANA zone names."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def study_tz(self) -> ZoneInfo:
        """Timezone used to derive calendar dates and hours of day."""
        return ZoneInfo(self.STUDY_TIMEZONE)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load engine configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
