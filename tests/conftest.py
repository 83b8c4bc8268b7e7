"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests: a frozen
clock, isolated settings, an in-memory key-value store, an engine wired to
both, and a mocked Redis client.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

# Test environment is applied BEFORE continuity is imported, because the
# module-level settings object is built (and cached) on first import.
os.environ.update(
    {
        "REDIS_URL": os.environ.get("REDIS_URL", "redis://localhost:6379/1"),
        "STUDY_TIMEZONE": "UTC",
        "DEBUG": "true",
    }
)

from continuity.config import Settings
from continuity.db.store import InMemoryKeyValueStore
from continuity.enums.learning import ActivityType, Difficulty, Platform
from continuity.models.learning import LearningSession
from continuity.services.learning.engine import LearningContinuityEngine

# Wednesday afternoon, far from any day/week boundary
FROZEN_NOW = datetime(2026, 3, 11, 15, 0, tzinfo=timezone.utc)


# ============================================================================
# Clock
# ============================================================================


class FrozenClock:
    """Controllable clock for the engine."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def now() -> datetime:
    """The frozen 'current time' used by the engine fixture."""
    return FROZEN_NOW


@pytest.fixture
def clock(now: datetime) -> FrozenClock:
    """A clock frozen at FROZEN_NOW."""
    return FrozenClock(now)


# ============================================================================
# Engine Wiring
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings with explicit values, independent of the environment."""
    return Settings(
        STUDY_TIMEZONE="UTC",
        STORAGE_KEY_PREFIX="test",
        DEFAULT_DAILY_GOAL_MINUTES=60,
        DEFAULT_WEEKLY_GOAL_MINUTES=600,
        STALE_HORIZON_HOURS=72,
        RETENTION_HORIZON_DAYS=30,
        CONTINUE_LEARNING_LIMIT=5,
        MAX_QUICK_ACTIONS=3,
    )


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    """Empty in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def engine(
    kv_store: InMemoryKeyValueStore, test_settings: Settings, clock: FrozenClock
) -> LearningContinuityEngine:
    """Engine backed by the in-memory store and the frozen clock."""
    return LearningContinuityEngine(kv_store, test_settings, clock)


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def session_factory(now: datetime) -> Callable[..., LearningSession]:
    """
    Build LearningSession records directly, for testing pure helpers.

    Usage:
        session = session_factory(progress_percent=85, hours_ago=1)
    """

    def _make(hours_ago: float = 0.0, **overrides: Any) -> LearningSession:
        accessed = now - timedelta(hours=hours_ago)
        data: dict[str, Any] = {
            "id": "session-1",
            "user_id": "user-1",
            "course_id": "course-1",
            "title": "Differential Equations",
            "activity_type": ActivityType.READING,
            "platform": Platform.AI_TUTOR,
            "difficulty": Difficulty.INTERMEDIATE,
            "progress_percent": 40.0,
            "time_spent_minutes": 10.0,
            "created_at": accessed,
            "last_accessed_at": accessed,
        }
        data.update(overrides)
        return LearningSession(**data)

    return _make


# ============================================================================
# Redis
# ============================================================================


@pytest.fixture
def mock_redis() -> MagicMock:
    """
    Create a mock Redis client for unit testing.

    This allows testing Redis-dependent code without a real Redis server.
    """
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.ping = AsyncMock(return_value=True)
    return mock
