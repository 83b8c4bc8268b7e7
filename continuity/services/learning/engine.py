"""
Learning Continuity Engine

Facade wiring the session store, streak tracker, ranker, bookmark service,
insights aggregator and retention sweep around one injected key-value store.

Presentation API (side-effect-free):
- rank(user_id, limit)
- get_insights(user_id)
- get_study_streak(user_id)

Mutation API (validated, typed failures from continuity.exceptions):
- create_or_update_session(upsert)
- create_session(...)
- update_progress(session_id, progress_percent, minutes_delta, notes)
- add_bookmark(session_id, timestamp, title, note)

The engine holds no global state: the store, settings and clock are all
passed in at construction time.

Usage:
    from continuity.db.store import InMemoryKeyValueStore
    from continuity.services.learning.engine import LearningContinuityEngine

    engine = LearningContinuityEngine(InMemoryKeyValueStore())
    session = await engine.create_session(
        user_id="user-1",
        course_id="calculus",
        lesson_id="calc-8",
        title="Differential Equations",
        activity_type=ActivityType.VIDEO,
        platform=Platform.STRUCTURED_COURSE,
    )
    await engine.update_progress(session.id, 40, minutes_delta=12)
    items = await engine.rank("user-1")
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from continuity.config import Settings, settings as default_settings
from continuity.db.redis import RedisKeyValueStore, get_redis
from continuity.db.store import KeyBuilder, KeyValueStore
from continuity.enums.learning import (
    ActivityType,
    BookmarkOrder,
    Difficulty,
    Platform,
)
from continuity.exceptions import ValidationError
from continuity.models.learning import (
    Bookmark,
    ContinueLearningItem,
    LearningInsights,
    LearningSession,
    NextSuggestion,
    SessionUpsert,
    StudyStreak,
)
from continuity.services.learning.bookmarks import BookmarkService
from continuity.services.learning.continuity_ranker import ContinuityRanker
from continuity.services.learning.insights import InsightsAggregator
from continuity.services.learning.retention import RetentionService
from continuity.services.learning.session_store import SessionStore, session_id_for
from continuity.services.learning.streak_tracking import StreakTracker

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class LearningContinuityEngine:
    """
    Entry point for callers of the Learning Continuity Engine.

    Mutations for a given user must be serialized by the caller; reads may
    run concurrently with writes for other users.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[Settings] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize the engine.

        Args:
            store: Durable key-value store for sessions and streaks.
            config: Engine settings (defaults to the global settings).
            clock: Callable returning the current timezone-aware time.
        """
        self.config = config or default_settings
        self.clock = clock
        self.keys = KeyBuilder(self.config.STORAGE_KEY_PREFIX)

        self.streaks = StreakTracker(store, self.keys, self.config)
        self.sessions = SessionStore(store, self.keys, self.streaks)
        self.ranker = ContinuityRanker(self.sessions, self.config)
        self.bookmarks = BookmarkService(self.sessions)
        self.insights = InsightsAggregator(self.sessions, self.config)
        self.retention = RetentionService(store, self.keys, self.sessions, self.config)

    # =========================================================================
    # Presentation API
    # =========================================================================

    async def rank(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[ContinueLearningItem]:
        """
        Ranked continue-learning items for a user, most urgent first.

        Recomputed on every call. An empty list means there is nothing to
        continue and the caller should show its empty state.
        """
        if limit is None:
            limit = self.config.CONTINUE_LEARNING_LIMIT
        return await self.ranker.rank(user_id, limit, self._now())

    async def get_insights(self, user_id: str) -> LearningInsights:
        """Read-only learning statistics for a user."""
        return await self.insights.get_insights(user_id)

    async def get_study_streak(self, user_id: str) -> StudyStreak:
        """A user's streak record (zeroed defaults if they never studied)."""
        return await self.streaks.get(user_id, self._now())

    # =========================================================================
    # Mutation API
    # =========================================================================

    async def create_or_update_session(
        self, session: Union[SessionUpsert, dict[str, Any]]
    ) -> LearningSession:
        """
        Insert or merge a session.

        Args:
            session: SessionUpsert, or a plain dict validated into one.

        Raises:
            ValidationError: On malformed input (including unknown fields).
        """
        upsert = self._coerce_upsert(session)
        return await self.sessions.create_or_update(upsert, self._now())

    async def create_session(
        self,
        user_id: str,
        course_id: str,
        lesson_id: str,
        title: str,
        activity_type: ActivityType,
        platform: Platform,
        description: str = "",
        difficulty: Difficulty = Difficulty.INTERMEDIATE,
        estimated_duration_minutes: float = 30,
        next_suggestion: Optional[NextSuggestion] = None,
    ) -> LearningSession:
        """
        Start tracking an activity for a user.

        The session id is derived from (user, course, lesson), so calling
        this again for the same activity updates the existing session
        instead of creating a duplicate.
        """
        if not course_id or not lesson_id:
            raise ValidationError("course_id and lesson_id must not be empty")

        upsert = self._coerce_upsert(
            {
                "id": session_id_for(user_id, course_id, lesson_id),
                "user_id": user_id,
                "course_id": course_id,
                "lesson_id": lesson_id,
                "title": title,
                "description": description,
                "activity_type": activity_type,
                "platform": platform,
                "difficulty": difficulty,
                "estimated_duration_minutes": estimated_duration_minutes,
                "next_suggestion": next_suggestion,
            }
        )
        return await self.sessions.create_or_update(upsert, self._now())

    async def update_progress(
        self,
        session_id: str,
        progress_percent: float,
        minutes_delta: float,
        notes: Optional[str] = None,
    ) -> LearningSession:
        """Update progress and record study time (see SessionStore.update_progress)."""
        return await self.sessions.update_progress(
            session_id, progress_percent, minutes_delta, notes, now=self._now()
        )

    async def add_bookmark(
        self,
        session_id: str,
        timestamp: float,
        title: str,
        note: Optional[str] = None,
    ) -> Bookmark:
        """Append a bookmark at a position within the session's activity."""
        return await self.bookmarks.add_bookmark(
            session_id, timestamp, title, note, now=self._now()
        )

    # =========================================================================
    # Additional Reads and Maintenance
    # =========================================================================

    async def get_session(self, session_id: str) -> LearningSession:
        return await self.sessions.get(session_id)

    async def list_sessions(
        self, user_id: str, include_archived: bool = True
    ) -> list[LearningSession]:
        return await self.sessions.list_by_user(user_id, include_archived)

    async def list_bookmarks(
        self, session_id: str, order: BookmarkOrder = BookmarkOrder.CREATED
    ) -> list[Bookmark]:
        return await self.bookmarks.list_bookmarks(session_id, order)

    async def archive_completed_sessions(
        self, horizon_days: Optional[int] = None
    ) -> int:
        """Run the retention sweep; returns the number of archived sessions."""
        return await self.retention.archive_completed_sessions(
            self._now(), horizon_days
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            raise ValidationError("Engine clock must return timezone-aware datetimes")
        return now

    @staticmethod
    def _coerce_upsert(session: Union[SessionUpsert, dict[str, Any]]) -> SessionUpsert:
        if isinstance(session, SessionUpsert):
            return session
        try:
            return SessionUpsert.model_validate(session)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid session payload",
                details={"errors": e.errors(include_url=False)},
            ) from e


async def create_redis_engine(
    config: Optional[Settings] = None, clock: Clock = utc_now
) -> LearningContinuityEngine:
    """
    Build an engine backed by the shared Redis connection pool.

    Usage:
        engine = await create_redis_engine()
        items = await engine.rank("user-1")
    """
    client = await get_redis()
    return LearningContinuityEngine(RedisKeyValueStore(client), config, clock)
