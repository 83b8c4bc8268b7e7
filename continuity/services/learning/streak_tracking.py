"""
Study Streak Tracking Service

Maintains per-user study streaks and daily/weekly goal progress from a
stream of (user, minutes, timestamp) study events.

Responsibilities:
- Advance, keep or restart the consecutive-day streak
- Track the historic longest streak
- Accumulate today's and this week's study minutes
- Lazily create a streak record on a user's first study event

Day transitions are decided by comparing calendar dates in the configured
study timezone, never by subtracting timestamps, so two events on the same
date always count as the same day regardless of clock time or DST.

Usage:
    from continuity.services.learning.streak_tracking import StreakTracker

    tracker = StreakTracker(store, KeyBuilder("continuity"))
    streak = await tracker.record("user-1", minutes_delta=15, now=now)
"""

import logging
import math
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from continuity.config import Settings, settings as default_settings
from continuity.db.store import KeyBuilder, KeyValueStore, decode_record, encode_record
from continuity.enums.learning import WeekStart
from continuity.exceptions import ValidationError
from continuity.models.learning import StudyStreak

logger = logging.getLogger(__name__)


def to_local_date(moment: datetime, tz: tzinfo) -> date:
    """Calendar date of a timezone-aware moment in the given timezone."""
    return moment.astimezone(tz).date()


def calendar_day_difference(now: datetime, last: datetime, tz: tzinfo) -> int:
    """
    Number of calendar days between two moments.

    Compares date components in `tz`: 23:59 and 00:01 the next day are one
    day apart, while 00:01 and 23:59 on the same day are zero days apart.

    Args:
        now: The later moment (timezone-aware).
        last: The earlier moment (timezone-aware).
        tz: Timezone whose calendar defines day boundaries.

    Returns:
        int: Day difference, negative if `now` falls on an earlier date.
    """
    return (to_local_date(now, tz) - to_local_date(last, tz)).days


def week_start(
    moment: datetime, tz: tzinfo, first_day: WeekStart = WeekStart.MONDAY
) -> date:
    """
    First calendar date of the week containing `moment`.

    Args:
        moment: Timezone-aware moment.
        tz: Timezone whose calendar defines day boundaries.
        first_day: Day that starts the week (ISO weeks start on Monday).

    Returns:
        date: The Monday (or Sunday) on or before the moment's local date.
    """
    local = to_local_date(moment, tz)
    if first_day == WeekStart.SUNDAY:
        offset = (local.weekday() + 1) % 7
    else:
        offset = local.weekday()
    return local - timedelta(days=offset)


class StreakTracker:
    """
    Service for per-user study streak bookkeeping.

    One StudyStreak record per user is kept in the key-value store. All
    writes for a user are expected to be serialized by the caller.
    """

    def __init__(
        self,
        store: KeyValueStore,
        keys: KeyBuilder,
        config: Optional[Settings] = None,
    ):
        """
        Initialize the streak tracker.

        Args:
            store: Key-value store holding streak records.
            keys: Key builder for record namespacing.
            config: Engine settings (defaults to the global settings).
        """
        self.store = store
        self.keys = keys
        self.config = config or default_settings

    async def get(self, user_id: str, now: Optional[datetime] = None) -> StudyStreak:
        """
        Get a user's streak record.

        A user who never studied gets an unsaved default record with zero
        counters; nothing is written.

        Args:
            user_id: User identifier.
            now: Timestamp used as `last_study_date` for the default record.

        Returns:
            StudyStreak for the user.
        """
        self._require_user(user_id)
        streak = await self._load(user_id)
        if streak is not None:
            return streak
        return self._initial_streak(user_id, now or datetime.now(self.config.study_tz))

    async def record(
        self, user_id: str, minutes_delta: float, now: datetime
    ) -> StudyStreak:
        """
        Record study time and advance the user's streak.

        Transitions (by calendar days since the last study date):
        - 0 (same day): add minutes to today's progress, streak unchanged
        - 1 (next day): today's progress restarts, streak + 1
        - >1 (gap): today's progress restarts, streak restarts at 1

        The same-day branch is checked first so repeated events on one date
        never count a day transition twice. The one exception to "same day
        leaves the streak unchanged": while the streak is still 0, the first
        event with study time starts it at 1, so a user's first study day
        counts as a one-day streak.

        An event dated before the last study date (clock skew, replays) is
        treated as same day: it adds to today's and this week's minutes and
        never moves `last_study_date` back. Weekly progress restarts only
        when a later event falls into a different week than the last study
        date.

        Args:
            user_id: User identifier.
            minutes_delta: Minutes studied in this event (>= 0).
            now: Event timestamp (timezone-aware).

        Returns:
            The updated (persisted) StudyStreak.

        Raises:
            ValidationError: On empty user id, negative or non-finite minutes,
                or a naive timestamp.
        """
        self._require_user(user_id)
        if not math.isfinite(minutes_delta) or minutes_delta < 0:
            raise ValidationError(
                "minutes_delta must be a finite, non-negative number",
                details={"minutes_delta": minutes_delta},
            )
        if now.tzinfo is None:
            raise ValidationError("now must be timezone-aware")

        streak = await self._load(user_id)
        if streak is None:
            streak = self._initial_streak(user_id, now)
            logger.info(
                f"Initialized study streak for user {user_id} "
                f"(daily goal {streak.daily_goal_minutes}min, "
                f"weekly goal {streak.weekly_goal_minutes}min)"
            )
            if minutes_delta == 0:
                await self._save(streak)
                return streak

        # Events without study time do not qualify as a study day
        if minutes_delta == 0:
            return streak

        tz = self.config.study_tz
        last = streak.last_study_date
        days_since = calendar_day_difference(now, last, tz)

        if days_since < 0:
            logger.warning(
                f"Study event for user {user_id} at {now.isoformat()} predates "
                f"last study date {last.isoformat()}; counting as same day"
            )

        if days_since <= 0:
            streak.today_progress_minutes += minutes_delta
            if streak.current_streak == 0:
                # First qualifying activity starts the streak
                streak.current_streak = 1
        elif days_since == 1:
            streak.today_progress_minutes = minutes_delta
            streak.current_streak += 1
        else:
            streak.today_progress_minutes = minutes_delta
            streak.current_streak = 1

        streak.longest_streak = max(streak.longest_streak, streak.current_streak)

        first_day = self.config.WEEK_START
        if days_since > 0 and week_start(now, tz, first_day) != week_start(
            last, tz, first_day
        ):
            streak.weekly_progress_minutes = minutes_delta
        else:
            streak.weekly_progress_minutes += minutes_delta

        streak.last_study_date = max(now, last)

        await self._save(streak)
        logger.debug(
            f"Streak for user {user_id}: current={streak.current_streak}, "
            f"longest={streak.longest_streak}, today={streak.today_progress_minutes}min"
        )
        return streak

    def _initial_streak(self, user_id: str, now: datetime) -> StudyStreak:
        """Zeroed streak record with the configured default goals."""
        return StudyStreak(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            last_study_date=now,
            daily_goal_minutes=self.config.DEFAULT_DAILY_GOAL_MINUTES,
            today_progress_minutes=0,
            weekly_goal_minutes=self.config.DEFAULT_WEEKLY_GOAL_MINUTES,
            weekly_progress_minutes=0,
        )

    async def _load(self, user_id: str) -> Optional[StudyStreak]:
        key = self.keys.streak(user_id)
        raw = await self.store.get(key)
        if raw is None:
            return None
        return decode_record(StudyStreak, raw, key)

    async def _save(self, streak: StudyStreak) -> None:
        await self.store.set(self.keys.streak(streak.user_id), encode_record(streak))

    @staticmethod
    def _require_user(user_id: str) -> None:
        if not user_id or not user_id.strip():
            raise ValidationError("user_id must not be empty")
