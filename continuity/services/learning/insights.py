"""
Learning Insights Aggregator

Read-only statistics over a user's full session history (archived
sessions included). Nothing here writes to the store.

Insights:
- Total and average study time
- Completion rate (0 when there are no sessions)
- Preferred study window (time of day with the most study minutes)
- Strongest subjects (courses with a high completion rate)
- Recommended focus (least progressed incomplete sessions)

Usage:
    from continuity.services.learning.insights import InsightsAggregator

    aggregator = InsightsAggregator(session_store)
    insights = await aggregator.get_insights("user-1")
"""

from datetime import tzinfo
from typing import Optional

from continuity.config import Settings, settings as default_settings
from continuity.enums.learning import StudyWindow
from continuity.exceptions import ValidationError
from continuity.models.learning import FocusArea, LearningInsights, LearningSession
from continuity.services.learning.session_store import SessionStore


def completion_rate(sessions: list[LearningSession]) -> float:
    """Fraction of completed sessions, 0.0 for an empty history."""
    if not sessions:
        return 0.0
    completed = sum(1 for s in sessions if s.is_completed)
    return completed / len(sessions)


def study_window_for_hour(hour: int) -> StudyWindow:
    """Map an hour of day (0-23) to its coarse study window."""
    if 6 <= hour < 12:
        return StudyWindow.MORNING
    if 12 <= hour < 18:
        return StudyWindow.AFTERNOON
    if 18 <= hour < 22:
        return StudyWindow.EVENING
    return StudyWindow.NIGHT


def preferred_study_window(sessions: list[LearningSession], tz: tzinfo) -> StudyWindow:
    """
    Time-of-day window where the most study minutes were spent.

    Minutes are bucketed into 24 hourly bins by the local hour of each
    session's last access. The window containing the fullest bin wins; ties
    go to the lowest hour.

    Args:
        sessions: Session history.
        tz: Timezone for local hours.

    Returns:
        StudyWindow containing the peak hour.
    """
    hour_minutes = [0.0] * 24
    for session in sessions:
        hour = session.last_accessed_at.astimezone(tz).hour
        hour_minutes[hour] += session.time_spent_minutes

    # index() returns the first (lowest) hour holding the maximum
    peak_hour = hour_minutes.index(max(hour_minutes))
    return study_window_for_hour(peak_hour)


def strongest_subjects(
    sessions: list[LearningSession], threshold: float = 0.7, top_n: int = 3
) -> list[str]:
    """
    Subjects (course ids) with the highest completion rates.

    Args:
        sessions: Session history.
        threshold: Minimum completion rate (exclusive) to qualify.
        top_n: Maximum number of subjects returned.

    Returns:
        list[str]: Course ids sorted by completion rate, highest first.
        Equal rates keep first-seen order.
    """
    totals: dict[str, list[int]] = {}
    for session in sessions:
        counts = totals.setdefault(session.course_id, [0, 0])
        counts[0] += 1
        if session.is_completed:
            counts[1] += 1

    rates = [
        (subject, completed / total)
        for subject, (total, completed) in totals.items()
    ]
    strong = [(subject, rate) for subject, rate in rates if rate > threshold]
    strong.sort(key=lambda item: item[1], reverse=True)
    return [subject for subject, _ in strong[:top_n]]


def recommended_focus(sessions: list[LearningSession], top_n: int = 3) -> list[FocusArea]:
    """
    Incomplete sessions with the least progress, ascending.

    Equal progress keeps history order.
    """
    incomplete = [s for s in sessions if not s.is_completed]
    incomplete.sort(key=lambda s: s.progress_percent)
    return [
        FocusArea(
            session_id=s.id,
            title=s.title,
            progress_percent=s.progress_percent,
        )
        for s in incomplete[:top_n]
    ]


class InsightsAggregator:
    """Computes LearningInsights from the session store."""

    def __init__(self, session_store: SessionStore, config: Optional[Settings] = None):
        """
        Initialize the aggregator.

        Args:
            session_store: SessionStore used for reads only.
            config: Engine settings (defaults to the global settings).
        """
        self.session_store = session_store
        self.config = config or default_settings

    async def get_insights(self, user_id: str) -> LearningInsights:
        """
        Compute learning insights for a user.

        A user without sessions gets zeroed insights, never an error.

        Raises:
            ValidationError: If user_id is empty.
        """
        if not user_id:
            raise ValidationError("user_id must not be empty")

        sessions = await self.session_store.list_by_user(user_id)
        return self.summarize(user_id, sessions)

    def summarize(
        self, user_id: str, sessions: list[LearningSession]
    ) -> LearningInsights:
        """Build insights from an already loaded session history."""
        total_minutes = sum(s.time_spent_minutes for s in sessions)
        top_n = self.config.INSIGHTS_TOP_N

        return LearningInsights(
            user_id=user_id,
            total_sessions=len(sessions),
            completed_sessions=sum(1 for s in sessions if s.is_completed),
            total_time_studied_minutes=total_minutes,
            average_session_minutes=total_minutes / len(sessions) if sessions else 0.0,
            completion_rate=completion_rate(sessions),
            preferred_study_window=preferred_study_window(
                sessions, self.config.study_tz
            ),
            strongest_subjects=strongest_subjects(
                sessions, self.config.STRONG_SUBJECT_THRESHOLD, top_n
            ),
            recommended_focus=recommended_focus(sessions, top_n),
        )
