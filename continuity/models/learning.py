"""
Learning Continuity Models (Pydantic)

Records and read results for the Learning Continuity Engine:
- Learning sessions with bookmarks and next-step suggestions
- Study streaks with daily/weekly goals
- Continue-learning items and their quick actions
- Learning insights

ARCHITECTURE NOTE:
    Records are serialized with model_dump_json() into the key-value store
    and decoded with model_validate_json(). Timestamps are timezone-aware
    and serialize as ISO-8601 with microseconds, so they round-trip
    losslessly.

    Data flows: Caller → SessionUpsert → SessionStore → LearningSession → Store

Input Contract:
    SessionUpsert uses StrictRequest (extra="forbid") to reject unknown fields.
    Range checks (progress, minutes) are enforced by the services so that
    failures surface as continuity.exceptions.ValidationError.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AwareDatetime, Field, computed_field

from continuity.enums.learning import (
    ActivityType,
    Difficulty,
    Platform,
    QuickActionType,
    StudyWindow,
)
from continuity.models.base import StrictRequest, StrictResponse


# ===========================================
# Session Models
# ===========================================


class Bookmark(StrictResponse):
    """
    Named position marker inside a session's content.

    `timestamp` is a position within the activity (video seek seconds,
    reading offset) and has nothing to do with `created_at`, which is the
    wall-clock time the bookmark was made.
    """

    id: str
    timestamp: float = Field(..., ge=0, description="Position within the activity")
    title: str
    note: Optional[str] = None
    created_at: AwareDatetime


class NextSuggestion(StrictResponse):
    """
    Advisory pointer to a follow-on unit.

    Not an enforced relation: the referenced unit may not have a session yet.
    """

    id: str
    title: str
    activity_type: ActivityType
    platform: Platform
    reason: str = ""
    estimated_duration_minutes: float = Field(30.0, gt=0)
    difficulty: Difficulty = Difficulty.INTERMEDIATE


class LearningSession(StrictResponse):
    """
    One in-progress or completed unit of study for one user.

    Completion is one-way: `completed_at` is set the first time progress
    reaches 100 and `progress_percent` is frozen from then on. `is_completed`
    is derived from `completed_at` and cannot be set directly.
    """

    # Identity (immutable)
    id: str
    user_id: str

    # Grouping
    course_id: str = Field("", description="Subject/course grouping key")
    lesson_id: Optional[str] = None
    section_id: Optional[str] = None

    # Classification
    activity_type: ActivityType
    platform: Platform
    difficulty: Difficulty = Difficulty.INTERMEDIATE

    # Content
    title: str = ""
    description: str = ""
    notes: str = ""

    # Progress
    progress_percent: float = Field(0.0, ge=0.0, le=100.0)
    time_spent_minutes: float = Field(0.0, ge=0.0)
    estimated_duration_minutes: float = Field(30.0, gt=0.0)
    actual_duration_minutes: Optional[float] = None
    score: Optional[float] = Field(None, description="Score for quizzes/assessments")

    # Temporal
    created_at: AwareDatetime
    last_accessed_at: AwareDatetime
    completed_at: Optional[AwareDatetime] = None
    archived_at: Optional[AwareDatetime] = None

    # Relations
    bookmarks: list[Bookmark] = Field(default_factory=list)
    next_suggestion: Optional[NextSuggestion] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_completed(self) -> bool:
        """True once the session has reached 100% (never reverts)."""
        return self.completed_at is not None

    @property
    def is_archived(self) -> bool:
        """True once the retention sweep has archived the session."""
        return self.archived_at is not None


class ArchiveMarker(StrictResponse):
    """
    Archive flag for a session, stored under its own key.

    Kept apart from the session record so archiving never rewrites the
    session and cannot overwrite a concurrent progress update.
    """

    session_id: str
    archived_at: AwareDatetime


class SessionUpsert(StrictRequest):
    """
    Input for creating or updating a learning session.

    `id` and `user_id` are required; every other field is optional and only
    the provided ones are merged into an existing record. `activity_type`
    and `platform` are required when the session does not exist yet.

    Note: Uses StrictRequest - unknown fields (including `is_completed`)
    are rejected.
    """

    id: str
    user_id: str
    course_id: Optional[str] = None
    lesson_id: Optional[str] = None
    section_id: Optional[str] = None
    activity_type: Optional[ActivityType] = None
    platform: Optional[Platform] = None
    difficulty: Optional[Difficulty] = None
    title: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    progress_percent: Optional[float] = None
    time_spent_minutes: Optional[float] = None
    estimated_duration_minutes: Optional[float] = None
    score: Optional[float] = None
    next_suggestion: Optional[NextSuggestion] = None


# ===========================================
# Streak Models
# ===========================================


class StudyStreak(StrictResponse):
    """
    Per-user study streak and goal bookkeeping.

    `current_streak` counts consecutive calendar days with study time;
    `longest_streak` is its historic maximum, so it is never below
    `current_streak`.
    """

    user_id: str
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    last_study_date: AwareDatetime
    daily_goal_minutes: float = Field(60.0, ge=0)
    today_progress_minutes: float = Field(0.0, ge=0)
    weekly_goal_minutes: float = Field(600.0, ge=0)
    weekly_progress_minutes: float = Field(0.0, ge=0)

    @property
    def daily_goal_met(self) -> bool:
        return self.today_progress_minutes >= self.daily_goal_minutes

    @property
    def weekly_goal_met(self) -> bool:
        return self.weekly_progress_minutes >= self.weekly_goal_minutes


# ===========================================
# Continue Learning Models
# ===========================================


class QuickAction(StrictResponse):
    """
    Action descriptor for the caller's dispatcher.

    Carries only the data needed to perform the action; `target_id` is the
    follow-on unit id for NEXT actions and None otherwise.
    """

    type: QuickActionType
    session_id: str
    label: str
    target_id: Optional[str] = None


class ContinueLearningItem(StrictResponse):
    """
    One ranked continuation candidate.

    `priority_score` is in [1.0, 5.0], lower means resurfaced first.
    `stale_in_hours` is the remaining time before the suggestion goes stale.
    """

    session: LearningSession
    priority_score: float = Field(..., ge=1.0, le=5.0)
    reason_text: str
    stale_in_hours: float = Field(..., ge=0.0)
    suggested_actions: list[QuickAction] = Field(default_factory=list)


# ===========================================
# Insight Models
# ===========================================


class FocusArea(StrictResponse):
    """An incomplete session recommended for focus."""

    session_id: str
    title: str
    progress_percent: float


class LearningInsights(StrictResponse):
    """
    Read-only statistics over a user's full session history.

    `completion_rate` is a ratio in [0, 1] and is 0 for a user with no sessions.
    """

    user_id: str
    total_sessions: int = 0
    completed_sessions: int = 0
    total_time_studied_minutes: float = 0.0
    average_session_minutes: float = 0.0
    completion_rate: float = Field(0.0, ge=0.0, le=1.0)
    preferred_study_window: StudyWindow = StudyWindow.NIGHT
    strongest_subjects: list[str] = Field(default_factory=list)
    recommended_focus: list[FocusArea] = Field(default_factory=list)
