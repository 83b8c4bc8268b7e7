"""Pydantic models for the engine."""

from continuity.models.learning import (
    ArchiveMarker,
    Bookmark,
    ContinueLearningItem,
    FocusArea,
    LearningInsights,
    LearningSession,
    NextSuggestion,
    QuickAction,
    SessionUpsert,
    StudyStreak,
)

__all__ = [
    "ArchiveMarker",
    "Bookmark",
    "ContinueLearningItem",
    "FocusArea",
    "LearningInsights",
    "LearningSession",
    "NextSuggestion",
    "QuickAction",
    "SessionUpsert",
    "StudyStreak",
]
