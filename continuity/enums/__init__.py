"""
Centralized enum definitions for the engine.

Usage:
    from continuity.enums import ActivityType, Platform, QuickActionType

    # Or import from the module directly
    from continuity.enums.learning import StudyWindow
"""

from continuity.enums.learning import (
    ActivityType,
    BookmarkOrder,
    Difficulty,
    Platform,
    QuickActionType,
    StudyWindow,
    WeekStart,
)

__all__ = [
    "ActivityType",
    "BookmarkOrder",
    "Difficulty",
    "Platform",
    "QuickActionType",
    "StudyWindow",
    "WeekStart",
]
