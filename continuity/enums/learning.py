"""
Learning Continuity Enums

Defines enums for session classification, continuation actions,
and streak/insight bookkeeping.
"""

from enum import Enum


class ActivityType(str, Enum):
    """
    Kind of activity a learning session tracks.

    Affects continuation scoring:
    - VIDEO with progress > 10%: resurfaced earlier
    - QUIZ with any progress: resurfaced earlier, offers practice
    """

    VIDEO = "video"
    READING = "reading"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    INTERACTIVE = "interactive"
    OPEN_EXPLORATION = "open-exploration"


class Platform(str, Enum):
    """
    Platform a learning session originates from.
    """

    STRUCTURED_COURSE = "structured-course"  # Sequenced course content
    OPEN_EXPLORATION = "open-exploration"  # Curiosity-driven browsing
    AI_TUTOR = "ai-tutor"  # Conversational tutoring
    PRACTICE_DRILL = "practice-drill"  # Drills and practice quizzes


class Difficulty(str, Enum):
    """
    Difficulty levels for session content.
    """

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class QuickActionType(str, Enum):
    """
    Tagged action kinds handed back to the caller's dispatcher.

    The engine only describes the action; mapping a kind to navigation
    or UI behavior is the caller's job.
    """

    RESUME = "resume"  # Resume (or start) the session
    REVIEW = "review"  # Review already covered material
    PRACTICE = "practice"  # Practice with drills/quizzes
    NEXT = "next"  # Jump to the suggested follow-on unit
    HELP = "help"  # Ask for help on this session


class StudyWindow(str, Enum):
    """
    Coarse time-of-day windows used by learning insights.

    Hour ranges (local time):
    - MORNING: 6-12
    - AFTERNOON: 12-18
    - EVENING: 18-22
    - NIGHT: everything else
    """

    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"
    NIGHT = "Night"


class WeekStart(str, Enum):
    """
    First day of the week for weekly goal bucketing.
    """

    MONDAY = "monday"  # ISO week (default)
    SUNDAY = "sunday"


class BookmarkOrder(str, Enum):
    """
    Ordering for bookmark listings.
    """

    CREATED = "created"  # Append order (creation time)
    POSITION = "position"  # Position within the activity
