"""
Learning Continuity Services

Modules:
- session_store: CRUD over learning sessions
- streak_tracking: daily/weekly study streak bookkeeping
- continuity_ranker: continue-learning priority and reasons
- bookmarks: bookmark annotations on sessions
- insights: read-only learning statistics
- retention: archiving of stale completed sessions
- engine: facade wiring all of the above

Usage:
    from continuity.services.learning import (
        LearningContinuityEngine,
        ContinuityRanker,
        StreakTracker,
    )
"""

from continuity.services.learning.bookmarks import BookmarkService
from continuity.services.learning.continuity_ranker import (
    ContinuityRanker,
    calculate_priority,
    generate_continue_reason,
    generate_quick_actions,
)
from continuity.services.learning.engine import (
    LearningContinuityEngine,
    create_redis_engine,
)
from continuity.services.learning.insights import InsightsAggregator
from continuity.services.learning.retention import RetentionService
from continuity.services.learning.session_store import SessionStore, session_id_for
from continuity.services.learning.streak_tracking import (
    StreakTracker,
    calendar_day_difference,
    week_start,
)

__all__ = [
    # Facade
    "LearningContinuityEngine",
    "create_redis_engine",
    # Services
    "BookmarkService",
    "ContinuityRanker",
    "InsightsAggregator",
    "RetentionService",
    "SessionStore",
    "StreakTracker",
    # Pure helpers
    "calculate_priority",
    "calendar_day_difference",
    "generate_continue_reason",
    "generate_quick_actions",
    "session_id_for",
    "week_start",
]
