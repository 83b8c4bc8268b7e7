"""
Continuity Ranker

Decides which in-progress sessions to resurface next ("continue learning")
and explains why.

Scoring (lower score = resurfaced first):
    base                                   3.0
    accessed < 2h ago                     -2.0
    accessed < 6h ago                     -1.0
    accessed > 48h ago                    +1.0
    progress > 80%                        -1.0
    progress > 50%                        -0.5
    video with progress > 10%             -0.5
    quiz with any progress                -1.0
    structured-course platform            -0.5
The sum is clamped into [1.0, 5.0]. Ties are ordered by most recent access,
then by session id, so rankings are deterministic for a fixed "now".

Rankings depend on the current time and are recomputed on every call.

Usage:
    from continuity.services.learning.continuity_ranker import ContinuityRanker

    ranker = ContinuityRanker(session_store)
    items = await ranker.rank("user-1", limit=5, now=now)
"""

import logging
from datetime import datetime
from typing import Optional

from continuity.config import Settings, settings as default_settings
from continuity.enums.learning import ActivityType, Platform, QuickActionType
from continuity.exceptions import ValidationError
from continuity.models.learning import (
    ContinueLearningItem,
    LearningSession,
    QuickAction,
)
from continuity.services.learning.session_store import SessionStore

logger = logging.getLogger(__name__)

BASE_PRIORITY: float = 3.0
MIN_PRIORITY: float = 1.0
MAX_PRIORITY: float = 5.0

# Reason texts, in the order they are evaluated
REASON_ALMOST_DONE = "You're almost done! Just a few more minutes to complete."
REASON_MOMENTUM = "You were just studying this. Keep the momentum going!"
REASON_RESUME_VIDEO = "Continue from {progress}% where you left off."
REASON_QUIZ = "Complete this quiz to test your understanding."
REASON_REFRESH = "Let's refresh your memory and continue learning."
REASON_CONTINUE = "Continue your learning journey from where you left off."


def hours_since(moment: datetime, now: datetime) -> float:
    """Elapsed hours between `moment` and `now` (negative if in the future)."""
    return (now - moment).total_seconds() / 3600


def calculate_priority(session: LearningSession, hours_since_access: float) -> float:
    """
    Calculate the continuation priority score of a session.

    Args:
        session: Session to score.
        hours_since_access: Hours since the session was last accessed.

    Returns:
        float: Score in [1.0, 5.0], lower is more urgent.
    """
    priority = BASE_PRIORITY
    progress = session.progress_percent

    # Recency
    if hours_since_access < 2:
        priority -= 2.0
    elif hours_since_access < 6:
        priority -= 1.0
    elif hours_since_access > 48:
        priority += 1.0

    # Progress
    if progress > 80:
        priority -= 1.0
    elif progress > 50:
        priority -= 0.5

    # Activity type
    if session.activity_type == ActivityType.VIDEO and progress > 10:
        priority -= 0.5
    if session.activity_type == ActivityType.QUIZ and progress > 0:
        priority -= 1.0

    # Platform
    if session.platform == Platform.STRUCTURED_COURSE:
        priority -= 0.5

    return max(MIN_PRIORITY, min(MAX_PRIORITY, priority))


def generate_continue_reason(session: LearningSession, hours_since_access: float) -> str:
    """
    Pick a human-readable reason to continue a session.

    Conditions are checked in a fixed order and the first match wins:
    almost done, just studied, resume video, finish quiz, refresh memory,
    generic continue.
    """
    progress = session.progress_percent

    if progress > 80:
        return REASON_ALMOST_DONE
    if hours_since_access < 2:
        return REASON_MOMENTUM
    if session.activity_type == ActivityType.VIDEO and progress > 20:
        return REASON_RESUME_VIDEO.format(progress=int(progress + 0.5))
    if session.activity_type == ActivityType.QUIZ:
        return REASON_QUIZ
    if hours_since_access > 24:
        return REASON_REFRESH
    return REASON_CONTINUE


def generate_quick_actions(
    session: LearningSession, max_actions: int = 3
) -> list[QuickAction]:
    """
    Build the quick actions offered for a session.

    Resume (or Start, with no progress yet) is always first and never
    dropped. The remaining slots are filled in this order from the eligible
    actions: review, practice, next, help.

    Args:
        session: Session the actions refer to.
        max_actions: Maximum number of actions returned.

    Returns:
        list[QuickAction]: At most `max_actions` action descriptors.
    """
    actions = [
        QuickAction(
            type=QuickActionType.RESUME,
            session_id=session.id,
            label="Resume" if session.progress_percent > 0 else "Start",
        )
    ]

    if session.progress_percent > 50 or session.is_completed:
        actions.append(
            QuickAction(type=QuickActionType.REVIEW, session_id=session.id, label="Review")
        )

    if (
        session.activity_type == ActivityType.QUIZ
        or session.platform == Platform.PRACTICE_DRILL
    ):
        actions.append(
            QuickAction(
                type=QuickActionType.PRACTICE, session_id=session.id, label="Practice"
            )
        )

    if session.next_suggestion is not None:
        actions.append(
            QuickAction(
                type=QuickActionType.NEXT,
                session_id=session.id,
                label="Next Lesson",
                target_id=session.next_suggestion.id,
            )
        )

    actions.append(
        QuickAction(type=QuickActionType.HELP, session_id=session.id, label="Get Help")
    )

    return actions[: max(1, max_actions)]


def is_continuation_candidate(session: LearningSession) -> bool:
    """Only started, unfinished sessions can be continued."""
    return not session.is_completed and session.progress_percent > 0


class ContinuityRanker:
    """
    Ranks a user's open sessions for the continue-learning surface.

    Read-only: ranking never writes to the store.
    """

    def __init__(self, session_store: SessionStore, config: Optional[Settings] = None):
        """
        Initialize the ranker.

        Args:
            session_store: Source of the user's sessions.
            config: Engine settings (defaults to the global settings).
        """
        self.session_store = session_store
        self.config = config or default_settings

    async def rank(
        self, user_id: str, limit: int, now: datetime
    ) -> list[ContinueLearningItem]:
        """
        Rank a user's continuation candidates.

        Args:
            user_id: User identifier.
            limit: Maximum number of items returned (> 0).
            now: Current timestamp.

        Returns:
            list[ContinueLearningItem]: Most urgent first, at most `limit` items.
            Empty when the user has nothing to continue.

        Raises:
            ValidationError: If user_id is empty or limit is not positive.
        """
        if not user_id:
            raise ValidationError("user_id must not be empty")
        if limit <= 0:
            raise ValidationError("limit must be positive", details={"limit": limit})

        sessions = await self.session_store.list_by_user(user_id)
        candidates = [s for s in sessions if is_continuation_candidate(s)]

        items = [self._build_item(session, now) for session in candidates]

        # Ties after clamping: most recently accessed first, then by id.
        # Two stable sorts applied from least to most significant key.
        items.sort(key=lambda item: item.session.id)
        items.sort(key=lambda item: item.session.last_accessed_at, reverse=True)
        items.sort(key=lambda item: item.priority_score)

        logger.debug(
            f"Ranked {len(items)} of {len(sessions)} sessions for user {user_id}"
        )
        return items[:limit]

    def _build_item(self, session: LearningSession, now: datetime) -> ContinueLearningItem:
        hours = hours_since(session.last_accessed_at, now)
        return ContinueLearningItem(
            session=session,
            priority_score=calculate_priority(session, hours),
            reason_text=generate_continue_reason(session, hours),
            stale_in_hours=max(0.0, self.config.STALE_HORIZON_HOURS - hours),
            suggested_actions=generate_quick_actions(
                session, self.config.MAX_QUICK_ACTIONS
            ),
        )
