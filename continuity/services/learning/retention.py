"""
Session Retention Sweep

Archives completed sessions that have not been touched for longer than the
retention horizon. Sessions are never deleted, and incomplete sessions are
kept regardless of age because they still represent work in progress.

The sweep only writes archive markers under their own keys and never
rewrites session records, so it is safe to run alongside normal traffic.

Usage:
    from continuity.services.learning.retention import RetentionService

    service = RetentionService(kv_store, keys, session_store)
    archived = await service.archive_completed_sessions(now=now)
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from continuity.config import Settings, settings as default_settings
from continuity.db.store import KeyBuilder, KeyValueStore, decode_record
from continuity.models.learning import LearningSession
from continuity.services.learning.session_store import SessionStore

logger = logging.getLogger(__name__)


def is_expired(session: LearningSession, cutoff: datetime) -> bool:
    """Whether a session is eligible for archiving at the given cutoff."""
    return (
        session.is_completed
        and not session.is_archived
        and session.last_accessed_at < cutoff
    )


class RetentionService:
    """Archives stale completed sessions across all users."""

    def __init__(
        self,
        store: KeyValueStore,
        keys: KeyBuilder,
        session_store: SessionStore,
        config: Optional[Settings] = None,
    ):
        self.store = store
        self.keys = keys
        self.session_store = session_store
        self.config = config or default_settings

    async def archive_completed_sessions(
        self, now: datetime, horizon_days: Optional[int] = None
    ) -> int:
        """
        Archive completed sessions last accessed before the horizon.

        Args:
            now: Current timestamp.
            horizon_days: Override for RETENTION_HORIZON_DAYS.

        Returns:
            int: Number of sessions archived by this sweep.
        """
        days = self.config.RETENTION_HORIZON_DAYS if horizon_days is None else horizon_days
        cutoff = now - timedelta(days=days)

        archived = 0
        for key in await self.store.list_keys_by_prefix(self.keys.session_prefix()):
            raw = await self.store.get(key)
            if raw is None:
                continue
            session = await self.session_store.with_archive_state(
                decode_record(LearningSession, raw, key)
            )
            if not is_expired(session, cutoff):
                continue
            await self.session_store.archive(session.id, now)
            archived += 1

        if archived:
            logger.info(
                f"Archived {archived} completed sessions untouched since "
                f"{cutoff.isoformat()}"
            )
        return archived
