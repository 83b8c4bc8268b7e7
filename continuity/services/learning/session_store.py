"""
Learning Session Store

Durable CRUD over LearningSession records. The store is the single source
of truth for sessions; rankings and insights are always derived from it.

Responsibilities:
- Idempotent create-or-update keyed by session id
- Per-user listing in insertion order
- Progress updates with the one-way completion transition
- Bookmark attachment
- Archiving for the retention sweep

Storage layout (see KeyBuilder):
    {prefix}:session:{session_id}    -> LearningSession JSON
    {prefix}:user_sessions:{user_id} -> JSON list of session ids
    {prefix}:archived:{session_id}   -> ArchiveMarker JSON

Usage:
    from continuity.services.learning.session_store import SessionStore

    store = SessionStore(kv_store, keys, streak_tracker)
    session = await store.update_progress("session_x", 60, 10, now=now)
"""

import hashlib
import json
import logging
import math
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from continuity.db.store import KeyBuilder, KeyValueStore, decode_record, encode_record
from continuity.exceptions import NotFoundError, StorageError, ValidationError
from continuity.models.learning import (
    ArchiveMarker,
    Bookmark,
    LearningSession,
    SessionUpsert,
)
from continuity.services.learning.streak_tracking import StreakTracker

logger = logging.getLogger(__name__)

COMPLETE_PERCENT: float = 100.0

# Fields a caller may never set through an upsert
_IDENTITY_FIELDS = {"id", "user_id"}


def session_id_for(user_id: str, course_id: str, lesson_id: str) -> str:
    """
    Deterministic session id for a (user, activity) pair.

    Re-creating a session for the same activity resolves to the same id,
    which makes creation idempotent.
    """
    digest = hashlib.md5(f"{user_id}:{course_id}:{lesson_id}".encode()).hexdigest()
    return f"session_{digest[:16]}"


def clamp_progress(progress_percent: float) -> float:
    """Clamp a progress value into [0, 100]."""
    return min(COMPLETE_PERCENT, max(0.0, float(progress_percent)))


def build_session(data: dict[str, Any]) -> LearningSession:
    """
    Validate a session payload into a LearningSession.

    Raises:
        ValidationError: If the payload violates the record's constraints.
    """
    try:
        return LearningSession.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid learning session",
            details={"errors": e.errors(include_url=False)},
        ) from e


class SessionStore:
    """
    CRUD service over learning sessions.

    Mutations for a given user are expected to be serialized by the caller.
    Every session write is a single key-value SET, so concurrent readers see
    either the old or the new record, never a mix.
    """

    def __init__(
        self,
        store: KeyValueStore,
        keys: KeyBuilder,
        streak_tracker: StreakTracker,
    ):
        """
        Initialize the session store.

        Args:
            store: Key-value store holding session records.
            keys: Key builder for record namespacing.
            streak_tracker: Tracker notified of study time on progress updates.
        """
        self.store = store
        self.keys = keys
        self.streak_tracker = streak_tracker

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, session_id: str) -> LearningSession:
        """
        Get a session by id.

        Raises:
            NotFoundError: If no session is stored under the id.
        """
        session = await self._load(session_id)
        if session is None:
            raise NotFoundError(
                f"Learning session {session_id} not found",
                details={"session_id": session_id},
            )
        return session

    async def list_by_user(
        self, user_id: str, include_archived: bool = True
    ) -> list[LearningSession]:
        """
        List a user's sessions in insertion order.

        The order carries no priority meaning; use the ranker for that.

        Args:
            user_id: User identifier.
            include_archived: Whether archived sessions are included.

        Returns:
            list[LearningSession]: The user's sessions (possibly empty).
        """
        sessions = []
        for session_id in await self._load_index(user_id):
            session = await self._load(session_id)
            if session is None:
                # Index written but session write never landed
                logger.warning(
                    f"Session {session_id} listed for user {user_id} has no record"
                )
                continue
            if session.is_archived and not include_archived:
                continue
            sessions.append(session)
        return sessions

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_or_update(
        self, upsert: SessionUpsert, now: datetime
    ) -> LearningSession:
        """
        Insert a new session or merge fields into an existing one.

        `last_accessed_at` is always set to `now`. Completion is derived:
        reaching 100% completes the session, and a completed session's
        progress is never lowered (lower values are ignored with a warning).

        Args:
            upsert: Session fields; only non-None fields are merged.
            now: Current timestamp.

        Returns:
            The stored session.

        Raises:
            ValidationError: On empty ids, out-of-range values, missing
                classification for a new session, or a changed user id.
        """
        self._validate_upsert(upsert)
        fields = upsert.model_dump(exclude_none=True, exclude=_IDENTITY_FIELDS)

        existing = await self._load(upsert.id)
        if existing is None:
            session = self._new_session(upsert, fields, now)
            await self._add_to_index(session.user_id, session.id)
            await self._save(session)
            logger.info(
                f"Created learning session {session.id} for user {session.user_id} "
                f"({session.activity_type.value} on {session.platform.value})"
            )
            return session

        if existing.user_id != upsert.user_id:
            raise ValidationError(
                "user_id of an existing session cannot change",
                details={"session_id": upsert.id},
            )

        if fields.get("time_spent_minutes", existing.time_spent_minutes) < (
            existing.time_spent_minutes
        ):
            raise ValidationError(
                "time_spent_minutes cannot decrease",
                details={
                    "session_id": upsert.id,
                    "stored": existing.time_spent_minutes,
                    "requested": fields["time_spent_minutes"],
                },
            )

        if existing.is_completed and "progress_percent" in fields:
            requested = fields.pop("progress_percent")
            if requested != existing.progress_percent:
                logger.warning(
                    f"Ignoring progress change to {requested}% on completed "
                    f"session {existing.id}"
                )

        data = existing.model_dump(exclude={"is_completed"})
        data.update(fields)
        data["last_accessed_at"] = now
        self._apply_completion(data, now)

        session = build_session(data)
        await self._save(session)
        return session

    async def update_progress(
        self,
        session_id: str,
        progress_percent: float,
        minutes_delta: float,
        notes: Optional[str] = None,
        *,
        now: datetime,
    ) -> LearningSession:
        """
        Update a session's progress and record study time.

        Progress is clamped to [0, 100]. The first time it reaches 100 the
        session completes: `completed_at` is set and `actual_duration_minutes`
        takes the accumulated time spent. This transition is one-way; later
        updates cannot change progress on a completed session (ignored with a
        warning) but still add time spent.

        The study time is forwarded to the streak tracker.

        Args:
            session_id: Session to update.
            progress_percent: New progress percentage.
            minutes_delta: Minutes studied since the last update (>= 0).
            notes: Replacement notes, if given.
            now: Current timestamp.

        Returns:
            The updated session.

        Raises:
            ValidationError: If progress is NaN or minutes_delta is negative
                or not finite.
            NotFoundError: If the session does not exist.
        """
        if math.isnan(progress_percent):
            raise ValidationError(
                "progress_percent must be a number",
                details={"progress_percent": progress_percent},
            )
        if not math.isfinite(minutes_delta) or minutes_delta < 0:
            raise ValidationError(
                "minutes_delta must be a finite, non-negative number",
                details={"minutes_delta": minutes_delta},
            )

        session = await self.get(session_id)
        clamped = clamp_progress(progress_percent)

        data = session.model_dump(exclude={"is_completed"})
        if session.is_completed:
            if clamped != session.progress_percent:
                logger.warning(
                    f"Ignoring progress change to {clamped}% on completed "
                    f"session {session_id}"
                )
        else:
            data["progress_percent"] = clamped

        data["time_spent_minutes"] = session.time_spent_minutes + minutes_delta
        data["last_accessed_at"] = now
        if notes is not None:
            data["notes"] = notes
        completed_now = self._apply_completion(data, now)

        updated = build_session(data)
        await self._save(updated)

        if completed_now:
            logger.info(
                f"Completed learning session {session_id} after "
                f"{updated.actual_duration_minutes} minutes"
            )

        await self.streak_tracker.record(updated.user_id, minutes_delta, now)
        return updated

    async def add_bookmark(
        self,
        session_id: str,
        timestamp: float,
        title: str,
        note: Optional[str] = None,
        *,
        now: datetime,
    ) -> Bookmark:
        """
        Append a bookmark to a session.

        Args:
            session_id: Session owning the bookmark.
            timestamp: Position within the activity (not wall-clock).
            title: Bookmark title.
            note: Optional free-text note.
            now: Creation timestamp.

        Returns:
            The created bookmark.

        Raises:
            ValidationError: On an empty title or negative position.
            NotFoundError: If the session does not exist.
        """
        if not title or not title.strip():
            raise ValidationError("Bookmark title must not be empty")
        if math.isnan(timestamp) or timestamp < 0:
            raise ValidationError(
                "Bookmark position must not be negative",
                details={"timestamp": timestamp},
            )

        session = await self.get(session_id)
        bookmark = Bookmark(
            id=f"bookmark_{uuid4().hex}",
            timestamp=timestamp,
            title=title.strip(),
            note=note,
            created_at=now,
        )

        data = session.model_dump(exclude={"is_completed"})
        data["bookmarks"].append(bookmark.model_dump())
        data["last_accessed_at"] = now
        await self._save(build_session(data))
        return bookmark

    async def archive(self, session_id: str, now: datetime) -> LearningSession:
        """
        Mark a completed session as archived.

        Only the archive marker is written; the session record itself is
        left untouched, so updates landing during a sweep are kept.

        Raises:
            ValidationError: If the session is not completed.
            NotFoundError: If the session does not exist.
        """
        session = await self.get(session_id)
        if not session.is_completed:
            raise ValidationError(
                "Only completed sessions can be archived",
                details={"session_id": session_id},
            )
        if session.is_archived:
            return session

        marker = ArchiveMarker(session_id=session_id, archived_at=now)
        await self.store.set(self.keys.archived(session_id), encode_record(marker))
        return session.model_copy(update={"archived_at": now})

    async def with_archive_state(self, session: LearningSession) -> LearningSession:
        """Overlay the stored archive marker (if any) onto a session record."""
        if session.is_archived:
            return session
        key = self.keys.archived(session.id)
        raw = await self.store.get(key)
        if raw is None:
            return session
        marker = decode_record(ArchiveMarker, raw, key)
        return session.model_copy(update={"archived_at": marker.archived_at})

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate_upsert(upsert: SessionUpsert) -> None:
        """Reject malformed upserts before anything is written."""
        if not upsert.id:
            raise ValidationError("Session id must not be empty")
        if not upsert.user_id:
            raise ValidationError("user_id must not be empty")

        progress = upsert.progress_percent
        if progress is not None and not 0 <= progress <= COMPLETE_PERCENT:
            raise ValidationError(
                "progress_percent must be within [0, 100]",
                details={"progress_percent": progress},
            )
        if upsert.time_spent_minutes is not None and upsert.time_spent_minutes < 0:
            raise ValidationError(
                "time_spent_minutes must not be negative",
                details={"time_spent_minutes": upsert.time_spent_minutes},
            )
        estimated = upsert.estimated_duration_minutes
        if estimated is not None and estimated <= 0:
            raise ValidationError(
                "estimated_duration_minutes must be positive",
                details={"estimated_duration_minutes": estimated},
            )

    def _new_session(
        self, upsert: SessionUpsert, fields: dict[str, Any], now: datetime
    ) -> LearningSession:
        """Build a brand new session record from an upsert."""
        missing = [f for f in ("activity_type", "platform") if f not in fields]
        if missing:
            raise ValidationError(
                f"New sessions require {', '.join(missing)}",
                details={"missing": missing},
            )

        data: dict[str, Any] = {
            "id": upsert.id,
            "user_id": upsert.user_id,
            "created_at": now,
            **fields,
            "last_accessed_at": now,
        }
        self._apply_completion(data, now)
        return build_session(data)

    @staticmethod
    def _apply_completion(data: dict[str, Any], now: datetime) -> bool:
        """
        Apply the one-way completion transition to a session payload.

        Returns:
            bool: True if the payload transitioned to completed.
        """
        if data.get("completed_at") is not None:
            return False
        if data.get("progress_percent", 0.0) < COMPLETE_PERCENT:
            return False
        data["completed_at"] = now
        data["actual_duration_minutes"] = data.get("time_spent_minutes", 0.0)
        return True

    async def _load(self, session_id: str) -> Optional[LearningSession]:
        key = self.keys.session(session_id)
        raw = await self.store.get(key)
        if raw is None:
            return None
        return await self.with_archive_state(decode_record(LearningSession, raw, key))

    async def _save(self, session: LearningSession) -> None:
        await self.store.set(self.keys.session(session.id), encode_record(session))

    async def _load_index(self, user_id: str) -> list[str]:
        key = self.keys.user_sessions(user_id)
        raw = await self.store.get(key)
        if raw is None:
            return []
        try:
            session_ids = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Stored session index at {key} could not be decoded",
                details={"key": key},
            ) from e
        return [str(session_id) for session_id in session_ids]

    async def _add_to_index(self, user_id: str, session_id: str) -> None:
        session_ids = await self._load_index(user_id)
        if session_id in session_ids:
            return
        session_ids.append(session_id)
        await self.store.set(
            self.keys.user_sessions(user_id), json.dumps(session_ids).encode("utf-8")
        )
