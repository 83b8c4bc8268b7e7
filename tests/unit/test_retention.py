"""
Unit tests for RetentionService.

Tests the archive sweep for stale completed sessions.
"""

from typing import Awaitable, Callable, Optional

import pytest

from continuity.db.store import InMemoryKeyValueStore
from continuity.exceptions import ValidationError
from continuity.services.learning.engine import LearningContinuityEngine
from continuity.services.learning.retention import is_expired


class InterleavingStore(InMemoryKeyValueStore):
    """In-memory store that runs a one-shot callback when a key is read."""

    def __init__(self) -> None:
        super().__init__()
        self.watch_key: Optional[str] = None
        self.on_read: Optional[Callable[[], Awaitable[None]]] = None

    async def get(self, key: str) -> Optional[bytes]:
        value = await super().get(key)
        if key == self.watch_key and self.on_read is not None:
            callback, self.on_read = self.on_read, None
            await callback()
        return value


async def create(engine, session_id: str, progress: float, user_id: str = "user-1"):
    return await engine.create_or_update_session(
        {
            "id": session_id,
            "user_id": user_id,
            "activity_type": "reading",
            "platform": "structured-course",
            "progress_percent": progress,
        }
    )


class TestArchiveCompletedSessions:
    """Tests for archive_completed_sessions."""

    @pytest.mark.asyncio
    async def test_archives_only_stale_completed_sessions(self, engine, clock) -> None:
        await create(engine, "old-done", 100)
        await create(engine, "old-open", 40)
        clock.advance(days=20)
        await create(engine, "new-done", 100, user_id="user-2")
        clock.advance(days=15)

        archived = await engine.archive_completed_sessions()

        assert archived == 1
        assert (await engine.get_session("old-done")).is_archived is True
        assert (await engine.get_session("old-open")).is_archived is False
        assert (await engine.get_session("new-done")).is_archived is False

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, engine, clock) -> None:
        await create(engine, "done", 100)
        clock.advance(days=31)

        assert await engine.archive_completed_sessions() == 1
        assert await engine.archive_completed_sessions() == 0

    @pytest.mark.asyncio
    async def test_archived_sessions_are_kept(self, engine, clock, now) -> None:
        """Archiving never deletes the record."""
        await create(engine, "done", 100)
        archived_at = clock.advance(days=31)
        await engine.archive_completed_sessions()

        session = await engine.get_session("done")

        assert session.archived_at == archived_at
        assert session.completed_at == now
        assert [s.id for s in await engine.list_sessions("user-1")] == ["done"]

    @pytest.mark.asyncio
    async def test_horizon_override(self, engine, clock) -> None:
        await create(engine, "done", 100)
        clock.advance(days=3)

        assert await engine.archive_completed_sessions(horizon_days=7) == 0
        assert await engine.archive_completed_sessions(horizon_days=2) == 1

    @pytest.mark.asyncio
    async def test_archive_requires_completion(self, engine) -> None:
        await create(engine, "open", 40)

        with pytest.raises(ValidationError):
            await engine.sessions.archive("open", engine.clock())


class TestIsExpired:
    """Tests for the is_expired predicate."""

    def test_incomplete_never_expires(self, session_factory, now) -> None:
        session = session_factory(hours_ago=24 * 365)

        assert is_expired(session, now) is False

    def test_completed_before_cutoff(self, session_factory, now) -> None:
        session = session_factory(
            hours_ago=48, progress_percent=100, completed_at=now
        )

        assert is_expired(session, now) is True

    def test_already_archived(self, session_factory, now) -> None:
        session = session_factory(
            hours_ago=48, progress_percent=100, completed_at=now, archived_at=now
        )

        assert is_expired(session, now) is False


class TestSweepAlongsideWrites:
    """The sweep never overwrites session records."""

    @pytest.mark.asyncio
    async def test_update_during_sweep_is_kept(self, test_settings, clock) -> None:
        """A progress update landing between the sweep's read and its write survives."""
        store = InterleavingStore()
        engine = LearningContinuityEngine(store, test_settings, clock)
        await engine.create_or_update_session(
            {"id": "s1", "user_id": "user-1", "activity_type": "reading",
             "platform": "ai-tutor", "progress_percent": 100,
             "time_spent_minutes": 10}
        )
        clock.advance(days=31)

        async def late_update() -> None:
            await engine.update_progress("s1", 100, 30, notes="late notes")

        store.watch_key = "test:session:s1"
        store.on_read = late_update

        archived = await engine.archive_completed_sessions()
        session = await engine.get_session("s1")

        assert archived == 1
        assert store.on_read is None
        assert session.is_archived is True
        assert session.time_spent_minutes == 40
        assert session.notes == "late notes"

    @pytest.mark.asyncio
    async def test_archive_writes_marker_only(self, engine, clock, kv_store) -> None:
        await create(engine, "done", 100)
        record_before = await kv_store.get("test:session:done")
        clock.advance(days=31)

        await engine.archive_completed_sessions()

        assert await kv_store.get("test:session:done") == record_before
        assert await kv_store.get("test:archived:done") is not None

    @pytest.mark.asyncio
    async def test_archived_session_stays_archived_after_update(
        self, engine, clock
    ) -> None:
        await create(engine, "done", 100)
        clock.advance(days=31)
        await engine.archive_completed_sessions()

        session = await engine.update_progress("done", 100, 5)

        assert session.is_archived is True
        assert (await engine.get_session("done")).is_archived is True
