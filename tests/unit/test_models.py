"""
Unit tests for the learning models.

Covers derived fields, input strictness and store encoding.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from continuity.db.store import InMemoryKeyValueStore, decode_record, encode_record
from continuity.exceptions import StorageError
from continuity.models.learning import (
    LearningSession,
    SessionUpsert,
    StudyStreak,
)


class TestLearningSession:
    """Tests for LearningSession."""

    def test_is_completed_derived_from_completed_at(self, session_factory, now) -> None:
        assert session_factory().is_completed is False
        assert session_factory(progress_percent=100, completed_at=now).is_completed

    def test_is_completed_is_serialized_but_ignored_on_decode(
        self, session_factory, now
    ) -> None:
        session = session_factory(progress_percent=100, completed_at=now)

        raw = encode_record(session)
        decoded = decode_record(LearningSession, raw, "k")

        assert b'"is_completed":true' in raw
        assert decoded == session

    def test_timestamps_round_trip_exactly(self, session_factory, now) -> None:
        """Microsecond precision and timezone survive the store encoding."""
        moment = now.replace(microsecond=123456)
        session = session_factory(last_accessed_at=moment)

        decoded = decode_record(LearningSession, encode_record(session), "k")

        assert decoded.last_accessed_at == moment
        assert decoded.last_accessed_at.utcoffset() is not None

    def test_naive_timestamps_rejected(self, session_factory) -> None:
        with pytest.raises(PydanticValidationError):
            session_factory(last_accessed_at=datetime(2026, 1, 1, 12))

    def test_progress_bounds(self, session_factory) -> None:
        with pytest.raises(PydanticValidationError):
            session_factory(progress_percent=101)


class TestSessionUpsert:
    """Tests for SessionUpsert strictness."""

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            SessionUpsert(id="s1", user_id="u1", is_completed=True)

    def test_strings_are_stripped(self) -> None:
        upsert = SessionUpsert(id=" s1 ", user_id="u1", title="  Algebra ")

        assert upsert.id == "s1"
        assert upsert.title == "Algebra"


class TestStudyStreak:
    """Tests for StudyStreak goal flags."""

    def test_goal_flags(self, now) -> None:
        streak = StudyStreak(
            user_id="u1",
            last_study_date=now,
            daily_goal_minutes=30,
            today_progress_minutes=30,
            weekly_goal_minutes=200,
            weekly_progress_minutes=120,
        )

        assert streak.daily_goal_met is True
        assert streak.weekly_goal_met is False


class TestRecordEncoding:
    """Tests for store encoding helpers."""

    def test_corrupt_record_raises_storage_error(self) -> None:
        with pytest.raises(StorageError) as exc_info:
            decode_record(StudyStreak, b'{"user_id": 1', "test:streak:u1")

        assert exc_info.value.details["key"] == "test:streak:u1"

    @pytest.mark.asyncio
    async def test_in_memory_store_requires_bytes(self) -> None:
        store = InMemoryKeyValueStore()

        with pytest.raises(StorageError):
            await store.set("k", "not bytes")

    @pytest.mark.asyncio
    async def test_in_memory_prefix_listing(self) -> None:
        store = InMemoryKeyValueStore()
        for key in ["p:session:b", "p:streak:u1", "p:session:a"]:
            await store.set(key, b"{}")

        assert await store.list_keys_by_prefix("p:session:") == [
            "p:session:b",
            "p:session:a",
        ]
