"""
Unit Tests for the Redis Key-Value Store

Tests the Redis-backed store adapter and engine factory.
All Redis operations are mocked for fast, isolated testing.

These tests verify:
- GET/SET pass-through with bytes values
- SCAN-based prefix listing (escaping, decoding, de-duplication)
- RedisError translation to StorageError
- create_redis_engine wiring
"""

from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from continuity.db.redis import RedisKeyValueStore, escape_glob
from continuity.exceptions import StorageError
from continuity.services.learning.engine import (
    LearningContinuityEngine,
    create_redis_engine,
)


def scan_results(*keys):
    """Build a scan_iter replacement yielding the given keys."""

    async def _scan_iter(match=None, count=None):
        for key in keys:
            yield key

    return _scan_iter


class TestRedisKeyValueStore:
    """Test suite for RedisKeyValueStore."""

    @pytest.fixture
    def store(self, mock_redis) -> RedisKeyValueStore:
        return RedisKeyValueStore(mock_redis, scan_count=100)

    @pytest.mark.asyncio
    async def test_get_missing_key(self, store, mock_redis) -> None:
        """get should return None for non-existent keys."""
        assert await store.get("missing") is None
        mock_redis.get.assert_awaited_once_with("missing")

    @pytest.mark.asyncio
    async def test_get_returns_bytes(self, store, mock_redis) -> None:
        mock_redis.get = AsyncMock(return_value=b'{"id": "s1"}')

        assert await store.get("k") == b'{"id": "s1"}'

    @pytest.mark.asyncio
    async def test_get_encodes_str_values(self, store, mock_redis) -> None:
        """Clients created with decode_responses=True still yield bytes."""
        mock_redis.get = AsyncMock(return_value='{"id": "s1"}')

        assert await store.get("k") == b'{"id": "s1"}'

    @pytest.mark.asyncio
    async def test_set(self, store, mock_redis) -> None:
        await store.set("k", b"value")

        mock_redis.set.assert_awaited_once_with("k", b"value")

    @pytest.mark.asyncio
    async def test_get_failure_raises_storage_error(self, store, mock_redis) -> None:
        mock_redis.get = AsyncMock(side_effect=RedisConnectionError("down"))

        with pytest.raises(StorageError) as exc_info:
            await store.get("k")

        assert exc_info.value.details == {"key": "k"}
        assert exc_info.value.error_code == "storage_error"

    @pytest.mark.asyncio
    async def test_set_failure_raises_storage_error(self, store, mock_redis) -> None:
        mock_redis.set = AsyncMock(side_effect=RedisConnectionError("down"))

        with pytest.raises(StorageError):
            await store.set("k", b"value")

    @pytest.mark.asyncio
    async def test_list_keys_by_prefix(self, store, mock_redis) -> None:
        """SCAN results are decoded, de-duplicated and sorted."""
        mock_redis.scan_iter = scan_results(
            b"app:session:b", b"app:session:a", b"app:session:b", "app:session:c"
        )

        keys = await store.list_keys_by_prefix("app:session:")

        assert keys == ["app:session:a", "app:session:b", "app:session:c"]

    @pytest.mark.asyncio
    async def test_list_keys_escapes_pattern(self, store, mock_redis) -> None:
        calls = []

        async def _scan_iter(match=None, count=None):
            calls.append((match, count))
            return
            yield

        mock_redis.scan_iter = _scan_iter

        assert await store.list_keys_by_prefix("app[1]:session:") == []
        assert calls == [(r"app\[1\]:session:*", 100)]

    @pytest.mark.asyncio
    async def test_list_keys_failure_raises_storage_error(
        self, store, mock_redis
    ) -> None:
        async def _scan_iter(match=None, count=None):
            raise RedisConnectionError("down")
            yield

        mock_redis.scan_iter = _scan_iter

        with pytest.raises(StorageError) as exc_info:
            await store.list_keys_by_prefix("app:")

        assert exc_info.value.details == {"prefix": "app:"}


class TestEscapeGlob:
    """Tests for SCAN pattern escaping."""

    @pytest.mark.parametrize(
        "prefix,expected",
        [
            ("continuity:session:", "continuity:session:"),
            ("a*b", r"a\*b"),
            ("a?b", r"a\?b"),
            ("[x]", r"\[x\]"),
            ("a\\b", "a\\\\b"),
        ],
    )
    def test_escape_glob(self, prefix, expected) -> None:
        assert escape_glob(prefix) == expected


class TestCreateRedisEngine:
    """Tests for the Redis engine factory."""

    @pytest.mark.asyncio
    async def test_uses_shared_client(self, mock_redis, test_settings) -> None:
        with patch(
            "continuity.services.learning.engine.get_redis",
            AsyncMock(return_value=mock_redis),
        ):
            engine = await create_redis_engine(test_settings)

        assert isinstance(engine, LearningContinuityEngine)
        assert engine.config is test_settings

    @pytest.mark.asyncio
    async def test_engine_round_trip_through_mock(
        self, mock_redis, test_settings, clock
    ) -> None:
        """Records written by the engine are read back through the client."""
        data: dict[str, bytes] = {}

        async def _get(key):
            return data.get(key)

        async def _set(key, value):
            data[key] = value

        mock_redis.get = AsyncMock(side_effect=_get)
        mock_redis.set = AsyncMock(side_effect=_set)

        engine = LearningContinuityEngine(
            RedisKeyValueStore(mock_redis), test_settings, clock
        )
        await engine.create_or_update_session(
            {"id": "s1", "user_id": "u1", "activity_type": "video",
             "platform": "structured-course", "progress_percent": 20}
        )

        session = await engine.get_session("s1")

        assert session.progress_percent == 20
        assert set(data) == {"test:session:s1", "test:user_sessions:u1"}
