"""
Redis Connection and Key-Value Store

Provides Redis connection pooling and a Redis-backed implementation of the
engine's key-value contract.

Usage:
    from continuity.db.redis import RedisKeyValueStore, get_redis

    # Store backed by the shared connection pool
    store = RedisKeyValueStore(await get_redis())
    engine = LearningContinuityEngine(store)

    # Or with an explicitly constructed client
    store = RedisKeyValueStore(redis.Redis.from_url("redis://localhost:6379/2"))
"""

import logging
import re
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from continuity.config import settings, yaml_config
from continuity.exceptions import StorageError

logger = logging.getLogger(__name__)

# Get Redis configuration from yaml config
redis_config: dict[str, Any] = yaml_config.get("redis", {})
DEFAULT_MAX_CONNECTIONS: int = redis_config.get("max_connections", 10)
DEFAULT_SCAN_COUNT: int = redis_config.get("scan_count", 500)

# Glob metacharacters that must be escaped in SCAN MATCH patterns
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


# Connection pool (lazily initialized)
_redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """Get or create the Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=False,  # Records are stored as raw bytes
            max_connections=DEFAULT_MAX_CONNECTIONS,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """
    Get a Redis connection from the pool.

    Usage:
        r = await get_redis()
        await r.set("key", b"value")
    """
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None


def escape_glob(prefix: str) -> str:
    """Escape a literal prefix for use in a SCAN MATCH pattern."""
    return _GLOB_SPECIAL.sub(r"\\\1", prefix)


class RedisKeyValueStore:
    """
    Redis-backed key-value store.

    Each record is a single SET, which Redis applies atomically, so readers
    never observe a partially written record. Redis failures are re-raised
    as StorageError without retrying; retry policy belongs to the caller.
    """

    def __init__(self, client: redis.Redis, scan_count: int = DEFAULT_SCAN_COUNT) -> None:
        """
        Initialize the store.

        Args:
            client: Async Redis client. Must return bytes (decode_responses=False).
            scan_count: Page size hint for SCAN when listing keys.
        """
        self.client = client
        self.scan_count = scan_count

    async def get(self, key: str) -> Optional[bytes]:
        try:
            value = await self.client.get(key)
        except RedisError as e:
            logger.error(f"Redis GET failed for {key}: {e}")
            raise StorageError(f"Failed to read {key}", details={"key": key}) from e
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def set(self, key: str, value: bytes) -> None:
        try:
            await self.client.set(key, value)
        except RedisError as e:
            logger.error(f"Redis SET failed for {key}: {e}")
            raise StorageError(f"Failed to write {key}", details={"key": key}) from e

    async def list_keys_by_prefix(self, prefix: str) -> list[str]:
        pattern = f"{escape_glob(prefix)}*"
        keys: list[str] = []
        try:
            async for key in self.client.scan_iter(match=pattern, count=self.scan_count):
                keys.append(key.decode("utf-8") if isinstance(key, bytes) else key)
        except RedisError as e:
            logger.error(f"Redis SCAN failed for prefix {prefix}: {e}")
            raise StorageError(
                f"Failed to list keys for prefix {prefix}", details={"prefix": prefix}
            ) from e
        # SCAN may return a key more than once
        return sorted(set(keys))
