"""
Key-Value Persistence Contract

The engine persists records through a minimal key-value contract so any
durable backend (Redis, a browser-like local store, a test double) can be
injected at construction time.

Contract:
    get(key) -> bytes | None
    set(key, value: bytes) -> None
    list_keys_by_prefix(prefix) -> list[str]

Writes are atomic per key, so a session record is never observed half-written.

Usage:
    from continuity.db.store import InMemoryKeyValueStore, encode_record

    store = InMemoryKeyValueStore()
    await store.set("continuity:session:s1", encode_record(session))
"""

import logging
from typing import Optional, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from continuity.exceptions import StorageError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@runtime_checkable
class KeyValueStore(Protocol):
    """Persistence contract consumed by the engine."""

    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None if the key is absent."""
        ...

    async def set(self, key: str, value: bytes) -> None:
        """Store bytes under key, replacing any previous value."""
        ...

    async def list_keys_by_prefix(self, prefix: str) -> list[str]:
        """Return all keys starting with prefix."""
        ...


class InMemoryKeyValueStore:
    """
    Process-local implementation of the key-value contract.

    Useful for tests and for embedding the engine where durability is
    handled elsewhere. Keys are returned in insertion order.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise StorageError(
                f"Value for {key} must be bytes", details={"key": key}
            )
        self._data[key] = bytes(value)

    async def list_keys_by_prefix(self, prefix: str) -> list[str]:
        return [key for key in self._data if key.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# Record Encoding
# =============================================================================


def encode_record(record: BaseModel) -> bytes:
    """Serialize a Pydantic record to UTF-8 JSON bytes."""
    return record.model_dump_json().encode("utf-8")


def decode_record(model: type[ModelT], raw: bytes, key: str) -> ModelT:
    """
    Deserialize JSON bytes into a Pydantic record.

    Args:
        model: Pydantic model class to validate against.
        raw: Stored bytes.
        key: Store key (for error context).

    Returns:
        The decoded record.

    Raises:
        StorageError: If the stored bytes are not a valid record.
    """
    try:
        return model.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.error(f"Corrupt record at {key}: {e}")
        raise StorageError(
            f"Stored record at {key} could not be decoded",
            details={"key": key, "errors": e.errors(include_url=False)},
        ) from e


class KeyBuilder:
    """Builds namespaced store keys for engine records."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def session(self, session_id: str) -> str:
        return f"{self.prefix}:session:{session_id}"

    def session_prefix(self) -> str:
        return f"{self.prefix}:session:"

    def user_sessions(self, user_id: str) -> str:
        return f"{self.prefix}:user_sessions:{user_id}"

    def streak(self, user_id: str) -> str:
        return f"{self.prefix}:streak:{user_id}"

    def archived(self, session_id: str) -> str:
        return f"{self.prefix}:archived:{session_id}"
