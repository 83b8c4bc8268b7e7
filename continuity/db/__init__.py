"""Persistence layer: key-value contract and its implementations."""

from continuity.db.store import (
    InMemoryKeyValueStore,
    KeyBuilder,
    KeyValueStore,
    decode_record,
    encode_record,
)

__all__ = [
    "InMemoryKeyValueStore",
    "KeyBuilder",
    "KeyValueStore",
    "decode_record",
    "encode_record",
]
