"""
Learning Continuity Engine

Tracks learners' in-progress activities across platforms, ranks what to
continue next and keeps study streak bookkeeping.

Usage:
    from continuity import LearningContinuityEngine, InMemoryKeyValueStore

    engine = LearningContinuityEngine(InMemoryKeyValueStore())
"""

from continuity.db.store import InMemoryKeyValueStore, KeyValueStore
from continuity.exceptions import (
    NotFoundError,
    ServiceError,
    StorageError,
    ValidationError,
)
from continuity.services.learning.engine import (
    LearningContinuityEngine,
    create_redis_engine,
)

__version__ = "0.1.0"

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "LearningContinuityEngine",
    "NotFoundError",
    "ServiceError",
    "StorageError",
    "ValidationError",
    "create_redis_engine",
]
