"""
Store: durable key-value backends and the snapshot store built on them.
No aggregation or render logic.
"""

from __future__ import annotations

from .kv import KeyValueStore, MemoryKeyValueStore
from .snapshot_store import (
    CACHE_KEY,
    VISIT_KEY,
    PersistedCache,
    SnapshotStore,
    VisitMarker,
)
from .sqlite_kv import SqliteKeyValueStore

__all__ = [
    "CACHE_KEY",
    "VISIT_KEY",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PersistedCache",
    "SnapshotStore",
    "SqliteKeyValueStore",
    "VisitMarker",
]
