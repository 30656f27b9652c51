"""
Key-value backend interface for durable snapshot storage.

Values are JSON strings. Backends may raise on any operation (disk full,
storage disabled, locked database); SnapshotStore treats every backend error
as best-effort persistence and never lets it reach the caller.
"""

from __future__ import annotations

from typing import Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    """Process-local backend (tests, ephemeral runs)."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list:
        return sorted(self._data)
