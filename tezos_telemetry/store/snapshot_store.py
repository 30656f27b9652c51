"""
Snapshot persistence: last snapshot for instant reloads, plus a separate
"last visit" marker used as the delta baseline.

Persisted layout (JSON under two logical keys):
    cache -> {"snapshot": {...}, "savedAt": <epoch seconds>}
    visit -> {"snapshot": {...}, "visitAt": <epoch seconds>}

Persistence is an optimization, never a correctness dependency: every backend
or serialization failure is logged and ignored (reads give None, writes give False).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..snapshot import Snapshot
from ..timeutils import wall_clock
from .kv import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "cache"
VISIT_KEY = "visit"

# Data refreshes every 2h; 4h gives one missed refresh of buffer.
DEFAULT_CACHE_TTL_S = 4 * 60 * 60
DEFAULT_VISIT_MIN_GAP_S = 60 * 60

_STORAGE_ERRORS = (sqlite3.Error, OSError, ValueError, TypeError, KeyError, AttributeError)


@dataclass(frozen=True)
class PersistedCache:
    snapshot: Snapshot
    saved_at: float


@dataclass(frozen=True)
class VisitMarker:
    snapshot: Snapshot
    visit_at: float


class SnapshotStore:
    """
    Owns the two persisted keys. The aggregation caller is the only writer.

    Usage:
        store = SnapshotStore(SqliteKeyValueStore("telemetry.sqlite"))
        cached = store.load()          # None on cold start or after TTL
        store.save(snapshot)
        store.save_visit_marker(snapshot)
    """

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        ttl_s: float = DEFAULT_CACHE_TTL_S,
        min_gap_s: float = DEFAULT_VISIT_MIN_GAP_S,
        clock: Callable[[], float] = wall_clock,
    ) -> None:
        self._backend = backend
        self._ttl_s = ttl_s
        self._min_gap_s = min_gap_s
        self._clock = clock

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    @property
    def min_gap_s(self) -> float:
        return self._min_gap_s

    def now(self) -> float:
        return self._clock()

    # -- raw JSON access -------------------------------------------------

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._backend.get(key)
            if raw is None:
                return None
            data = json.loads(raw)
        except _STORAGE_ERRORS as exc:
            logger.warning("Failed to read %s from storage: %s", key, exc)
            return None
        return data if isinstance(data, dict) else None

    def _write(self, key: str, payload: Dict[str, Any]) -> bool:
        try:
            self._backend.set(key, json.dumps(payload, separators=(",", ":")))
        except _STORAGE_ERRORS as exc:
            # Storage might be full or disabled.
            logger.warning("Failed to persist %s: %s", key, exc)
            return False
        return True

    # -- snapshot cache --------------------------------------------------

    def save(self, snapshot: Snapshot) -> bool:
        ok = self._write(CACHE_KEY, {"snapshot": snapshot.to_dict(), "savedAt": self._clock()})
        if ok:
            logger.info("Snapshot cached to storage")
        return ok

    def load_entry(self) -> Optional[PersistedCache]:
        """Stored cache entry regardless of age; None if missing or unreadable."""
        data = self._read(CACHE_KEY)
        if data is None:
            return None
        try:
            return PersistedCache(
                snapshot=Snapshot.from_dict(data["snapshot"]),
                saved_at=float(data["savedAt"]),
            )
        except _STORAGE_ERRORS as exc:
            logger.warning("Discarding malformed cached snapshot: %s", exc)
            return None

    def load(self) -> Optional[Snapshot]:
        """Stored snapshot if `now - savedAt <= ttl`, else None (cold start)."""
        entry = self.load_entry()
        if entry is None:
            return None
        age = self._clock() - entry.saved_at
        if age > self._ttl_s:
            logger.info("Cached snapshot expired (%.0f min old)", age / 60.0)
            return None
        logger.info("Loaded cached snapshot (%.0f min old)", age / 60.0)
        return entry.snapshot

    def has_cached_data(self) -> bool:
        return self.load() is not None

    def cache_age_s(self) -> Optional[float]:
        entry = self.load_entry()
        if entry is None:
            return None
        return max(0.0, self._clock() - entry.saved_at)

    def cache_age_text(self) -> Optional[str]:
        """Human-readable cache age, e.g. "5 min ago"; None if nothing is cached."""
        age = self.cache_age_s()
        if age is None:
            return None
        minutes = round(age / 60.0)
        if minutes < 1:
            return "just now"
        if minutes == 1:
            return "1 min ago"
        if minutes < 60:
            return f"{minutes} min ago"
        hours = round(minutes / 60.0)
        if hours == 1:
            return "1 hour ago"
        return f"{hours} hours ago"

    # -- visit marker ----------------------------------------------------

    def load_visit_marker(self) -> Optional[VisitMarker]:
        data = self._read(VISIT_KEY)
        if data is None:
            return None
        try:
            return VisitMarker(
                snapshot=Snapshot.from_dict(data["snapshot"]),
                visit_at=float(data["visitAt"]),
            )
        except _STORAGE_ERRORS as exc:
            logger.warning("Discarding malformed visit marker: %s", exc)
            return None

    def save_visit_marker(self, snapshot: Snapshot) -> bool:
        """
        Write the visit baseline only if none exists or it is older than min_gap.
        Rapid reloads therefore keep the earlier baseline. Returns True if written.
        """
        now = self._clock()
        marker = self.load_visit_marker()
        if marker is not None and (now - marker.visit_at) <= self._min_gap_s:
            return False
        return self._write(VISIT_KEY, {"snapshot": snapshot.to_dict(), "visitAt": now})

    # -- maintenance -----------------------------------------------------

    def clear(self) -> None:
        for key in (CACHE_KEY, VISIT_KEY):
            try:
                self._backend.delete(key)
            except _STORAGE_ERRORS as exc:
                logger.warning("Failed to clear %s: %s", key, exc)
        logger.info("Snapshot storage cleared")
