"""
SQLite key-value backend: one row per logical key in kv_store.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from ..timeutils import now_utc_iso
from .sqlite_session import sqlite_conn

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_utc TEXT NOT NULL
);
"""


class SqliteKeyValueStore:
    """Durable backend. The table is created lazily on first use."""

    def __init__(self, db_path: Union[str, Path]) -> None:
        self._db_path = db_path
        self._ready = False

    @property
    def db_path(self) -> Union[str, Path]:
        return self._db_path

    def _ensure_schema(self, conn) -> None:
        if not self._ready:
            conn.execute(_SCHEMA)
            self._ready = True

    def get(self, key: str) -> Optional[str]:
        with sqlite_conn(self._db_path) as conn:
            self._ensure_schema(conn)
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with sqlite_conn(self._db_path) as conn:
            self._ensure_schema(conn)
            conn.execute(
                "INSERT INTO kv_store (key, value, updated_utc) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_utc = excluded.updated_utc",
                (key, value, now_utc_iso()),
            )

    def delete(self, key: str) -> None:
        with sqlite_conn(self._db_path) as conn:
            self._ensure_schema(conn)
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
