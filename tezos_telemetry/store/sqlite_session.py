"""
SQLite connection lifecycle: context manager with guaranteed close.
Use for all store access; one short-lived connection per operation.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

BUSY_TIMEOUT_MS = 2_000


@contextmanager
def sqlite_conn(db_path: Union[str, Path]) -> Generator[sqlite3.Connection, None, None]:
    """
    Yield a SQLite connection that is always closed on exit.
    Commits on clean exit, rolls back if the block raised.
    """
    path = Path(db_path)
    if str(db_path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
        path = path.resolve()
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
