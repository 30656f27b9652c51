"""
Single source for "now" time. Supports deterministic mode for tests via
TEZOS_TELEMETRY_DETERMINISTIC_TIME (ISO format, e.g. 2026-01-01T00:00:00Z).
"""

from __future__ import annotations

import os
import time
from datetime import datetime, timezone


def _fixed_time() -> str:
    return os.environ.get("TEZOS_TELEMETRY_DETERMINISTIC_TIME", "").strip()


def now_utc_iso() -> str:
    """
    Return current UTC time in ISO format (seconds).
    If env TEZOS_TELEMETRY_DETERMINISTIC_TIME is set, return that value instead.
    """
    fixed = _fixed_time()
    if fixed:
        return fixed if fixed.endswith("Z") or "+" in fixed else f"{fixed}Z"
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def wall_clock() -> float:
    """Epoch seconds used for persisted timestamps (savedAt, visitAt)."""
    fixed = _fixed_time()
    if fixed:
        return datetime.fromisoformat(fixed.replace("Z", "+00:00")).timestamp()
    return time.time()


def iso_days_ago(days: float, *, now: float | None = None) -> str:
    """UTC date (YYYY-MM-DD) `days` before `now` (epoch seconds)."""
    ts = (wall_clock() if now is None else now) - days * 86400.0
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def iso_hours_ago(hours: float, *, now: float | None = None) -> str:
    """UTC ISO timestamp `hours` before `now`, as accepted by TzKT filters."""
    ts = (wall_clock() if now is None else now) - hours * 3600.0
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
