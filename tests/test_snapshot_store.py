"""
Snapshot store: 4h cache TTL, visit marker with 1h minimum gap, and graceful
degradation when the storage backend fails.
"""
from __future__ import annotations

import json

from tezos_telemetry.snapshot import Snapshot
from tezos_telemetry.store import (
    CACHE_KEY,
    VISIT_KEY,
    MemoryKeyValueStore,
    SnapshotStore,
    SqliteKeyValueStore,
)
from tests.fakes import BrokenKeyValueStore, corrupt_store

HOUR = 3600.0


class Clock:
    def __init__(self, t: float = 1_800_000_000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def _store(backend=None, clock=None) -> SnapshotStore:
    return SnapshotStore(backend or MemoryKeyValueStore(), ttl_s=4 * HOUR, min_gap_s=HOUR, clock=clock or Clock())


def test_save_then_load_within_ttl():
    clock = Clock()
    store = _store(clock=clock)
    snap = Snapshot(total_bakers=350)
    assert store.save(snap) is True
    clock.t += 4 * HOUR
    assert store.load() == snap
    assert store.has_cached_data()


def test_load_after_ttl_is_cold_start():
    clock = Clock()
    store = _store(clock=clock)
    store.save(Snapshot(total_bakers=350))
    clock.t += 4 * HOUR + 1
    assert store.load() is None
    # The raw entry is still there.
    assert store.load_entry() is not None


def test_persisted_layout():
    backend = MemoryKeyValueStore()
    clock = Clock()
    store = _store(backend, clock)
    store.save(Snapshot(cycle=850))
    data = json.loads(backend.get(CACHE_KEY))
    assert data["savedAt"] == clock.t
    assert data["snapshot"]["cycle"] == 850


def test_cache_age_text():
    clock = Clock()
    store = _store(clock=clock)
    assert store.cache_age_text() is None
    store.save(Snapshot())
    assert store.cache_age_text() == "just now"
    clock.t += 60
    assert store.cache_age_text() == "1 min ago"
    clock.t += 24 * 60
    assert store.cache_age_text() == "25 min ago"
    clock.t += 35 * 60
    assert store.cache_age_text() == "1 hour ago"
    clock.t += 2 * HOUR
    assert store.cache_age_text() == "3 hours ago"


def test_visit_marker_written_when_absent():
    store = _store()
    assert store.load_visit_marker() is None
    assert store.save_visit_marker(Snapshot(staking_ratio=25.0)) is True
    marker = store.load_visit_marker()
    assert marker.snapshot.staking_ratio == 25.0


def test_visit_marker_kept_within_min_gap():
    clock = Clock()
    store = _store(clock=clock)
    store.save_visit_marker(Snapshot(staking_ratio=25.0))
    first_at = store.load_visit_marker().visit_at

    clock.t += 30 * 60
    assert store.save_visit_marker(Snapshot(staking_ratio=26.0)) is False
    marker = store.load_visit_marker()
    assert marker.visit_at == first_at
    assert marker.snapshot.staking_ratio == 25.0


def test_visit_marker_replaced_after_min_gap():
    clock = Clock()
    store = _store(clock=clock)
    store.save_visit_marker(Snapshot(staking_ratio=25.0))
    clock.t += HOUR + 1
    assert store.save_visit_marker(Snapshot(staking_ratio=27.5)) is True
    assert store.load_visit_marker().snapshot.staking_ratio == 27.5


def test_broken_backend_degrades_silently(caplog):
    store = _store(BrokenKeyValueStore())
    assert store.save(Snapshot()) is False
    assert store.load() is None
    assert store.save_visit_marker(Snapshot()) is False
    assert store.load_visit_marker() is None
    store.clear()
    assert "Failed to persist" in caplog.text


def test_corrupt_payloads_are_ignored():
    assert _store(corrupt_store(CACHE_KEY, "{not json")).load() is None
    assert _store(corrupt_store(CACHE_KEY, json.dumps({"snapshot": {}}))).load() is None
    assert _store(corrupt_store(VISIT_KEY, json.dumps([1, 2]))).load_visit_marker() is None
    assert _store(corrupt_store(VISIT_KEY, json.dumps({"snapshot": {}, "visitAt": "soon"}))).load_visit_marker() is None


def test_clear_removes_both_keys():
    backend = MemoryKeyValueStore()
    store = _store(backend)
    store.save(Snapshot())
    store.save_visit_marker(Snapshot())
    store.clear()
    assert backend.keys() == []


def test_sqlite_backend_persists_across_instances(tmp_path):
    db = tmp_path / "nested" / "telemetry.sqlite"
    clock = Clock()
    _store(SqliteKeyValueStore(db), clock).save(Snapshot(total_bakers=350))
    _store(SqliteKeyValueStore(db), clock).save(Snapshot(total_bakers=351))

    reopened = _store(SqliteKeyValueStore(db), clock)
    assert reopened.load().total_bakers == 351
    kv = SqliteKeyValueStore(db)
    kv.delete(CACHE_KEY)
    assert kv.get(CACHE_KEY) is None
