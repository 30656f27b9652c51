"""
Telemetry service: the surface a presentation layer talks to.

    get_snapshot()            latest merged Snapshot (or None before the first success)
    get_deltas()              changes since the last visit, or None
    enqueue_visual_update()   hand one card update to the render scheduler

One refresh = aggregate -> compare against the visit marker -> persist -> queue
card updates. Refreshes may overlap (timer plus manual retry); each takes a
generation number and a result older than the last applied one is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from . import config
from .core.errors import AggregationError, FetchError
from .deltas import DeltaMetric, compute_deltas
from .pipeline import Aggregator
from .providers import FetchCache, RequestsTransport, ResilientFetcher, RetryConfig
from .render import (
    CardBinding,
    LoggingSurface,
    RenderScheduler,
    VisualSurface,
    changed_bindings,
    plan_updates,
)
from .render.scheduler import AnimationTask
from .snapshot import Snapshot
from .sources import Endpoints
from .store import SnapshotStore, SqliteKeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshOutcome:
    generation: int
    applied: bool
    snapshot: Optional[Snapshot] = None
    deltas: Optional[List[DeltaMetric]] = None
    failed_sources: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    queued: int = 0
    since_visit_s: Optional[float] = None


class TelemetryService:
    def __init__(
        self,
        aggregator: Aggregator,
        store: SnapshotStore,
        scheduler: RenderScheduler,
        *,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._aggregator = aggregator
        self._store = store
        self._scheduler = scheduler
        self._clock = clock or store.now
        self._snapshot: Optional[Snapshot] = None
        self._deltas: Optional[List[DeltaMetric]] = None
        self._error: Optional[str] = None
        self._generation = 0
        self._applied_generation = 0
        self.last_update: Optional[float] = None

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def scheduler(self) -> RenderScheduler:
        return self._scheduler

    @property
    def error_state(self) -> Optional[str]:
        """Reason the service has nothing to show, or None. Set only when no snapshot was ever loaded."""
        return self._error

    def get_snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    def get_deltas(self) -> Optional[List[DeltaMetric]]:
        return self._deltas

    def enqueue_visual_update(self, task: AnimationTask) -> "asyncio.Future[None]":
        return self._scheduler.enqueue(task)

    def start(self) -> Optional[Snapshot]:
        """Paint the persisted snapshot, if still fresh, before the first network round-trip."""
        cached = self._store.load()
        if cached is None:
            return None
        self._snapshot = cached
        self._paint(None, cached)
        logger.info("Showing cached snapshot (%s)", self._store.cache_age_text())
        return cached

    async def refresh(self) -> RefreshOutcome:
        self._generation += 1
        generation = self._generation
        try:
            result = await self._aggregator.run()
        except (AggregationError, FetchError) as exc:
            reason = f"{type(exc).__name__}: {exc}"
            if self._snapshot is None:
                self._error = reason
                logger.error("Refresh %d failed with nothing to show: %s", generation, reason)
            else:
                logger.warning("Refresh %d failed, keeping last good snapshot: %s", generation, reason)
            return RefreshOutcome(generation=generation, applied=False, snapshot=self._snapshot, error=reason)

        if generation < self._applied_generation:
            logger.info(
                "Discarding stale refresh %d (already showing %d)", generation, self._applied_generation
            )
            return RefreshOutcome(generation=generation, applied=False, snapshot=self._snapshot)

        # Store calls stay on the loop thread: no await between the generation check and the writes.
        snapshot = result.snapshot
        now = self._clock()
        marker = self._store.load_visit_marker()
        deltas = compute_deltas(snapshot, marker, now=now, min_gap_s=self._store.min_gap_s)
        self._store.save_visit_marker(snapshot)
        self._store.save(snapshot)

        previous = self._snapshot
        self._snapshot = snapshot
        self._deltas = deltas
        self._error = None
        self._applied_generation = generation
        self.last_update = now
        queued = self._paint(previous, snapshot)

        return RefreshOutcome(
            generation=generation,
            applied=True,
            snapshot=snapshot,
            deltas=deltas,
            failed_sources=dict(result.failed_sources),
            queued=queued,
            since_visit_s=(now - marker.visit_at) if marker is not None else None,
        )

    def _paint(self, previous: Optional[Snapshot], current: Snapshot) -> int:
        """Instant paint on first load; afterwards flip animated cards that changed. Returns flips queued."""
        for binding in changed_bindings(previous, current):
            if previous is None or not binding.animated:
                self._instant(binding, current)
        if previous is None:
            return 0
        tasks = plan_updates(previous, current)
        for task in tasks:
            self._scheduler.enqueue(task)
        queued = len(tasks)
        if queued:
            logger.info("Animating %d changed stats", queued)
        return queued

    def _instant(self, binding: CardBinding, snapshot: Snapshot) -> None:
        self._scheduler.update_instant(binding.card_id, snapshot.get(binding.key), binding.formatter)

    async def close(self) -> None:
        await self._scheduler.close()
        close = getattr(self._aggregator.fetcher.transport, "close", None)
        if callable(close):
            close()


class PollLoop:
    """
    Refresh on a fixed interval until stopped.

    Usage:
        loop = PollLoop(service, interval_s=7200)
        await loop.run()            # from a signal handler: loop.stop()
    """

    def __init__(
        self,
        service: TelemetryService,
        interval_s: float,
        *,
        on_outcome: Optional[Callable[[RefreshOutcome], None]] = None,
    ) -> None:
        self._service = service
        self._interval_s = interval_s
        self._on_outcome = on_outcome
        self._stop = asyncio.Event()
        self.cycles = 0

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def run(self, *, max_cycles: Optional[int] = None) -> None:
        while not self._stop.is_set():
            outcome = await self._service.refresh()
            self.cycles += 1
            if self._on_outcome is not None:
                self._on_outcome(outcome)
            if max_cycles is not None and self.cycles >= max_cycles:
                break
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval_s)
            except asyncio.TimeoutError:
                continue


def build_service(
    *,
    db_path: Optional[Union[str, Path]] = None,
    surface: Optional[VisualSurface] = None,
) -> TelemetryService:
    """Wire the default stack from config: requests transport, SQLite store, logging surface."""
    transport = RequestsTransport(timeout_s=config.http_timeout_s())
    fetcher = ResilientFetcher(
        transport,
        cache=FetchCache(config.memory_ttl_s()),
        retry_config=RetryConfig(
            max_attempts=config.max_attempts(), backoff_step_s=config.backoff_step_s()
        ),
    )
    aggregator = Aggregator(fetcher, Endpoints.from_config())
    store = SnapshotStore(
        SqliteKeyValueStore(db_path or config.store_path()),
        ttl_s=config.cache_ttl_s(),
        min_gap_s=config.visit_min_gap_s(),
    )
    scheduler = RenderScheduler(
        surface or LoggingSurface(),
        flip_duration_s=config.flip_duration_s(),
        stagger_s=config.stagger_s(),
    )
    return TelemetryService(aggregator, store, scheduler)
