"""
Render scheduler: applies per-card visual updates strictly one at a time, in
submission order, so simultaneous metric changes never collide on screen.

State is one `processing` flag plus a FIFO deque. There is no parallelism in a
single event loop, so no lock is needed: enqueue checks the flag, sets it and
starts the drain; the drain clears it once the queue is empty after a pop.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

Formatter = Callable[[Any], str]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class AnimationTask:
    """New value for one card. The formatter runs when the task starts, not when it is queued."""

    field_id: str
    value: Any
    formatter: Formatter = str

    def text(self) -> str:
        return self.formatter(self.value)


class VisualSurface(Protocol):
    """Where card text lands: the back face is written first, the front after the flip."""

    def show_back(self, field_id: str, text: str) -> None:
        ...

    def show_front(self, field_id: str, text: str) -> None:
        ...


class RenderScheduler:
    """
    Usage:
        scheduler = RenderScheduler(surface, flip_duration_s=0.6)
        done = scheduler.enqueue(AnimationTask("total-bakers", 350, format_count))
        await done
    """

    def __init__(
        self,
        surface: VisualSurface,
        *,
        flip_duration_s: float = 0.6,
        stagger_s: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._surface = surface
        self._flip_duration_s = flip_duration_s
        self._stagger_s = stagger_s
        self._sleep = sleep
        self._queue: Deque[Tuple[AnimationTask, asyncio.Future]] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self.processing = False

    @property
    def flip_duration_s(self) -> float:
        return self._flip_duration_s

    @property
    def is_animating(self) -> bool:
        return self.processing or bool(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue(self, task: AnimationTask) -> "asyncio.Future[None]":
        """Queue a task; the returned future resolves once it has run (or was cleared)."""
        loop = asyncio.get_running_loop()
        done: asyncio.Future = loop.create_future()
        self._queue.append((task, done))
        if not self.processing:
            self.processing = True
            self._drain_task = loop.create_task(self._drain())
        return done

    async def _drain(self) -> None:
        ran_any = False
        try:
            while self._queue:
                if ran_any and self._stagger_s > 0:
                    await self._sleep(self._stagger_s)
                    if not self._queue:
                        break
                task, done = self._queue.popleft()
                try:
                    await self._run(task)
                finally:
                    _resolve(done)
                ran_any = True
        finally:
            self.processing = False
            self._drain_task = None

    async def _run(self, task: AnimationTask) -> None:
        try:
            text = task.text()
            self._surface.show_back(task.field_id, text)
            await self._sleep(self._flip_duration_s)
            self._surface.show_front(task.field_id, text)
        except Exception as exc:
            logger.warning("Animation for %s failed: %s", task.field_id, exc)

    def update_instant(self, field_id: str, value: Any, formatter: Formatter = str) -> None:
        """Paint a value with no flip (first load). Bypasses the queue."""
        try:
            text = formatter(value)
            self._surface.show_back(field_id, text)
            self._surface.show_front(field_id, text)
        except Exception as exc:
            logger.warning("Instant update for %s failed: %s", field_id, exc)

    def clear(self) -> int:
        """Drop pending tasks; a task already running is left to finish. Returns how many were dropped."""
        dropped = len(self._queue)
        while self._queue:
            _, done = self._queue.popleft()
            _resolve(done)
        if dropped:
            logger.debug("Cleared %d pending animations", dropped)
        return dropped

    async def join(self) -> None:
        """Wait until the queue is empty and nothing is running."""
        while self._drain_task is not None:
            await asyncio.wait({self._drain_task})

    async def close(self) -> None:
        """Clear pending work and cancel the running flip, for shutdown."""
        self.clear()
        drain = self._drain_task
        if drain is not None and not drain.done():
            drain.cancel()
            await asyncio.wait({drain})


def _resolve(done: asyncio.Future) -> None:
    if not done.done():
        done.set_result(None)
