"""
Resilience primitives: bounded retry with linear backoff and a short-TTL
in-memory response cache, combined in ResilientFetcher.

The cache is an explicit instance injected into the fetcher (one per process
in production, one per test otherwise). Entries are only invalidated by TTL
expiry or process restart; availability is preferred over strict freshness.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from ..core.errors import FetchError
from .base import HttpRequest, Transport, TransportResponse

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_TTL_S = 60.0


@dataclass
class RetryConfig:
    """Configuration for retry with linear backoff (attempt_index * backoff_step_s)."""
    max_attempts: int = 3
    backoff_step_s: float = 1.0
    respect_retry_after: bool = True


@dataclass(frozen=True)
class FetchCacheEntry:
    key: str
    value: Any
    fetched_at: float


class FetchCache:
    """
    Response cache keyed by request identity.

    A lookup younger than `ttl_s` is a pure hit: the fetcher makes no network
    call at all, not even a conditional one.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_MEMORY_TTL_S,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_s = ttl_s
        self._clock = clock
        self._store: Dict[str, FetchCacheEntry] = {}

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    def entry(self, key: str) -> Optional[FetchCacheEntry]:
        return self._store.get(key)

    def is_fresh(self, key: str) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False
        return (self._clock() - entry.fetched_at) < self._ttl_s

    def get(self, key: str) -> Optional[Any]:
        if not self.is_fresh(key):
            return None
        return self._store[key].value

    def put(self, key: str, value: Any) -> None:
        self._store[key] = FetchCacheEntry(key=key, value=value, fetched_at=self._clock())

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


def _parse(request: HttpRequest, resp: TransportResponse) -> Any:
    if request.expect == "text":
        return resp.text.strip()
    return json.loads(resp.text)


def _retry_after_s(resp: TransportResponse) -> Optional[float]:
    raw = resp.headers.get("Retry-After") or resp.headers.get("retry-after")
    if not raw:
        return None
    try:
        seconds = int(raw)
    except (TypeError, ValueError):
        return None
    return float(seconds) if seconds > 0 else None


class ResilientFetcher:
    """
    Fetch one upstream resource with cache, retry and in-flight deduplication.

    Usage:
        fetcher = ResilientFetcher(RequestsTransport(), cache=FetchCache(60.0))
        payload = await fetcher.fetch(HttpRequest(url))
    """

    def __init__(
        self,
        transport: Transport,
        *,
        cache: Optional[FetchCache] = None,
        retry_config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._cache = cache if cache is not None else FetchCache()
        self._retry_config = retry_config or RetryConfig()
        self._sleep = sleep
        self._inflight: Dict[str, "asyncio.Future[Any]"] = {}

    @property
    def cache(self) -> FetchCache:
        return self._cache

    @property
    def transport(self) -> Transport:
        return self._transport

    async def fetch(self, request: HttpRequest, max_attempts: Optional[int] = None) -> Any:
        """
        Return the parsed payload for `request`.

        Fresh cache entries are returned without any network call. Otherwise up
        to `max_attempts` calls are made; the final failure raises FetchError.
        """
        key = request.key
        if self._cache.is_fresh(key):
            logger.debug("Cache hit: %s", key)
            return self._cache.entry(key).value

        pending = self._inflight.get(key)
        if pending is None:
            attempts = max_attempts or self._retry_config.max_attempts
            pending = asyncio.ensure_future(self._fetch_uncached(request, attempts))
            self._inflight[key] = pending
            pending.add_done_callback(lambda _f: self._inflight.pop(key, None))
        else:
            logger.debug("Joining in-flight request: %s", key)
        return await asyncio.shield(pending)

    async def fetch_json(self, url: str, max_attempts: Optional[int] = None) -> Any:
        return await self.fetch(HttpRequest(url), max_attempts)

    async def fetch_text(self, url: str, max_attempts: Optional[int] = None) -> str:
        return await self.fetch(HttpRequest(url, expect="text"), max_attempts)

    async def _fetch_uncached(self, request: HttpRequest, attempts: int) -> Any:
        cfg = self._retry_config
        attempts = max(1, int(attempts))
        last_err: Optional[Exception] = None
        status_code: Optional[int] = None

        for attempt in range(1, attempts + 1):
            delay = attempt * cfg.backoff_step_s
            try:
                resp = await self._transport.send(request)
                if resp.ok:
                    value = _parse(request, resp)
                    self._cache.put(request.key, value)
                    return value
                status_code = resp.status_code
                last_err = FetchError(
                    f"HTTP {resp.status_code} from {request.url}",
                    url=request.url,
                    attempts=attempt,
                    status_code=resp.status_code,
                )
                if resp.status_code == 429 and cfg.respect_retry_after:
                    delay = _retry_after_s(resp) or delay
                    logger.warning("Rate limited (429) on %s, backing off %.1fs", request.url, delay)
            except Exception as exc:
                last_err = exc
            logger.debug(
                "Attempt %d/%d failed for %s: %s: %s",
                attempt, attempts, request.url, type(last_err).__name__, last_err,
            )
            if attempt < attempts:
                await self._sleep(delay)

        raise FetchError(
            f"{request.method.upper()} {request.url} failed after {attempts} attempts: "
            f"{type(last_err).__name__}: {last_err}",
            url=request.url,
            attempts=attempts,
            status_code=status_code,
        ) from last_err
