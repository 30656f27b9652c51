"""
Resilient fetcher: TTL cache short-circuits the network, retries are bounded
with linear backoff, 429 honours Retry-After, concurrent identical requests
share one call.
"""
from __future__ import annotations

import asyncio

import pytest

from tezos_telemetry.core.errors import FetchError
from tezos_telemetry.providers import FetchCache, HttpRequest, ResilientFetcher, RetryConfig
from tezos_telemetry.providers.base import TransportResponse
from tests.fakes import FakeTransport

URL = "https://api.tzkt.io/v1/statistics/current"


class Clock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def _fetcher(transport, *, clock=None, max_attempts=3, step=1.0):
    sleeps: list = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    fetcher = ResilientFetcher(
        transport,
        cache=FetchCache(60.0, clock=clock or Clock()),
        retry_config=RetryConfig(max_attempts=max_attempts, backoff_step_s=step),
        sleep=fake_sleep,
    )
    return fetcher, sleeps


def test_fresh_cache_entry_skips_network():
    clock = Clock()
    transport = FakeTransport({URL: {"totalSupply": 1}})
    fetcher, _ = _fetcher(transport, clock=clock)

    async def run():
        first = await fetcher.fetch_json(URL)
        clock.t += 59.0
        second = await fetcher.fetch_json(URL)
        return first, second

    first, second = asyncio.run(run())
    assert first == second == {"totalSupply": 1}
    assert transport.call_count(URL) == 1


def test_expired_cache_entry_refetches():
    clock = Clock()
    transport = FakeTransport({URL: {"totalSupply": 1}})
    fetcher, _ = _fetcher(transport, clock=clock)

    async def run():
        await fetcher.fetch_json(URL)
        clock.t += 60.0
        transport.route(URL, {"totalSupply": 2})
        return await fetcher.fetch_json(URL)

    assert asyncio.run(run()) == {"totalSupply": 2}
    assert transport.call_count(URL) == 2


def test_cached_falsy_payload_is_still_a_hit():
    transport = FakeTransport({URL: 0})
    fetcher, _ = _fetcher(transport)

    async def run():
        return [await fetcher.fetch_json(URL) for _ in range(3)]

    assert asyncio.run(run()) == [0, 0, 0]
    assert transport.call_count() == 1


def test_fail_then_succeed_within_attempts():
    transport = FakeTransport({URL: {"ok": True}})
    transport.fail(URL, times=2, status=503)
    fetcher, sleeps = _fetcher(transport, max_attempts=3, step=1.0)

    assert asyncio.run(fetcher.fetch_json(URL)) == {"ok": True}
    assert transport.call_count() == 3
    # Linear backoff: attempt_index * step.
    assert sleeps == [1.0, 2.0]


def test_retry_bound_raises_fetch_error_after_max_attempts():
    transport = FakeTransport({URL: {"ok": True}})
    transport.fail(URL, status=500)
    fetcher, sleeps = _fetcher(transport, max_attempts=3)

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(fetcher.fetch_json(URL))
    assert transport.call_count() == 3
    assert len(sleeps) == 2
    err = exc_info.value
    assert err.attempts == 3
    assert err.status_code == 500
    assert err.url == URL


def test_transport_exception_is_retried_and_chained():
    transport = FakeTransport({URL: ConnectionError("connection reset")})
    fetcher, _ = _fetcher(transport, max_attempts=2)

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(fetcher.fetch_json(URL))
    assert transport.call_count() == 2
    assert isinstance(exc_info.value.__cause__, ConnectionError)


def test_per_call_max_attempts_override():
    transport = FakeTransport()
    transport.fail(URL, status=502)
    fetcher, _ = _fetcher(transport, max_attempts=5)

    with pytest.raises(FetchError):
        asyncio.run(fetcher.fetch_json(URL, max_attempts=1))
    assert transport.call_count() == 1


def test_rate_limited_uses_retry_after():
    transport = FakeTransport({URL: {"ok": True}})
    transport.fail(URL, times=1, status=429, headers={"Retry-After": "7"})
    fetcher, sleeps = _fetcher(transport)

    assert asyncio.run(fetcher.fetch_json(URL)) == {"ok": True}
    assert sleeps == [7.0]


def test_failed_fetch_is_not_cached():
    transport = FakeTransport({URL: {"ok": True}})
    transport.fail(URL, times=1, status=503)
    fetcher, _ = _fetcher(transport, max_attempts=1)

    async def run():
        with pytest.raises(FetchError):
            await fetcher.fetch_json(URL)
        return await fetcher.fetch_json(URL)

    assert asyncio.run(run()) == {"ok": True}
    assert transport.call_count() == 2


def test_text_requests_are_stripped_and_cached_separately():
    transport = FakeTransport({URL: "5.25"})
    fetcher, _ = _fetcher(transport)

    async def run():
        text = await fetcher.fetch_text(URL)
        parsed = await fetcher.fetch_json(URL)
        return text, parsed

    text, parsed = asyncio.run(run())
    assert text == '"5.25"'
    assert parsed == "5.25"
    assert transport.call_count() == 2


def test_concurrent_identical_requests_share_one_call():
    transport = FakeTransport({URL: {"ok": True}}, delay_s=0.01)
    fetcher, _ = _fetcher(transport)

    async def run():
        return await asyncio.gather(*(fetcher.fetch(HttpRequest(URL)) for _ in range(5)))

    results = asyncio.run(run())
    assert results == [{"ok": True}] * 5
    assert transport.call_count() == 1


def test_non_json_body_counts_as_failed_attempt():
    transport = FakeTransport({URL: TransportResponse(200, "<html>maintenance</html>")})
    fetcher, _ = _fetcher(transport, max_attempts=2)

    with pytest.raises(FetchError):
        asyncio.run(fetcher.fetch_json(URL))
    assert transport.call_count() == 2
