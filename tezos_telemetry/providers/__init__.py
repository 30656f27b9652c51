"""
Provider layer for upstream blockchain-data APIs.

A single resilient fetch primitive (retry with linear backoff, short-TTL
memoization, in-flight deduplication) over a pluggable transport. Source
adapters in tezos_telemetry.sources build on it.
"""

from __future__ import annotations

from .base import (
    AdapterResult,
    Failed,
    HttpRequest,
    Ok,
    SourceHealth,
    SourceStatus,
    Transport,
    TransportResponse,
)
from .resilience import FetchCache, FetchCacheEntry, ResilientFetcher, RetryConfig
from .transport import RequestsTransport

__all__ = [
    "AdapterResult",
    "Failed",
    "FetchCache",
    "FetchCacheEntry",
    "HttpRequest",
    "Ok",
    "RequestsTransport",
    "ResilientFetcher",
    "RetryConfig",
    "SourceHealth",
    "SourceStatus",
    "Transport",
    "TransportResponse",
]
