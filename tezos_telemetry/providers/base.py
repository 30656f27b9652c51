"""
Provider interfaces and data contracts.

- HttpRequest / TransportResponse: what the fetcher sends and gets back.
- Transport: protocol for the network seam (requests-backed in production, scripted in tests).
- AdapterResult: Ok(value) | Failed(reason), produced once per adapter invocation.

Data is returned via frozen dataclasses for immutability and type safety.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Mapping, Optional, Protocol, TypeVar, Union, runtime_checkable

from ..timeutils import now_utc_iso

T = TypeVar("T")


class SourceStatus(enum.Enum):
    """Health status of an upstream source adapter."""

    OK = "OK"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


@dataclass(frozen=True)
class HttpRequest:
    """One upstream call. Identity (cache key) is method + URL."""

    url: str
    method: str = "GET"
    expect: str = "json"
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.method.upper()} {self.url}"


@dataclass(frozen=True)
class TransportResponse:
    """Raw upstream answer before parsing."""

    status_code: int
    text: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class Transport(Protocol):
    """Network seam used by the resilient fetcher."""

    async def send(self, request: HttpRequest) -> TransportResponse:
        """Perform one network call. Raise on transport-level failure."""
        ...


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    reason: str

    @property
    def ok(self) -> bool:
        return False


AdapterResult = Union[Ok[T], Failed]


@dataclass
class SourceHealth:
    """Mutable health state for a single source adapter."""

    source_name: str
    status: SourceStatus = SourceStatus.OK
    last_ok_at: Optional[str] = None
    fail_count: int = 0
    last_error: Optional[str] = None

    def record_success(self) -> None:
        self.status = SourceStatus.OK
        self.fail_count = 0
        self.last_ok_at = now_utc_iso()
        self.last_error = None

    def record_failure(self, error: str) -> None:
        self.fail_count += 1
        self.last_error = error[:500]
        if self.fail_count >= 5:
            self.status = SourceStatus.DOWN
        elif self.fail_count >= 2:
            self.status = SourceStatus.DEGRADED

    def as_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source_name,
            "status": self.status.value,
            "last_ok_at": self.last_ok_at,
            "fail_count": self.fail_count,
            "last_error": self.last_error,
        }
