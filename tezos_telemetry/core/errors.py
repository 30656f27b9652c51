"""
Shared exception types for tezos_telemetry.
Stable surface; extend only.
"""

from __future__ import annotations

from typing import Optional


class TelemetryError(Exception):
    """Base exception for tezos_telemetry; catch this for any package-raised error."""

    pass


class FetchError(TelemetryError):
    """Final failure of a resilient fetch after all attempts were used."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        attempts: int = 0,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts
        self.status_code = status_code


class PayloadError(TelemetryError):
    """Upstream answered, but not with the shape an adapter expects."""

    pass


class FieldOwnershipError(TelemetryError):
    """Two adapters claim the same snapshot field, or a claimed field does not exist."""

    pass


class AggregationError(TelemetryError):
    """An adapter raised past its own boundary; the whole aggregation run failed."""

    def __init__(self, message: str, *, source: str = "") -> None:
        super().__init__(message)
        self.source = source


__all__ = [
    "AggregationError",
    "FetchError",
    "FieldOwnershipError",
    "PayloadError",
    "TelemetryError",
]
