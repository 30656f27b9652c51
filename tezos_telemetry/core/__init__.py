"""
Stable facade: shared error types only. No providers, store, or render imports.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    AggregationError,
    FetchError,
    FieldOwnershipError,
    PayloadError,
    TelemetryError,
)

# Do not add exports without updating __all__.
__all__ = [
    "AggregationError",
    "FetchError",
    "FieldOwnershipError",
    "PayloadError",
    "TelemetryError",
]
