"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import tezos_telemetry; use tezos_telemetry.providers, .sources, .pipeline, .store, .render.
Does not import cli.
"""

from __future__ import annotations

from . import core, pipeline, providers, render, sources, store
from ._version import __version__
from .deltas import DeltaMetric, compute_deltas
from .service import PollLoop, RefreshOutcome, TelemetryService, build_service
from .snapshot import Snapshot

# Do not add exports without updating __all__.
__all__ = [
    "DeltaMetric",
    "PollLoop",
    "RefreshOutcome",
    "Snapshot",
    "TelemetryService",
    "__version__",
    "build_service",
    "compute_deltas",
    "core",
    "pipeline",
    "providers",
    "render",
    "sources",
    "store",
]
