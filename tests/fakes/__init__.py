"""Fakes for pipeline tests: scripted transport, network fixture, surfaces, broken storage (no live network)."""

from .network import network_routes
from .storage import BrokenKeyValueStore, corrupt_store
from .surface import RecordingSurface
from .transport import FakeTransport, scripted_fetcher

__all__ = [
    "BrokenKeyValueStore",
    "FakeTransport",
    "RecordingSurface",
    "corrupt_store",
    "network_routes",
    "scripted_fetcher",
]
