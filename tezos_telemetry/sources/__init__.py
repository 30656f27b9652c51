"""
Source adapters: one async function per upstream concern, each returning
Ok(fragment) or Failed(reason) and never raising fetch/payload failures.

The issuance source is the supply producer and runs first; staking depends on
it through SupplyInput. Every other source is independent.
"""

from __future__ import annotations

from .activity import fetch_ecosystem, fetch_volume
from .base import SourceAdapter, source_adapter
from .consensus import fetch_bakers, fetch_cycle
from .economy import SupplyInput, fetch_issuance, fetch_staking
from .endpoints import Endpoints
from .governance import fetch_governance
from .health import check_api_health

# Sources with no inputs besides the fetcher; launched together in the fan-out.
INDEPENDENT_SOURCES = (
    fetch_bakers,
    fetch_cycle,
    fetch_governance,
    fetch_volume,
    fetch_ecosystem,
)

__all__ = [
    "Endpoints",
    "INDEPENDENT_SOURCES",
    "SourceAdapter",
    "SupplyInput",
    "check_api_health",
    "fetch_bakers",
    "fetch_cycle",
    "fetch_ecosystem",
    "fetch_governance",
    "fetch_issuance",
    "fetch_staking",
    "fetch_volume",
    "source_adapter",
]
