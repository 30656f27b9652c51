"""
Aggregator: fan out to every source adapter, wait for all to settle, merge one Snapshot.

Order of a run:
  1. The supply source (issuance) runs first; its fragment yields SupplyInput.
  2. Every independent source plus the supply-dependent source (staking) is
     launched concurrently and joined with gather(return_exceptions=True), so one
     slow or broken upstream never blanks the whole snapshot.
  3. Ok fragments are merged; Failed sources contribute their documented
     fallback. Sources own disjoint field sets (checked at construction), so
     merge order does not matter.

A source that raises past its own boundary is a bug, not an upstream failure:
the run fails with AggregationError once every source has settled, and no
partial snapshot is produced. Callers keep their last good snapshot.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.errors import AggregationError, FieldOwnershipError
from ..providers.base import Failed, SourceHealth
from ..providers.resilience import ResilientFetcher
from ..snapshot import Snapshot
from ..sources import INDEPENDENT_SOURCES, fetch_issuance, fetch_staking
from ..sources.base import SourceAdapter
from ..sources.economy import SupplyInput
from ..sources.endpoints import Endpoints

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationResult:
    """One aggregation run: the merged snapshot plus which sources degraded and why."""

    snapshot: Snapshot
    failed_sources: Dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.failed_sources)


def check_disjoint(adapters: Iterable[SourceAdapter]) -> Dict[str, str]:
    """
    Return field -> owning source. Raise FieldOwnershipError if two sources
    claim the same snapshot field or share a name.
    """
    owners: Dict[str, str] = {}
    names: set = set()
    for adapter in adapters:
        if adapter.name in names:
            raise FieldOwnershipError(f"Duplicate source name: {adapter.name}")
        names.add(adapter.name)
        for key in sorted(adapter.fields):
            if key in owners:
                raise FieldOwnershipError(
                    f"Field {key} claimed by both {owners[key]} and {adapter.name}"
                )
            owners[key] = adapter.name
    return owners


class Aggregator:
    """
    Build one immutable Snapshot per run from all registered sources.

    Usage:
        aggregator = Aggregator(fetcher, Endpoints.from_config())
        snapshot = await aggregator.aggregate()
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        endpoints: Optional[Endpoints] = None,
        *,
        supply_source: SourceAdapter = fetch_issuance,
        dependent_source: SourceAdapter = fetch_staking,
        sources: Sequence[SourceAdapter] = INDEPENDENT_SOURCES,
    ) -> None:
        self._fetcher = fetcher
        self._endpoints = endpoints or Endpoints()
        self._supply_source = supply_source
        self._dependent_source = dependent_source
        self._sources = list(sources)
        self._owners = check_disjoint(self.adapters)
        self._health: Dict[str, SourceHealth] = {
            a.name: SourceHealth(source_name=a.name) for a in self.adapters
        }

    @property
    def fetcher(self) -> ResilientFetcher:
        return self._fetcher

    @property
    def endpoints(self) -> Endpoints:
        return self._endpoints

    @property
    def adapters(self) -> List[SourceAdapter]:
        return [self._supply_source, *self._sources, self._dependent_source]

    @property
    def field_owners(self) -> Dict[str, str]:
        return dict(self._owners)

    async def aggregate(self) -> Snapshot:
        """Run every source and return the merged snapshot."""
        return (await self.run()).snapshot

    async def run(self) -> AggregationResult:
        supply_outcome = await self._settle_one(self._supply_source)
        supply: Optional[SupplyInput] = None
        if not isinstance(supply_outcome, (Failed, BaseException)):
            supply = SupplyInput.from_fragment(supply_outcome.value)

        fan_out = [
            *(adapter(self._fetcher, self._endpoints) for adapter in self._sources),
            self._dependent_source(self._fetcher, self._endpoints, supply=supply),
        ]
        outcomes = await asyncio.gather(*fan_out, return_exceptions=True)
        return self._merge(self.adapters, [supply_outcome, *outcomes])

    async def _settle_one(self, adapter: SourceAdapter) -> Any:
        try:
            return await adapter(self._fetcher, self._endpoints)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            return exc

    def _merge(self, adapters: Sequence[SourceAdapter], outcomes: Sequence[Any]) -> AggregationResult:
        values: Dict[str, Any] = {}
        failed: Dict[str, str] = {}
        errors: List[tuple] = []

        for adapter, outcome in zip(adapters, outcomes):
            health = self._health[adapter.name]
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                health.record_failure(f"{type(outcome).__name__}: {outcome}")
                errors.append((adapter.name, outcome))
            elif isinstance(outcome, Failed):
                health.record_failure(outcome.reason)
                failed[adapter.name] = outcome.reason
                values.update(adapter.fallback)
            else:
                health.record_success()
                values.update(outcome.value)

        if errors:
            name, exc = errors[0]
            logger.error("Aggregation failed: source %s raised %s: %s", name, type(exc).__name__, exc)
            raise AggregationError(
                f"Source {name} raised {type(exc).__name__}: {exc}", source=name
            ) from exc

        snapshot = Snapshot.from_dict(values)
        ok = len(adapters) - len(failed)
        if failed:
            logger.warning(
                "Aggregated snapshot with %d/%d sources ok; degraded: %s",
                ok, len(adapters), ", ".join(sorted(failed)),
            )
        else:
            logger.info("Aggregated snapshot with %d/%d sources ok", ok, len(adapters))
        return AggregationResult(snapshot=snapshot, failed_sources=failed)

    def get_health(self) -> Dict[str, SourceHealth]:
        """Return health status for all sources."""
        return dict(self._health)
