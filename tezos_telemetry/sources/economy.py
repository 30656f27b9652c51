"""
Economy sources: issuance + supply, and staking.

The issuance source is the single producer of the total-supply measurement.
The staking source takes that measurement as an explicit SupplyInput instead
of refetching it, so the staking ratio and the displayed supply always come
from the same point in time. The aggregator runs issuance before its
parallel fan-out.

Staking ratio policy: (own + external staked) / total supply, using TzKT
statistics for the staked sums. There is no non-zero fallback; if either input
is missing the source fails and contributes zeros.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..core.errors import FetchError, PayloadError
from ..providers.resilience import ResilientFetcher
from ..timeutils import iso_days_ago, wall_clock
from .base import Fragment, require_dict, require_float, require_int, source_adapter, to_float, unquote
from .endpoints import Endpoints

logger = logging.getLogger(__name__)

MUTEZ_PER_TEZ = 1_000_000
ISSUANCE_WINDOW_DAYS = 30
DAYS_PER_YEAR = 365.25
# edge_of_baking_over_staking protocol constant
BAKING_EDGE = 2

ISSUANCE_FIELDS = (
    "currentIssuanceRate",
    "protocolIssuanceRate",
    "lbIssuanceRate",
    "totalSupply",
    "totalBurned",
)
STAKING_FIELDS = ("stakingRatio", "delegatedRatio", "stakeAPY", "delegateAPY")


@dataclass(frozen=True)
class SupplyInput:
    """Total supply (tez) and protocol issuance rate (%/yr) measured by the issuance source."""

    total_supply: float
    protocol_rate: float

    @classmethod
    def from_fragment(cls, fragment: dict) -> Optional["SupplyInput"]:
        supply = to_float(fragment.get("totalSupply")) or 0.0
        if supply <= 0:
            return None
        return cls(total_supply=supply, protocol_rate=to_float(fragment.get("protocolIssuanceRate")) or 0.0)


def _settled(result: Any, what: str) -> Any:
    """Value of one gather(return_exceptions=True) slot; None for fetch/payload failures."""
    if isinstance(result, (FetchError, PayloadError)):
        logger.debug("%s unavailable: %s", what, result)
        return None
    if isinstance(result, BaseException):
        raise result
    return result


def annualized_net_issuance(current: dict, past: dict, days: float = ISSUANCE_WINDOW_DAYS) -> float:
    """Annualized net issuance (created - burned) over the average supply of the window, in %."""
    created = require_float(current.get("totalCreated"), "totalCreated") - require_float(
        past.get("totalCreated"), "past totalCreated"
    )
    burned = (to_float(current.get("totalBurned")) or 0.0) - (to_float(past.get("totalBurned")) or 0.0)
    avg_supply = (
        require_float(current.get("totalSupply"), "totalSupply")
        + require_float(past.get("totalSupply"), "past totalSupply")
    ) / 2.0
    if avg_supply <= 0:
        raise PayloadError("average supply is not positive")
    return ((created - burned) / avg_supply) * (DAYS_PER_YEAR / days) * 100.0


@source_adapter("issuance", ISSUANCE_FIELDS)
async def fetch_issuance(
    fetcher: ResilientFetcher,
    endpoints: Endpoints,
    *,
    now: Optional[float] = None,
) -> Fragment:
    now = wall_clock() if now is None else now
    day = iso_days_ago(ISSUANCE_WINDOW_DAYS, now=now)
    next_day = iso_days_ago(ISSUANCE_WINDOW_DAYS - 1, now=now)

    current_raw, past_raw, rate_raw = await asyncio.gather(
        fetcher.fetch_json(endpoints.statistics_current()),
        fetcher.fetch_json(endpoints.statistics_on(day, next_day)),
        fetcher.fetch_text(endpoints.rpc_issuance_rate()),
        return_exceptions=True,
    )
    current = _settled(current_raw, "current statistics")
    past = _settled(past_raw, "past statistics")
    rate_text = _settled(rate_raw, "protocol issuance rate")

    protocol_rate = require_float(unquote(rate_text), "issuance rate") if rate_text is not None else None
    if isinstance(past, list):
        past = past[0] if past else None
    current = current if isinstance(current, dict) else None
    past = past if isinstance(past, dict) else None

    if current is not None and current.get("totalSupply"):
        supply_mutez = require_int(current["totalSupply"], "totalSupply")
    else:
        supply_text = await fetcher.fetch_text(endpoints.rpc_total_supply())
        supply_mutez = require_int(unquote(supply_text), "total_supply")
    burned_mutez = (to_float(current.get("totalBurned")) or 0.0) if current else 0.0

    if current is None or not current.get("totalSupply") or past is None or not past.get("totalCreated"):
        # No history window: report the protocol-only rate.
        total = protocol = protocol_rate or 0.0
        lb = 0.0
    else:
        total = annualized_net_issuance(current, past)
        protocol = protocol_rate if protocol_rate is not None else total
        lb = max(0.0, total - protocol_rate) if protocol_rate is not None else 0.0

    return {
        "currentIssuanceRate": total,
        "protocolIssuanceRate": protocol,
        "lbIssuanceRate": lb,
        "totalSupply": supply_mutez / MUTEZ_PER_TEZ,
        "totalBurned": burned_mutez / MUTEZ_PER_TEZ,
    }


def _mutez_sum(stats: dict, *keys: str) -> float:
    return sum(to_float(stats.get(k)) or 0.0 for k in keys)


def staking_apy(staked_share: float, delegated_share: float, protocol_rate: float) -> tuple[float, float]:
    """(stake APY, delegate APY) in %, rounded to one decimal. Zeros when undefined."""
    effective = staked_share + delegated_share / (1 + BAKING_EDGE)
    if effective <= 0 or protocol_rate <= 0:
        return 0.0, 0.0
    stake = (protocol_rate / 100.0) / effective * 100.0
    delegate = stake / (1 + BAKING_EDGE)
    return round(stake, 1), round(delegate, 1)


@source_adapter("staking", STAKING_FIELDS)
async def fetch_staking(
    fetcher: ResilientFetcher,
    endpoints: Endpoints,
    *,
    supply: Optional[SupplyInput],
) -> Fragment:
    if supply is None:
        raise PayloadError("total supply unavailable from issuance source")
    stats = require_dict(await fetcher.fetch_json(endpoints.statistics_current()), "statistics")

    staked = _mutez_sum(stats, "totalOwnStaked", "totalExternalStaked") / MUTEZ_PER_TEZ
    delegated = _mutez_sum(stats, "totalOwnDelegated", "totalExternalDelegated") / MUTEZ_PER_TEZ

    staked_share = staked / supply.total_supply
    delegated_share = delegated / supply.total_supply
    stake_apy, delegate_apy = staking_apy(staked_share, delegated_share, supply.protocol_rate)
    return {
        "stakingRatio": staked_share * 100.0,
        "delegatedRatio": delegated_share * 100.0,
        "stakeAPY": stake_apy,
        "delegateAPY": delegate_apy,
    }
