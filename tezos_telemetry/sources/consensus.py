"""
Consensus sources: active bakers / tz4 adoption, and cycle progress.

Bakers come from the Octez RPC active delegate list (TzKT count + address list
as fallback); tz4 adoption from the latest TzKT update_consensus_key operation
of each active baker.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from ..core.errors import FetchError, PayloadError
from ..providers.resilience import ResilientFetcher
from .base import Fragment, percentage, require_dict, require_int, require_list, safe_get, source_adapter
from .endpoints import Endpoints

logger = logging.getLogger(__name__)

# Used when the constants RPC is unavailable.
FALLBACK_BLOCK_TIME_S = 6
FALLBACK_BLOCKS_PER_CYCLE = 14_400

BAKER_FIELDS = ("totalBakers", "tz4Bakers", "tz4Percentage")
CYCLE_FIELDS = ("cycle", "cycleProgress", "cycleTimeRemaining")


async def _active_baker_addresses(fetcher: ResilientFetcher, endpoints: Endpoints) -> tuple[int, list]:
    try:
        addresses = require_list(
            await fetcher.fetch_json(endpoints.rpc_active_delegates()), "active delegates"
        )
        return len(addresses), addresses
    except (FetchError, PayloadError) as exc:
        logger.info("Octez delegate list unavailable, falling back to TzKT: %s", exc)
    total = require_int(await fetcher.fetch_json(endpoints.active_bakers_count()), "active baker count")
    addresses = require_list(
        await fetcher.fetch_json(endpoints.active_baker_addresses()), "active baker addresses"
    )
    return total, addresses


def count_tz4_bakers(operations: list, active: set) -> int:
    """Count active bakers whose most recent consensus key is a tz4 (BLS) key.

    Operations are expected newest first, so the first op seen per baker wins.
    """
    latest: Dict[str, str] = {}
    for op in operations:
        baker = safe_get(op, "sender.address")
        if not baker or baker in latest or baker not in active:
            continue
        latest[baker] = str((op.get("publicKeyHash") if isinstance(op, dict) else None) or "")
    return sum(1 for key in latest.values() if key.startswith("tz4"))


@source_adapter("bakers", BAKER_FIELDS)
async def fetch_bakers(fetcher: ResilientFetcher, endpoints: Endpoints) -> Fragment:
    total, addresses = await _active_baker_addresses(fetcher, endpoints)
    active = {a for a in addresses if isinstance(a, str)}
    operations = require_list(
        await fetcher.fetch_json(endpoints.consensus_key_ops()), "consensus key operations"
    )
    tz4_count = count_tz4_bakers(operations, active)
    return {
        "totalBakers": total,
        "tz4Bakers": tz4_count,
        "tz4Percentage": percentage(tz4_count, total),
    }


def format_time_remaining(blocks_remaining: int, block_time_s: int) -> str:
    if blocks_remaining <= 0:
        return "< 1m left"
    seconds = blocks_remaining * block_time_s
    hours, rem = divmod(seconds, 3600)
    minutes = rem // 60
    if hours > 0:
        return f"{hours}h {minutes}m left"
    return f"{minutes}m left"


async def _cycle_constants(fetcher: ResilientFetcher, endpoints: Endpoints) -> tuple[int, int]:
    block_time_s = FALLBACK_BLOCK_TIME_S
    blocks_per_cycle = FALLBACK_BLOCKS_PER_CYCLE
    try:
        constants = require_dict(await fetcher.fetch_json(endpoints.rpc_constants()), "constants")
    except (FetchError, PayloadError) as exc:
        logger.debug("Constants unavailable, using fallbacks: %s", exc)
        return block_time_s, blocks_per_cycle
    if constants.get("minimal_block_delay") is not None:
        block_time_s = require_int(constants["minimal_block_delay"], "minimal_block_delay")
    if constants.get("blocks_per_cycle") is not None:
        blocks_per_cycle = require_int(constants["blocks_per_cycle"], "blocks_per_cycle")
    return block_time_s, blocks_per_cycle


@source_adapter("cycle", CYCLE_FIELDS)
async def fetch_cycle(fetcher: ResilientFetcher, endpoints: Endpoints) -> Fragment:
    header, metadata = await asyncio.gather(
        fetcher.fetch_json(endpoints.rpc_header()),
        fetcher.fetch_json(endpoints.rpc_metadata()),
    )
    header = require_dict(header, "block header")
    level_info: Dict[str, Any] = require_dict(metadata, "block metadata").get("level_info") or {}

    level = require_int(header.get("level"), "header.level")
    cycle = require_int(level_info.get("cycle"), "level_info.cycle")
    position = require_int(level_info.get("cycle_position") or 0, "level_info.cycle_position")
    block_time_s, blocks_per_cycle = await _cycle_constants(fetcher, endpoints)

    cycle_start = level - position
    cycle_end = cycle_start + blocks_per_cycle - 1
    progress = ((level - cycle_start) / blocks_per_cycle) * 100.0 if blocks_per_cycle else 0.0
    return {
        "cycle": cycle,
        "cycleProgress": min(progress, 100.0),
        "cycleTimeRemaining": format_time_remaining(cycle_end - level, block_time_s),
    }
