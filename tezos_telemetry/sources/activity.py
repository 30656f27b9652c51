"""
Network activity and ecosystem counts from TzKT /count endpoints.

Each source is all-or-nothing: if any of its counts fails, the whole source
falls back to zeros rather than mixing live and default numbers.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from ..providers.resilience import ResilientFetcher
from ..timeutils import iso_hours_ago
from .base import Fragment, require_int, source_adapter
from .endpoints import Endpoints

VOLUME_FIELDS = ("transactionVolume24h", "contractCalls24h")
ECOSYSTEM_FIELDS = ("fundedAccounts", "smartContracts", "tokens", "rollups")


@source_adapter("volume", VOLUME_FIELDS)
async def fetch_volume(
    fetcher: ResilientFetcher,
    endpoints: Endpoints,
    *,
    now: Optional[float] = None,
) -> Fragment:
    since = iso_hours_ago(24, now=now)
    transactions, calls = await asyncio.gather(
        fetcher.fetch_json(endpoints.transactions_since(since)),
        fetcher.fetch_json(endpoints.transactions_since(since, contract_calls=True)),
    )
    return {
        "transactionVolume24h": require_int(transactions, "transaction count"),
        "contractCalls24h": require_int(calls, "contract call count"),
    }


@source_adapter("ecosystem", ECOSYSTEM_FIELDS)
async def fetch_ecosystem(fetcher: ResilientFetcher, endpoints: Endpoints) -> Fragment:
    accounts, contracts, tokens, rollups = await asyncio.gather(
        fetcher.fetch_json(endpoints.funded_accounts()),
        fetcher.fetch_json(endpoints.contracts_count()),
        fetcher.fetch_json(endpoints.tokens_count()),
        fetcher.fetch_json(endpoints.rollups_count()),
    )
    return {
        "fundedAccounts": require_int(accounts, "funded accounts"),
        "smartContracts": require_int(contracts, "smart contracts"),
        "tokens": require_int(tokens, "tokens"),
        "rollups": require_int(rollups, "smart rollups"),
    }
