"""
Upstream endpoint catalog.

Uses the public TzKT indexer and an Octez RPC node (no authentication required):
  GET {tzkt}/statistics/current
  GET {tzkt}/voting/periods/current
  GET {octez}/chains/main/blocks/head/context/...
"""
from __future__ import annotations

from dataclasses import dataclass

from .. import config

TZKT_BASE_URL = "https://api.tzkt.io/v1"
OCTEZ_BASE_URL = "https://eu.rpc.tez.capital"

_HEAD = "/chains/main/blocks/head"


@dataclass(frozen=True)
class Endpoints:
    tzkt: str = TZKT_BASE_URL
    octez: str = OCTEZ_BASE_URL
    bakers_limit: int = 10_000
    consensus_ops_limit: int = 2_000

    @classmethod
    def from_config(cls) -> "Endpoints":
        return cls(
            tzkt=config.tzkt_url(),
            octez=config.octez_url(),
            bakers_limit=config.bakers_limit(),
            consensus_ops_limit=config.consensus_ops_limit(),
        )

    # TzKT
    def statistics_current(self) -> str:
        return f"{self.tzkt}/statistics/current"

    def statistics_on(self, day: str, next_day: str) -> str:
        return (
            f"{self.tzkt}/statistics?timestamp.ge={day}T00:00:00Z"
            f"&timestamp.lt={next_day}T00:00:00Z&limit=1"
        )

    def voting_period(self) -> str:
        return f"{self.tzkt}/voting/periods/current"

    def active_bakers_count(self) -> str:
        return f"{self.tzkt}/delegates/count?active=true"

    def active_baker_addresses(self) -> str:
        return f"{self.tzkt}/delegates?active=true&limit={self.bakers_limit}&select=address"

    def consensus_key_ops(self) -> str:
        return (
            f"{self.tzkt}/operations/update_consensus_key?limit={self.consensus_ops_limit}"
            "&sort.desc=id&select=sender,publicKeyHash"
        )

    def transactions_since(self, since_iso: str, *, contract_calls: bool = False) -> str:
        url = f"{self.tzkt}/operations/transactions/count?timestamp.gt={since_iso}"
        if contract_calls:
            url += "&entrypoint.null=false"
        return url

    def funded_accounts(self) -> str:
        return f"{self.tzkt}/accounts/count?balance.gt=0"

    def contracts_count(self) -> str:
        return f"{self.tzkt}/contracts/count"

    def tokens_count(self) -> str:
        return f"{self.tzkt}/tokens/count"

    def rollups_count(self) -> str:
        return f"{self.tzkt}/smart_rollups/count"

    def tzkt_head(self) -> str:
        return f"{self.tzkt}/head"

    # Octez RPC
    def rpc_active_delegates(self) -> str:
        return f"{self.octez}{_HEAD}/context/delegates?active=true&with_minimal_stake=true"

    def rpc_header(self) -> str:
        return f"{self.octez}{_HEAD}/header"

    def rpc_metadata(self) -> str:
        return f"{self.octez}{_HEAD}/metadata"

    def rpc_constants(self) -> str:
        return f"{self.octez}{_HEAD}/context/constants"

    def rpc_total_supply(self) -> str:
        return f"{self.octez}{_HEAD}/context/total_supply"

    def rpc_issuance_rate(self) -> str:
        return f"{self.octez}{_HEAD}/context/issuance/current_yearly_rate"
