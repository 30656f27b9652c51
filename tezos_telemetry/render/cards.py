"""
Card bindings: which snapshot metric each dashboard card shows and how it is formatted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..snapshot import Snapshot
from .formatters import format_count, format_large, format_percentage, format_supply
from .scheduler import AnimationTask, Formatter


@dataclass(frozen=True)
class CardBinding:
    card_id: str
    key: str
    formatter: Formatter
    animated: bool = True

    def task_for(self, snapshot: Snapshot) -> AnimationTask:
        return AnimationTask(self.card_id, snapshot.get(self.key), self.formatter)


CARD_BINDINGS: Sequence[CardBinding] = (
    CardBinding("total-bakers", "totalBakers", format_count),
    CardBinding("tz4-bakers", "tz4Bakers", format_count),
    CardBinding("tz4-adoption", "tz4Percentage", format_percentage),
    CardBinding("issuance-rate", "currentIssuanceRate", format_percentage),
    CardBinding("tx-volume", "transactionVolume24h", format_large),
    # Painted on load and on change, without a flip.
    CardBinding("staking-ratio", "stakingRatio", format_percentage, animated=False),
    CardBinding("delegated-ratio", "delegatedRatio", format_percentage, animated=False),
    CardBinding("total-supply", "totalSupply", format_supply, animated=False),
    CardBinding("total-burned", "totalBurned", format_supply, animated=False),
    CardBinding("cycle", "cycle", format_count, animated=False),
    CardBinding("cycle-progress", "cycleProgress", format_percentage, animated=False),
    CardBinding("funded-accounts", "fundedAccounts", format_large, animated=False),
    CardBinding("smart-contracts", "smartContracts", format_large, animated=False),
    CardBinding("tokens", "tokens", format_large, animated=False),
    CardBinding("rollups", "rollups", format_count, animated=False),
)


def changed_bindings(
    previous: Optional[Snapshot],
    current: Snapshot,
    bindings: Sequence[CardBinding] = CARD_BINDINGS,
) -> List[CardBinding]:
    if previous is None:
        return list(bindings)
    return [b for b in bindings if previous.get(b.key) != current.get(b.key)]


def plan_updates(
    previous: Optional[Snapshot],
    current: Snapshot,
    bindings: Sequence[CardBinding] = CARD_BINDINGS,
) -> List[AnimationTask]:
    """Flip tasks for animated cards whose value changed, in binding order."""
    return [b.task_for(current) for b in changed_bindings(previous, current, bindings) if b.animated]
