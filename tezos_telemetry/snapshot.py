"""
Network snapshot: one complete, immutable merged reading of all tracked metrics.

Attributes are snake_case; the presentation layer and persisted JSON use the
camelCase metric keys (``totalBakers``, ``stakingRatio``, ...). Every field has a
documented default so a snapshot never lacks a key, even when the adapter that
owns the field failed.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Iterable, Mapping, Optional

NA = "N/A"


@dataclass(frozen=True)
class Snapshot:
    """Immutable merged reading. Superseded by the next aggregation run, never mutated."""

    # Consensus
    total_bakers: int = 0
    tz4_bakers: int = 0
    tz4_percentage: float = 0.0
    cycle: int = 0
    cycle_progress: float = 0.0
    cycle_time_remaining: str = NA

    # Governance
    proposal: str = NA
    proposal_description: str = ""
    voting_period: str = NA
    voting_description: str = ""
    participation: float = 0.0
    participation_description: str = ""

    # Economy
    current_issuance_rate: float = 0.0
    protocol_issuance_rate: float = 0.0
    lb_issuance_rate: float = 0.0
    total_supply: float = 0.0
    total_burned: float = 0.0
    staking_ratio: float = 0.0
    delegated_ratio: float = 0.0
    delegate_apy: float = 0.0
    stake_apy: float = 0.0

    # Network activity
    transaction_volume_24h: int = 0
    contract_calls_24h: int = 0
    funded_accounts: int = 0

    # Ecosystem
    smart_contracts: int = 0
    tokens: int = 0
    rollups: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Metric-key dict (camelCase), as persisted and handed to the presentation layer."""
        return {METRIC_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        """Build from metric keys or attribute names. Unknown keys are ignored; missing keys keep defaults."""
        values: Dict[str, Any] = {}
        for key, value in data.items():
            attr = ATTRIBUTE_NAMES.get(key, key if key in METRIC_KEYS else None)
            if attr is None or value is None:
                continue
            values[attr] = _coerce(attr, value)
        return cls(**values)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up by metric key (``stakingRatio``) or attribute name (``staking_ratio``)."""
        attr = ATTRIBUTE_NAMES.get(key, key)
        if attr not in METRIC_KEYS:
            return default
        return getattr(self, attr)

    def merged(self, updates: Mapping[str, Any]) -> "Snapshot":
        """Return a new snapshot with the given metric keys replaced."""
        return replace(self, **{ATTRIBUTE_NAMES[k]: _coerce(ATTRIBUTE_NAMES[k], v) for k, v in updates.items()})


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    out = head + "".join(p[:1].upper() + p[1:] for p in rest)
    # delegate_apy -> delegateAPY
    return out.replace("Apy", "APY")


METRIC_KEYS: Dict[str, str] = {f.name: _camel(f.name) for f in fields(Snapshot)}
ATTRIBUTE_NAMES: Dict[str, str] = {v: k for k, v in METRIC_KEYS.items()}
_FIELD_TYPES: Dict[str, Any] = {f.name: f.type for f in fields(Snapshot)}


def _coerce(attr: str, value: Any) -> Any:
    kind = _FIELD_TYPES[attr]
    if kind == "int":
        return int(value)
    if kind == "float":
        return float(value)
    return str(value)


def default_values(keys: Iterable[str]) -> Dict[str, Any]:
    """Documented defaults for the given metric keys (what a failed adapter contributes)."""
    base = Snapshot()
    return {k: base.get(k) for k in keys}


def is_metric_key(key: str) -> bool:
    return key in ATTRIBUTE_NAMES


def snapshot_or_none(data: Optional[Mapping[str, Any]]) -> Optional[Snapshot]:
    if not isinstance(data, Mapping):
        return None
    return Snapshot.from_dict(data)
