"""
Delta engine: "what changed since your last visit".

compute_deltas is a pure function over the current snapshot, the stored visit
marker and a fixed tracked-metric list. It never touches storage; saving the
next visit marker is the caller's job (SnapshotStore.save_visit_marker).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .snapshot import Snapshot
from .store.snapshot_store import DEFAULT_VISIT_MIN_GAP_S, VisitMarker

FORMAT_COUNT = "count"
FORMAT_PERCENT = "percent"
FORMAT_SUPPLY = "supply"


@dataclass(frozen=True)
class TrackedMetric:
    key: str
    label: str
    format: str = FORMAT_COUNT


@dataclass(frozen=True)
class DeltaMetric:
    key: str
    label: str
    previous: float
    current: float
    delta: float
    percent_change: float
    direction: str
    format: str

    def as_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "previous": self.previous,
            "current": self.current,
            "delta": self.delta,
            "percentChange": self.percent_change,
            "direction": self.direction,
            "format": self.format,
        }


TRACKED_METRICS: Sequence[TrackedMetric] = (
    TrackedMetric("totalBakers", "Bakers"),
    TrackedMetric("tz4Percentage", "tz4 adoption", FORMAT_PERCENT),
    TrackedMetric("stakingRatio", "Staked", FORMAT_PERCENT),
    TrackedMetric("delegatedRatio", "Delegated", FORMAT_PERCENT),
    TrackedMetric("currentIssuanceRate", "Issuance", FORMAT_PERCENT),
    TrackedMetric("totalSupply", "Supply", FORMAT_SUPPLY),
    TrackedMetric("totalBurned", "Burned", FORMAT_SUPPLY),
    TrackedMetric("transactionVolume24h", "Transactions (24h)"),
    TrackedMetric("fundedAccounts", "Funded accounts"),
    TrackedMetric("smartContracts", "Smart contracts"),
    TrackedMetric("tokens", "Tokens"),
    TrackedMetric("rollups", "Smart rollups"),
)


def compute_deltas(
    current: Snapshot,
    marker: Optional[VisitMarker],
    *,
    now: float,
    min_gap_s: float = DEFAULT_VISIT_MIN_GAP_S,
    tracked: Sequence[TrackedMetric] = TRACKED_METRICS,
) -> Optional[List[DeltaMetric]]:
    """
    Per-metric changes between the visit baseline and `current`.

    Returns None when there is no baseline or it is younger than `min_gap_s`.
    Otherwise returns the (possibly empty) list of metrics whose value changed;
    unchanged metrics are omitted rather than reported with delta 0.
    """
    if marker is None or (now - marker.visit_at) < min_gap_s:
        return None

    out: List[DeltaMetric] = []
    for metric in tracked:
        previous = marker.snapshot.get(metric.key)
        latest = current.get(metric.key)
        if previous is None or latest is None or previous == latest:
            continue
        delta = latest - previous
        out.append(
            DeltaMetric(
                key=metric.key,
                label=metric.label,
                previous=previous,
                current=latest,
                delta=delta,
                percent_change=(delta / previous * 100.0) if previous != 0 else 0.0,
                direction="up" if delta > 0 else "down",
                format=metric.format,
            )
        )
    return out


def format_delta(metric: DeltaMetric) -> str:
    """Signed display text: "+2.5%", "-1.25M", "+1,234"."""
    sign = "+" if metric.delta > 0 else ""
    if metric.format == FORMAT_PERCENT:
        return f"{sign}{metric.delta:.1f}%"
    if metric.format == FORMAT_SUPPLY:
        return f"{sign}{metric.delta / 1_000_000:.2f}M"
    return f"{sign}{metric.delta:,.0f}"


def time_ago(seconds: float) -> str:
    """Header text for the deltas panel, e.g. "2 hours ago"."""
    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 48:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    days = hours // 24
    return f"{days} days ago"
