"""
Stable facade: aggregation pipeline. Do not add exports without updating __all__.
"""

from __future__ import annotations

from .aggregator import AggregationResult, Aggregator, check_disjoint

# Do not add exports without updating __all__.
__all__ = ["AggregationResult", "Aggregator", "check_disjoint"]
