"""
Stable facade: render layer (formatters, card bindings, scheduler).
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .cards import CARD_BINDINGS, CardBinding, changed_bindings, plan_updates
from .formatters import (
    MISSING,
    format_count,
    format_large,
    format_number,
    format_percentage,
    format_supply,
    format_xtz,
)
from .scheduler import AnimationTask, RenderScheduler, VisualSurface
from .surface import LoggingSurface

# Do not add exports without updating __all__.
__all__ = [
    "AnimationTask",
    "CARD_BINDINGS",
    "CardBinding",
    "LoggingSurface",
    "MISSING",
    "RenderScheduler",
    "VisualSurface",
    "changed_bindings",
    "format_count",
    "format_large",
    "format_number",
    "format_percentage",
    "format_supply",
    "format_xtz",
    "plan_updates",
]
