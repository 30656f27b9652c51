"""
Display formatters for card values. Each takes a number and returns text;
non-finite or missing input renders as "---".
"""

from __future__ import annotations

import math
from typing import Any, Optional

MISSING = "---"

_ABBREVIATIONS = ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K"))


def _finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def format_number(value: Any, *, decimals: int = 2, abbreviate: bool = True) -> str:
    """1234567 -> "1.23M"; with abbreviate=False -> "1,234,567" (trailing zeros dropped)."""
    num = _finite(value)
    if num is None:
        return MISSING
    if abbreviate:
        for threshold, symbol in _ABBREVIATIONS:
            if abs(num) >= threshold:
                return f"{num / threshold:.{decimals}f}{symbol}"
    text = f"{num:,.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_count(value: Any) -> str:
    return format_number(value, decimals=0, abbreviate=False)


def format_percentage(value: Any, decimals: int = 2) -> str:
    num = _finite(value)
    if num is None:
        return MISSING
    return f"{num:.{decimals}f}%"


def format_large(value: Any) -> str:
    return format_number(value, decimals=2, abbreviate=True)


def format_supply(value: Any) -> str:
    """Total supply in XTZ: "1.05B", "987.65M", below that abbreviated without decimals."""
    num = _finite(value)
    if num is None:
        return MISSING
    if num >= 1e9:
        return f"{num / 1e9:.2f}B"
    if num >= 1e6:
        return f"{num / 1e6:.2f}M"
    return format_number(num, decimals=0, abbreviate=True)


def format_xtz(value: Any) -> str:
    text = format_number(value, decimals=2)
    return text if text == MISSING else f"{text} XTZ"
