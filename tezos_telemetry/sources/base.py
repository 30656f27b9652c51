"""
Source adapter boundary.

An adapter is an async function producing a partial snapshot fragment (metric
key -> value) for one concern. Wrapping it with @source_adapter gives it:

- a declared, immutable set of owned snapshot fields (checked by the aggregator
  for disjointness),
- a documented fallback fragment used when it fails,
- the boundary contract: FetchError / PayloadError become Failed(reason) and
  never propagate. Anything else is a bug and escapes to the aggregator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from ..core.errors import FetchError, FieldOwnershipError, PayloadError
from ..providers.base import AdapterResult, Failed, Ok
from ..snapshot import default_values, is_metric_key

logger = logging.getLogger(__name__)

Fragment = Dict[str, Any]


@dataclass(frozen=True)
class SourceAdapter:
    """A named adapter with its owned fields and fallback fragment."""

    name: str
    fields: FrozenSet[str]
    fallback: Mapping[str, Any]
    func: Callable[..., Awaitable[Fragment]] = field(repr=False)

    async def __call__(self, *args: Any, **kwargs: Any) -> AdapterResult[Fragment]:
        try:
            fragment = await self.func(*args, **kwargs)
        except (FetchError, PayloadError) as exc:
            reason = f"{type(exc).__name__}: {exc}"
            logger.warning("Source %s failed, using defaults: %s", self.name, reason)
            return Failed(reason)
        extra = set(fragment) - self.fields
        if extra:
            raise FieldOwnershipError(
                f"Source {self.name} produced fields it does not own: {sorted(extra)}"
            )
        return Ok(dict(fragment))


def source_adapter(
    name: str,
    fields: Iterable[str],
    *,
    fallback: Optional[Mapping[str, Any]] = None,
) -> Callable[[Callable[..., Awaitable[Fragment]]], SourceAdapter]:
    """Declare an adapter: its name, owned metric keys and fallback overrides."""
    owned = frozenset(fields)
    unknown = sorted(k for k in owned if not is_metric_key(k))
    if unknown:
        raise FieldOwnershipError(f"Source {name} claims unknown snapshot fields: {unknown}")
    merged_fallback = {**default_values(owned), **dict(fallback or {})}

    def decorate(func: Callable[..., Awaitable[Fragment]]) -> SourceAdapter:
        return SourceAdapter(name=name, fields=owned, fallback=merged_fallback, func=func)

    return decorate


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def safe_get(d: Any, path: str, default: Any = None) -> Any:
    cur: Any = d
    for key in path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def to_float(x: Any) -> Optional[float]:
    if x is None:
        return None
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


def to_int(x: Any) -> Optional[int]:
    if x is None:
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


def require_int(x: Any, what: str) -> int:
    value = to_int(unquote(x) if isinstance(x, str) else x)
    if value is None:
        raise PayloadError(f"{what}: expected an integer, got {x!r}")
    return value


def require_float(x: Any, what: str) -> float:
    value = to_float(unquote(x) if isinstance(x, str) else x)
    if value is None:
        raise PayloadError(f"{what}: expected a number, got {x!r}")
    return value


def require_dict(x: Any, what: str) -> Dict[str, Any]:
    if not isinstance(x, dict):
        raise PayloadError(f"{what}: expected an object, got {type(x).__name__}")
    return x


def require_list(x: Any, what: str) -> list:
    if not isinstance(x, list):
        raise PayloadError(f"{what}: expected a list, got {type(x).__name__}")
    return x


def unquote(text: str) -> str:
    """Octez RPC returns scalars as JSON strings ("12345"); strip the quotes."""
    return text.strip().strip('"')


def percentage(part: float, total: float) -> float:
    if not total:
        return 0.0
    return (part / total) * 100.0
