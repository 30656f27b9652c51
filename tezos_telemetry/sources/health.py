"""Upstream reachability check. Bypasses the fetch cache and retry policy on purpose: one probe each."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict

from ..providers.base import HttpRequest, Transport
from .endpoints import Endpoints

logger = logging.getLogger(__name__)


async def _probe(transport: Transport, url: str) -> bool:
    try:
        resp = await transport.send(HttpRequest(url))
    except Exception as exc:
        logger.debug("Health probe failed for %s: %s", url, exc)
        return False
    return resp.ok


async def check_api_health(transport: Transport, endpoints: Endpoints) -> Dict[str, bool]:
    """Return {"tzkt": bool, "octez": bool}."""
    tzkt_ok, octez_ok = await asyncio.gather(
        _probe(transport, endpoints.tzkt_head()),
        _probe(transport, endpoints.rpc_header()),
    )
    return {"tzkt": tzkt_ok, "octez": octez_ok}
