"""
requests-backed transport.

The blocking requests call runs in a worker thread (asyncio.to_thread) so the
aggregator's fan-out stays cooperative on the event loop.
"""
from __future__ import annotations

import asyncio
from typing import Optional

import requests

from .base import HttpRequest, TransportResponse

HTTP_TIMEOUT_S = 15.0


class RequestsTransport:
    """Send HttpRequests through a shared requests.Session."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout_s = timeout_s

    def _send_blocking(self, request: HttpRequest) -> TransportResponse:
        headers = {"Accept": "application/json", **dict(request.headers)}
        resp = self._session.request(
            request.method.upper(),
            request.url,
            headers=headers,
            timeout=self._timeout_s,
        )
        return TransportResponse(
            status_code=resp.status_code,
            text=resp.text,
            headers=dict(resp.headers),
        )

    async def send(self, request: HttpRequest) -> TransportResponse:
        return await asyncio.to_thread(self._send_blocking, request)

    def close(self) -> None:
        self._session.close()
