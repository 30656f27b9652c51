"""Headless visual surfaces: log card text, and remember what is currently shown."""

from __future__ import annotations

import logging
from typing import Dict

logger = logging.getLogger(__name__)


class LoggingSurface:
    """Surface for the CLI poller: back-face writes at debug, settled values at info."""

    def __init__(self) -> None:
        self.front: Dict[str, str] = {}
        self.back: Dict[str, str] = {}

    def show_back(self, field_id: str, text: str) -> None:
        self.back[field_id] = text
        logger.debug("%s flipping to %s", field_id, text)

    def show_front(self, field_id: str, text: str) -> None:
        previous = self.front.get(field_id)
        self.front[field_id] = text
        if previous is None:
            logger.info("%s: %s", field_id, text)
        else:
            logger.info("%s: %s -> %s", field_id, previous, text)
