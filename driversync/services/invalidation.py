"""Cache/view invalidation signal fired after successful mutations.

Subscribers (page caches, SSE hubs, ...) register a callback per process.
The signal is fire-and-forget: a failing subscriber is logged and the
remaining subscribers still run.
"""

import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

DRIVER_VIEW_PATH = "/driver"


class Invalidator(Protocol):
    """Receives invalidation signals for a logical path."""

    def invalidate(self, path: str) -> None:
        """Signal that views under ``path`` are stale."""


class PathInvalidator:
    """Fan an invalidation signal out to subscribed callbacks."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[str], None]] = []

    def subscribe(self, callback: Callable[[str], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[str], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def invalidate(self, path: str) -> None:
        logger.debug("Invalidating %s (%d subscribers)", path, len(self._subscribers))
        for callback in list(self._subscribers):
            try:
                callback(path)
            except Exception as e:
                logger.warning("Invalidation subscriber failed for %s: %s", path, e)
