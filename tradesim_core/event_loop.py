"""
Event loop: single-writer, in-order event dispatch.

Handlers run in registration order. One dispatch runs to completion before
the next starts, even when several threads publish.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from tradesim_core.events import Event

logger = logging.getLogger(__name__)

Handler = Callable[[Event], None]


class EventLoop:
    """Deterministic dispatcher. No async, no queueing; dispatch is synchronous."""

    def __init__(self) -> None:
        self._handlers: list[Handler] = []
        self._lock = threading.RLock()

    def subscribe(self, handler: Handler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def dispatch(self, event: Event) -> None:
        """Deliver one event to every handler in order."""
        with self._lock:
            handlers = list(self._handlers)
            for h in handlers:
                h(event)

    def run(self, events: Iterable[Event]) -> None:
        """Dispatch a sequence of events in order (replays)."""
        for event in events:
            self.dispatch(event)
