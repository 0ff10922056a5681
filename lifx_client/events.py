"""Observer-style notification channel.

Clients publish things that are not scoped to a single call here: inbound
datagrams (``"message"``), socket faults (``"error"``) and REST results
(``"results"``).
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

from loguru import logger

EventHandler = Callable[..., Any]


class EventChannel:
    """Named events with synchronous, registration-ordered delivery."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def on(self, event: str, handler: EventHandler) -> None:
        """Register *handler* for *event*."""
        self._handlers[event].append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove one registration of *handler*; unknown handlers are ignored."""
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def emit(self, event: str, *args: Any) -> int:
        """Deliver *args* to every handler of *event*.

        Returns the number of handlers called.  A failing handler is logged
        and does not prevent delivery to the others.
        """
        # Copy: handlers may unregister themselves while being called.
        handlers = list(self._handlers.get(event, ()))
        for handler in handlers:
            try:
                handler(*args)
            except Exception as exc:
                logger.error("[Events] {!r} handler error: {}", event, exc)
        return len(handlers)
