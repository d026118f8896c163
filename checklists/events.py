"""Observer bus for completion events fired by the store facade."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Callable

logger = logging.getLogger(__name__)

CHECKLIST_ADDED = "checklist_added"
CHECKLIST_EDITED = "checklist_edited"
CHECKLIST_REMOVED = "checklist_removed"
ITEM_ADDED = "item_added"
ITEM_EDITED = "item_edited"
ITEM_REMOVED = "item_removed"
EDIT_CANCELLED = "edit_cancelled"
REMINDER_FIRED = "reminder_fired"

ALL_EVENTS = frozenset({
    CHECKLIST_ADDED,
    CHECKLIST_EDITED,
    CHECKLIST_REMOVED,
    ITEM_ADDED,
    ITEM_EDITED,
    ITEM_REMOVED,
    EDIT_CANCELLED,
    REMINDER_FIRED,
})


class EventBus:
    """Synchronous publish/subscribe bus.

    Handlers run in subscription order and receive the payload as keyword
    arguments. A failing handler is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable[..., Any]]] = {}
        self._lock = RLock()

    def subscribe(self, event: str, handler: Callable[..., Any]) -> None:
        """Subscribe a handler to an event.

        Args:
            event: One of the event names above (any string is accepted).
            handler: Callable taking the event payload as keyword arguments.
                Subscribing the same handler twice has no effect.
        """
        with self._lock:
            handlers = self._handlers.setdefault(event, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.debug("Subscribed %s to '%s'", handler, event)

    def unsubscribe(self, event: str, handler: Callable[..., Any]) -> None:
        """Remove a handler; unknown handlers are ignored."""
        with self._lock:
            handlers = self._handlers.get(event)
            if not handlers:
                return
            if handler in handlers:
                handlers.remove(handler)
                logger.debug("Unsubscribed %s from '%s'", handler, event)
            if not handlers:
                del self._handlers[event]

    def emit(self, event: str, **payload: Any) -> list[Any]:
        """Call every handler subscribed to ``event``.

        Args:
            event: Event name.
            **payload: Entities the event is about, such as ``checklist``,
                ``item`` or ``reminder``.

        Returns:
            Handler return values in subscription order. A handler that
            raised contributes nothing.
        """
        with self._lock:
            handlers = list(self._handlers.get(event, []))
        logger.debug("Emitting '%s' to %d handlers", event, len(handlers))
        results: list[Any] = []
        for handler in handlers:
            try:
                results.append(handler(**payload))
            except Exception:
                logger.exception("Handler %s failed for event '%s'", handler, event)
        return results
