"""
gateway/dispatch.py — Event Dispatch Table

Maps an event-type name (the `t` of a Dispatch frame) to exactly one
handler. Registering a name twice replaces the first handler; dispatching
a name with no handler is a silent no-op.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from cordlink.observability.logger import get_logger

log = get_logger(__name__)

EventHandler = Callable[[Any], Any]


class EventDispatchTable:
    """Single-handler-per-event registry. Last writer wins."""

    def __init__(self) -> None:
        self._handlers: dict[str, EventHandler] = {}

    def register(self, event_name: str, handler: EventHandler) -> None:
        if not callable(handler):
            raise TypeError(f"handler for {event_name!r} is not callable")
        if event_name in self._handlers:
            log.debug("dispatch.handler_replaced", event_name=event_name)
        self._handlers[event_name] = handler

    def unregister(self, event_name: str) -> bool:
        """Remove the handler for event_name. Returns True if one existed."""
        return self._handlers.pop(event_name, None) is not None

    def get(self, event_name: str) -> Optional[EventHandler]:
        return self._handlers.get(event_name)

    def dispatch(self, event_name: str, payload: Any) -> Any:
        """
        Invoke the handler for event_name with payload, unchanged.

        Returns whatever the handler returns (possibly an awaitable; the
        caller decides whether to await it), or None when nothing is
        registered.
        """
        handler = self._handlers.get(event_name)
        if handler is None:
            return None
        return handler(payload)

    def __contains__(self, event_name: object) -> bool:
        return event_name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
