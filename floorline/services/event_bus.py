from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

Handler = Callable[[dict[str, Any]], None]

# In-process domain events; handlers turn them into relay/push deliveries
ITEMS_SUBMITTED = "order.items.submitted"
ITEM_STATUS_CHANGED = "order.item.status_changed"
ITEM_READY = "order.item.ready"
ORDER_CLOSED = "order.closed"


class EventBus:
    """Synchronous dispatcher. A failing handler is logged and never reaches the emitter."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._logger = logging.getLogger(__name__)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        handlers = list(self._handlers.get(event_name, []))
        if not handlers:
            self._logger.debug("EventBus: no handlers for %s", event_name)
            return
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                self._logger.exception(
                    "EventBus handler %s failed for %s",
                    getattr(handler, "__name__", repr(handler)),
                    event_name,
                    extra={"event": event_name},
                )

    def emit_many(self, events: list[tuple[str, dict[str, Any]]]) -> None:
        for event_name, payload in events:
            self.emit(event_name, payload)

    def subscribe(self, event_name: str, handler: Handler) -> None:
        if handler not in self._handlers[event_name]:
            self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)


event_bus = EventBus()
