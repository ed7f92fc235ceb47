"""In-process event bus for screening lifecycle events.

The engine publishes ScreeningEvent objects; logging, notification and
audit collaborators subscribe to them. Handlers run synchronously in
publish order.
"""

import logging
from typing import Callable, List

from watchlist.models import ScreeningEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[ScreeningEvent], None]


class EventBus:
    """Fan-out of published events to every subscribed handler."""

    def __init__(self) -> None:
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(self, event: ScreeningEvent) -> None:
        """Deliver an event to all handlers.

        A failing handler is logged and does not stop delivery to the
        others or abort the screening that produced the event.
        """
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed for %s", handler, event.type.value)

    def publish_all(self, events: List[ScreeningEvent]) -> None:
        for event in events:
            self.publish(event)


def log_event(event: ScreeningEvent) -> None:
    """Subscriber that writes every event to the application log."""
    logger.info(
        "event=%s request=%s entity=%s match=%s",
        event.type.value,
        event.request_id,
        event.entity_id,
        event.match_id,
    )
