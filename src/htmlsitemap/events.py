"""Event channel between the host content store and its subscribers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from htmlsitemap.models.events import ContentEvent

    EventHandler = Callable[[ContentEvent], Awaitable[object]]

log = structlog.get_logger()


class EventChannel:
    """Delivers content events to subscribers in subscription order.

    A failing subscriber is logged and does not stop delivery to the rest.
    """

    def __init__(self) -> None:
        self._subscribers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        if handler not in self._subscribers:
            self._subscribers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    async def publish(self, event: ContentEvent) -> list[object]:
        """Deliver *event*; returns each subscriber's result (None on failure)."""
        results: list[object] = []
        for handler in list(self._subscribers):
            try:
                results.append(await handler(event))
            except Exception:
                log.warning(
                    "event_subscriber_failed",
                    event_type=event.type,
                    document_id=event.document_id,
                    exc_info=True,
                )
                results.append(None)
        return results
