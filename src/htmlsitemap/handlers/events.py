"""Handler for content change notifications from the host content store.

No Starlette imports; server.py handles the HTTP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from htmlsitemap.errors import ErrorCode, SitemapError
from htmlsitemap.models.events import ContentEvent

if TYPE_CHECKING:
    from htmlsitemap.state import AppState


async def handle(payload: Any, state: AppState) -> dict:
    """Validate and publish one content event."""
    log = structlog.get_logger().bind(handler="content_event")
    log.info("handler_called")

    try:
        event = ContentEvent.model_validate(payload)
    except ValidationError as exc:
        raise SitemapError(
            code=ErrorCode.INVALID_EVENT,
            message=str(exc),
            suggestion=(
                "Send an object with type in created, updated, deleted, meta_updated "
                "and an optional document_id and meta_key."
            ),
            recoverable=False,
        ) from exc

    results = await state.channel.publish(event)
    invalidated = any(result is True for result in results)
    log.info("event_published", event_type=event.type, invalidated=invalidated)
    return {"accepted": True, "invalidated": invalidated}
