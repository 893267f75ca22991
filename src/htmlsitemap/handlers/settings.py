"""Handlers for the stored settings record.

No Starlette imports; server.py handles the HTTP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from htmlsitemap.admin import save_settings, selectable_kinds, stored_settings_view, uninstall

if TYPE_CHECKING:
    from htmlsitemap.state import AppState


async def handle_get(state: AppState) -> dict:
    """Return the stored settings and the kinds the form offers."""
    structlog.get_logger().bind(handler="get_settings").info("handler_called")
    settings = await stored_settings_view(state.cache)
    kinds = await selectable_kinds(state.source)
    return {
        "settings": settings.model_dump(),
        "selectable_kinds": [kind.model_dump() for kind in kinds],
    }


async def handle_put(payload: Any, state: AppState) -> dict:
    """Sanitize and save a submitted record. Purges every fragment."""
    structlog.get_logger().bind(handler="put_settings").info("handler_called")
    settings = await save_settings(
        payload, store=state.cache, fragments=state.cache, source=state.source
    )
    return {"settings": settings.model_dump()}


async def handle_delete(state: AppState) -> dict:
    """Remove the settings record and all fragments."""
    structlog.get_logger().bind(handler="delete_settings").info("handler_called")
    await uninstall(state.cache, state.cache)
    return {"deleted": True}
