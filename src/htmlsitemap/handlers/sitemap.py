"""Handlers for sitemap rendering and placeholder expansion.

Receive AppState, delegate to the engine, and return the rendered HTML.
No Starlette imports; server.py handles the HTTP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from htmlsitemap.resolver import OVERRIDE_ATTRIBUTES
from htmlsitemap.shortcode import expand_placeholders

if TYPE_CHECKING:
    from collections.abc import Mapping

    from htmlsitemap.state import AppState


async def handle_render(params: Mapping[str, str], state: AppState) -> str:
    """Render the sitemap for one set of placeholder attributes."""
    attributes = {key: params[key] for key in OVERRIDE_ATTRIBUTES if key in params}
    log = structlog.get_logger().bind(handler="render_sitemap", **attributes)
    log.info("handler_called")
    return await state.engine.render(attributes)


async def handle_expand(page: str, state: AppState) -> str:
    """Expand every placeholder in a page body."""
    log = structlog.get_logger().bind(handler="expand_placeholders", page_length=len(page))
    log.info("handler_called")
    return await expand_placeholders(page, state.engine)
