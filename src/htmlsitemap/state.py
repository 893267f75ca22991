"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and read by every HTTP handler from ``request.app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from htmlsitemap.engine import SitemapEngine
from htmlsitemap.events import EventChannel
from htmlsitemap.invalidation import InvalidationController

if TYPE_CHECKING:
    from htmlsitemap.cache import Cache
    from htmlsitemap.config import Settings
    from htmlsitemap.protocols import ContentSourceProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every handler."""

    settings: Settings
    cache: Cache
    source: ContentSourceProtocol
    engine: SitemapEngine
    controller: InvalidationController
    channel: EventChannel


def build_state(settings: Settings, cache: Cache, source: ContentSourceProtocol) -> AppState:
    """Wire the engine, invalidation controller and event channel around *cache* and *source*."""
    engine = SitemapEngine(
        source,
        cache,
        cache,
        memory_ceiling_bytes=settings.render.memory_ceiling_bytes,
    )
    controller = InvalidationController(
        cache, cooldown_seconds=settings.cache.invalidation_cooldown_seconds
    )
    channel = EventChannel()
    channel.subscribe(controller.handle)
    return AppState(
        settings=settings,
        cache=cache,
        source=source,
        engine=engine,
        controller=controller,
        channel=channel,
    )
