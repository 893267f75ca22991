"""Background scheduler coroutine for fragment store cleanup."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from htmlsitemap.state import AppState


async def run_cache_cleanup_scheduler(state: AppState) -> None:
    """Run cache cleanup at startup, then on the configured interval."""
    interval_hours = state.settings.cache.cleanup_interval_hours

    # Startup run is skipped if cleanup ran recently, e.g. before a restart.
    await state.cache.cleanup_if_due(interval_hours)

    while True:
        await asyncio.sleep(interval_hours * 3600)
        await state.cache.cleanup_if_due(interval_hours)
