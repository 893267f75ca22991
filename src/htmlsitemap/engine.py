"""Sitemap rendering engine.

One ``render()`` call: resolve the effective configuration, look the
fragment up under its fingerprint, and on a miss select, walk and render
every kind, then store the result for ``cache_ttl_minutes``.

The engine is constructed explicitly by the embedding application and
holds no per-render state; concurrent renders share only the fragment
store, where the last writer wins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from htmlsitemap.fingerprint import fragment_key
from htmlsitemap.render import (
    UNAVAILABLE_NOTICE,
    render_flat_list,
    render_fragment,
    render_section,
    render_tree,
)
from htmlsitemap.resolver import resolve_config
from htmlsitemap.resources import process_memory_bytes
from htmlsitemap.selector import DocumentSelector
from htmlsitemap.walker import TreeWalker

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from htmlsitemap.models.config import EffectiveConfig
    from htmlsitemap.models.content import ContentKind
    from htmlsitemap.protocols import (
        ContentSourceProtocol,
        FragmentStoreProtocol,
        SettingsStoreProtocol,
    )


class SitemapEngine:
    """Renders sitemap fragments from a content source, memoized in a fragment store."""

    def __init__(
        self,
        source: ContentSourceProtocol,
        fragments: FragmentStoreProtocol,
        settings_store: SettingsStoreProtocol,
        *,
        memory_ceiling_bytes: int | None = None,
        memory_probe: Callable[[], int] = process_memory_bytes,
    ) -> None:
        self._source = source
        self._fragments = fragments
        self._settings_store = settings_store
        self._memory_ceiling = memory_ceiling_bytes
        self._memory_probe = memory_probe

    async def resolve(self, attributes: Mapping[str, Any] | None = None) -> EffectiveConfig:
        """Effective configuration for a render with these placeholder attributes."""
        stored = await self._settings_store.load_settings()
        return resolve_config(stored, attributes)

    async def render(self, attributes: Mapping[str, Any] | None = None) -> str:
        """Render the sitemap fragment for one placeholder invocation.

        Never raises for content store, fragment store or configuration
        problems; see the module docstring for the fallbacks.
        """
        log = structlog.get_logger().bind(component="engine")

        if self._memory_exceeded():
            log.warning("render_aborted", reason="memory_pressure")
            return UNAVAILABLE_NOTICE

        config = await self.resolve(attributes)
        selector = DocumentSelector(self._source, config)
        kinds = await selector.kinds()
        key = fragment_key(config, [kind.tag for kind in kinds])
        caching = config.cache_ttl_minutes > 0

        if caching:
            entry = await self._fragments.get(key)
            if entry is not None:
                log.info("cache_hit", key=key)
                return entry.fragment
            log.info("cache_miss", key=key)

        sections: list[str] = []
        truncated = False
        seen: set[int] = set()
        for kind in kinds:
            if self._memory_exceeded():
                log.warning("render_truncated", reason="memory_pressure", stopped_at=kind.tag)
                truncated = True
                break
            body = await self._render_kind(selector, kind, config, seen)
            if body:
                sections.append(render_section(kind, body))

        fragment = render_fragment(sections)

        if not caching or truncated:
            cached = False
        elif selector.degraded and not sections:
            log.warning("cache_write_skipped", reason="content_source_degraded", key=key)
            cached = False
        else:
            await self._fragments.put(key, fragment, config.cache_ttl_minutes * 60)
            cached = True

        log.info(
            "render_complete",
            kinds=len(kinds),
            sections=len(sections),
            degraded=selector.degraded,
            truncated=truncated,
            cached=cached,
            size=len(fragment),
        )
        return fragment

    async def _render_kind(
        self,
        selector: DocumentSelector,
        kind: ContentKind,
        config: EffectiveConfig,
        seen: set[int],
    ) -> str:
        if config.hierarchical and kind.hierarchical:
            walker = TreeWalker(selector, kind, config.max_depth, seen=seen)
            return render_tree(await walker.walk())
        return render_flat_list(await selector.select_flat(kind))

    def _memory_exceeded(self) -> bool:
        if self._memory_ceiling is None:
            return False
        return self._memory_probe() > self._memory_ceiling
