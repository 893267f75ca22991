"""Unit tests for htmlsitemap.admin (settings record administration)."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest

from htmlsitemap.admin import (
    sanitize_settings,
    save_settings,
    selectable_kinds,
    stored_settings_view,
    uninstall,
)
from htmlsitemap.errors import ErrorCode, SitemapError
from htmlsitemap.fingerprint import FRAGMENT_KEY_PREFIX
from htmlsitemap.invalidation import COOLDOWN_SENTINEL_KEY
from htmlsitemap.models.content import ContentKind
from htmlsitemap.sources.memory import InMemoryContentSource

if TYPE_CHECKING:
    from htmlsitemap.cache import Cache

KINDS = [
    ContentKind(tag="page", label="Pages", hierarchical=True),
    ContentKind(tag="post", label="Posts"),
    ContentKind(tag="attachment", label="Media"),
    ContentKind(tag="elementor_library", label="Templates"),
]
KEY = FRAGMENT_KEY_PREFIX + "abc"


class TestSanitize:
    def test_full_record(self) -> None:
        settings = sanitize_settings(
            {
                "included_kinds": ["Page", "ghost", "post"],
                "excluded_ids": "4, 5 x 4",
                "hierarchical": "",
                "max_depth": "70",
                "sort_order": "recent",
                "exclude_noindex": "on",
                "cache_ttl_minutes": -10,
            },
            KINDS,
        )
        assert settings.included_kinds == ["page", "post"]
        assert settings.excluded_ids == [4, 5]
        assert settings.hierarchical is False
        assert settings.max_depth == 50
        assert settings.sort_order == "recent"
        assert settings.exclude_noindex is True
        assert settings.cache_ttl_minutes == 0

    def test_empty_record_gets_defaults(self) -> None:
        settings = sanitize_settings({}, KINDS)
        assert settings.included_kinds == []
        assert settings.hierarchical is True
        assert settings.max_depth == 20
        assert settings.cache_ttl_minutes == 60

    def test_unknown_sort_order_falls_back(self) -> None:
        assert sanitize_settings({"sort_order": "newest"}, KINDS).sort_order == "alphabetical"

    @pytest.mark.parametrize("raw", [None, "max_depth=3", [1, 2]])
    def test_non_object_rejected(self, raw: object) -> None:
        with pytest.raises(SitemapError) as exc_info:
            sanitize_settings(raw, KINDS)
        assert exc_info.value.code == ErrorCode.INVALID_SETTINGS


class TestSelectableKinds:
    async def test_builder_and_attachment_kinds_hidden(self) -> None:
        source = InMemoryContentSource(KINDS)
        assert [k.tag for k in await selectable_kinds(source)] == ["page", "post"]


class TestPersistence:
    async def test_save_persists_and_purges(self, cache: Cache) -> None:
        source = InMemoryContentSource(KINDS)
        await cache.put(KEY, "stale", ttl_seconds=3600)
        await cache.put(COOLDOWN_SENTINEL_KEY, "recent", ttl_seconds=60)

        saved = await save_settings(
            {"included_kinds": ["post"], "max_depth": 3},
            store=cache,
            fragments=cache,
            source=source,
        )

        assert saved.included_kinds == ["post"]
        assert (await cache.load_settings() or {})["max_depth"] == 3
        # Saving bypasses the cool-down
        assert await cache.get(KEY) is None

    async def test_save_failure_raises(self, cache: Cache) -> None:
        source = InMemoryContentSource(KINDS)
        await cache.put(KEY, "kept", ttl_seconds=3600)
        with (
            patch.object(cache, "save_settings", new=AsyncMock(return_value=False)),
            pytest.raises(SitemapError) as exc_info,
        ):
            await save_settings({}, store=cache, fragments=cache, source=source)
        assert exc_info.value.code == ErrorCode.STORE_UNAVAILABLE
        assert await cache.get(KEY) is not None

    async def test_view_fills_defaults(self, cache: Cache) -> None:
        view = await stored_settings_view(cache)
        assert view.max_depth == 20
        await cache.save_settings({"max_depth": 8, "sort_order": "recent"})
        view = await stored_settings_view(cache)
        assert view.max_depth == 8
        assert view.sort_order == "recent"

    async def test_uninstall_removes_everything(self, cache: Cache) -> None:
        await cache.save_settings({"max_depth": 8})
        await cache.put(KEY, "fragment", ttl_seconds=3600)

        await uninstall(cache, cache)

        assert await cache.load_settings() is None
        assert await cache.get(KEY) is None
