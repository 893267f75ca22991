"""Unit tests for htmlsitemap.invalidation."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest

from htmlsitemap.fingerprint import FRAGMENT_KEY_PREFIX
from htmlsitemap.invalidation import (
    COOLDOWN_SENTINEL_KEY,
    InvalidationController,
    is_seo_meta_key,
)
from htmlsitemap.models.events import ContentEvent

if TYPE_CHECKING:
    from htmlsitemap.cache import Cache

KEY = FRAGMENT_KEY_PREFIX + "abc"


class TestQualifyingKeys:
    @pytest.mark.parametrize(
        "meta_key",
        [
            "_yoast_wpseo_title",
            "rank_math_robots",
            "_SEOPRESS_robots_index",
            "custom_noindex",
            "robots",
        ],
    )
    def test_seo_keys_qualify(self, meta_key: str) -> None:
        assert is_seo_meta_key(meta_key)

    @pytest.mark.parametrize("meta_key", ["_edit_lock", "_thumbnail_id", "", None])
    def test_other_keys_do_not_qualify(self, meta_key: str | None) -> None:
        assert not is_seo_meta_key(meta_key)

    def test_overlong_key_does_not_qualify(self) -> None:
        assert not is_seo_meta_key("yoast" + "x" * 251)


class TestController:
    @pytest.mark.parametrize("event_type", ["created", "updated", "deleted"])
    async def test_document_changes_purge(self, cache: Cache, event_type: str) -> None:
        await cache.put(KEY, "fragment", ttl_seconds=3600)
        controller = InvalidationController(cache)

        purged = await controller.handle(ContentEvent(type=event_type, document_id=1))

        assert purged is True
        assert await cache.get(KEY) is None
        assert await cache.get(COOLDOWN_SENTINEL_KEY) is not None

    async def test_irrelevant_meta_change_is_ignored(self, cache: Cache) -> None:
        await cache.put(KEY, "fragment", ttl_seconds=3600)
        controller = InvalidationController(cache)

        event = ContentEvent(type="meta_updated", document_id=1, meta_key="_edit_lock")
        assert await controller.handle(event) is False
        assert await cache.get(KEY) is not None

    async def test_seo_meta_change_purges(self, cache: Cache) -> None:
        await cache.put(KEY, "fragment", ttl_seconds=3600)
        controller = InvalidationController(cache)

        event = ContentEvent(type="meta_updated", document_id=1, meta_key="rank_math_robots")
        assert await controller.handle(event) is True
        assert await cache.get(KEY) is None

    async def test_second_event_within_cooldown_is_dropped(self, cache: Cache) -> None:
        controller = InvalidationController(cache, cooldown_seconds=60)
        assert await controller.handle(ContentEvent(type="updated", document_id=1)) is True

        await cache.put(KEY, "fresh fragment", ttl_seconds=3600)
        assert await controller.handle(ContentEvent(type="updated", document_id=2)) is False
        assert await cache.get(KEY) is not None

    async def test_purge_allowed_again_after_cooldown(self, cache: Cache) -> None:
        controller = InvalidationController(cache, cooldown_seconds=60)
        await controller.handle(ContentEvent(type="updated", document_id=1))

        # Simulate the cool-down elapsing
        await cache._db.execute(
            "DELETE FROM fragment_cache WHERE key = ?", (COOLDOWN_SENTINEL_KEY,)
        )
        await cache._db.commit()

        await cache.put(KEY, "fragment", ttl_seconds=3600)
        assert await controller.handle(ContentEvent(type="deleted", document_id=1)) is True
        assert await cache.get(KEY) is None

    async def test_zero_cooldown_never_drops(self, cache: Cache) -> None:
        controller = InvalidationController(cache, cooldown_seconds=0)
        assert await controller.handle(ContentEvent(type="updated")) is True
        assert await controller.handle(ContentEvent(type="updated")) is True

    async def test_sentinel_written_after_purge(self, cache: Cache) -> None:
        controller = InvalidationController(cache)
        calls: list[str] = []

        async def record_purge() -> None:
            calls.append("purge")

        async def record_put(key: str, fragment: str, ttl_seconds: int) -> None:
            calls.append(f"put:{key}:{ttl_seconds}")

        with (
            patch.object(cache, "purge_all", new=AsyncMock(side_effect=record_purge)),
            patch.object(cache, "put", new=AsyncMock(side_effect=record_put)),
        ):
            await controller.handle(ContentEvent(type="created", document_id=3))

        assert calls == ["purge", f"put:{COOLDOWN_SENTINEL_KEY}:60"]
