"""Unit tests for htmlsitemap.sources.sqlite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock, patch

import aiosqlite
import pytest

from htmlsitemap.errors import ErrorCode, SitemapError
from htmlsitemap.models.content import ANY_PARENT, ContentKind
from htmlsitemap.sources.sqlite import SqliteContentSource

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@pytest.fixture()
async def content() -> AsyncGenerator[SqliteContentSource, None]:
    async with aiosqlite.connect(":memory:") as db:
        source = SqliteContentSource(db)
        await source.init_schema()
        await source.upsert_kind(ContentKind(tag="page", label="Pages", hierarchical=True), 0)
        await source.upsert_kind(ContentKind(tag="post", label="Posts"), 1)
        await source.upsert_kind(ContentKind(tag="secret", label="Secret", public=False), 2)

        def at(day: int) -> datetime:
            return datetime(2024, 3, day, tzinfo=UTC)

        await source.upsert_document(id=1, kind="page", title="Home", url="/", published_at=at(1))
        await source.upsert_document(
            id=2, kind="page", title="About", url="/about", published_at=at(2), parent_id=1
        )
        await source.upsert_document(
            id=3, kind="page", title="Zero", url="/zero", published_at=at(3), parent_id=0
        )
        await source.upsert_document(
            id=4, kind="page", title="Self", url="/self", published_at=at(4), parent_id=4
        )
        await source.upsert_document(
            id=5, kind="page", title="Draft", url="/draft", published_at=at(5), status="draft"
        )
        await source.upsert_document(id=10, kind="post", title="b", url="/b", published_at=at(6))
        await source.upsert_document(id=11, kind="post", title="B", url="/B", published_at=at(7))
        await source.upsert_document(id=12, kind="post", title="a", url="/a", published_at=at(7))
        yield source


async def test_public_kinds_in_position_order(content: SqliteContentSource) -> None:
    kinds = await content.list_public_kinds()
    assert [k.tag for k in kinds] == ["page", "post"]
    assert kinds[0].hierarchical is True


async def test_kind_exists(content: SqliteContentSource) -> None:
    assert await content.kind_exists("secret") is True
    assert await content.kind_exists("ghost") is False


async def test_roots_include_zero_and_self_parents(content: SqliteContentSource) -> None:
    docs = await content.list_documents("page", None, frozenset(), "alphabetical", 10)
    assert [d.id for d in docs] == [1, 4, 3]
    assert all(d.parent_id is None for d in docs)


async def test_children_of_parent(content: SqliteContentSource) -> None:
    docs = await content.list_documents("page", 1, frozenset(), "alphabetical", 10)
    assert [d.title for d in docs] == ["About"]


async def test_self_parent_not_listed_as_own_child(content: SqliteContentSource) -> None:
    assert await content.list_documents("page", 4, frozenset(), "alphabetical", 10) == []


async def test_any_parent_lists_all_published(content: SqliteContentSource) -> None:
    docs = await content.list_documents("page", ANY_PARENT, frozenset(), "alphabetical", 10)
    assert [d.title for d in docs] == ["About", "Home", "Self", "Zero"]


async def test_exclusions_and_limit(content: SqliteContentSource) -> None:
    docs = await content.list_documents("page", ANY_PARENT, frozenset({2, 4}), "alphabetical", 1)
    assert [d.title for d in docs] == ["Home"]


async def test_binary_title_order(content: SqliteContentSource) -> None:
    docs = await content.list_documents("post", ANY_PARENT, frozenset(), "alphabetical", 10)
    assert [d.title for d in docs] == ["B", "a", "b"]


async def test_recent_order_ties_by_id_descending(content: SqliteContentSource) -> None:
    docs = await content.list_documents("post", ANY_PARENT, frozenset(), "recent", 10)
    assert [d.id for d in docs] == [12, 11, 10]


async def test_index_metadata_limited_to_policy_keys(content: SqliteContentSource) -> None:
    await content.set_meta(1, "rank_math_robots", 'a:1:{i:0;s:7:"noindex";}')
    await content.set_meta(1, "_edit_lock", "123")
    assert await content.get_index_metadata(1) == {
        "rank_math_robots": 'a:1:{i:0;s:7:"noindex";}'
    }


async def test_backend_failure_raises_sitemap_error(content: SqliteContentSource) -> None:
    broken = MagicMock()
    broken.execute = AsyncMock(side_effect=aiosqlite.Error("database is locked"))
    with patch.object(content, "_db", broken), pytest.raises(SitemapError) as exc_info:
        await content.list_documents("page", None, frozenset(), "alphabetical", 10)
    assert exc_info.value.code == ErrorCode.CONTENT_QUERY_FAILED
    assert exc_info.value.recoverable is True


async def test_closed_connection_raises_sitemap_error() -> None:
    db = await aiosqlite.connect(":memory:")
    source = SqliteContentSource(db)
    await source.init_schema()
    await db.close()

    with pytest.raises(SitemapError) as exc_info:
        await source.list_public_kinds()
    assert exc_info.value.code == ErrorCode.CONTENT_QUERY_FAILED


async def test_recent_order_compares_instants_across_offsets(
    content: SqliteContentSource,
) -> None:
    plus_five = timezone(timedelta(hours=5))
    await content.upsert_document(
        id=20,
        kind="post",
        title="Older",
        url="/older",
        published_at=datetime(2030, 1, 1, 10, 0, tzinfo=plus_five),
    )
    await content.upsert_document(
        id=21,
        kind="post",
        title="Newer",
        url="/newer",
        published_at=datetime(2030, 1, 1, 6, 0, tzinfo=UTC),
    )

    docs = await content.list_documents("post", ANY_PARENT, frozenset(), "recent", 1)

    assert [d.title for d in docs] == ["Newer"]


async def test_naive_timestamps_stored_as_utc(content: SqliteContentSource) -> None:
    await content.upsert_document(
        id=22, kind="page", title="Naive", url="/naive", published_at=datetime(2030, 5, 1, 12)
    )
    docs = await content.list_documents("page", None, frozenset(), "recent", 1)
    assert docs[0].published_at == datetime(2030, 5, 1, 12, tzinfo=UTC)
