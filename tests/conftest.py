"""Shared test fixtures for the htmlsitemap test suite."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aiosqlite
import pytest

from htmlsitemap.cache import Cache
from htmlsitemap.models.content import ContentKind, Document
from htmlsitemap.sources.memory import InMemoryContentSource

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from htmlsitemap.models.config import SortOrder
    from htmlsitemap.models.content import ParentFilter


PAGE = ContentKind(tag="page", label="Pages", hierarchical=True)
POST = ContentKind(tag="post", label="Posts")


def make_doc(
    doc_id: int,
    title: str,
    *,
    kind: str = "page",
    parent_id: int | None = None,
    published_at: datetime | None = None,
    url: str | None = None,
    meta: dict[str, Any] | None = None,
) -> Document:
    """Build a Document with a predictable URL and timestamp."""
    return Document(
        id=doc_id,
        kind=kind,
        title=title,
        url=url if url is not None else f"https://example.com/?p={doc_id}",
        published_at=published_at or datetime(2024, 1, doc_id % 28 + 1, tzinfo=UTC),
        parent_id=parent_id,
        meta=meta or {},
    )


class CountingSource(InMemoryContentSource):
    """In-memory source that records every listing call."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.list_calls: list[tuple[str, ParentFilter, int]] = []

    async def list_documents(
        self,
        kind: str,
        parent_id: ParentFilter,
        excluded_ids: frozenset[int],
        sort_order: SortOrder,
        limit: int,
    ) -> list[Document]:
        self.list_calls.append((kind, parent_id, limit))
        return await super().list_documents(kind, parent_id, excluded_ids, sort_order, limit)


@pytest.fixture()
def sample_kinds() -> list[ContentKind]:
    return [PAGE, POST]


@pytest.fixture()
def sample_documents() -> list[Document]:
    """A small site: a page tree and three posts."""
    return [
        make_doc(1, "About"),
        make_doc(2, "Team", parent_id=1),
        make_doc(3, "History", parent_id=1),
        make_doc(5, "Leadership", parent_id=2),
        make_doc(4, "Contact"),
        make_doc(10, "Hello World", kind="post", published_at=datetime(2024, 1, 1, tzinfo=UTC)),
        make_doc(11, "Second Post", kind="post", published_at=datetime(2024, 2, 1, tzinfo=UTC)),
        make_doc(12, "Alpha", kind="post", published_at=datetime(2023, 6, 1, tzinfo=UTC)),
    ]


@pytest.fixture()
def source(
    sample_kinds: list[ContentKind], sample_documents: list[Document]
) -> CountingSource:
    return CountingSource(sample_kinds, sample_documents)


@pytest.fixture()
async def cache() -> AsyncGenerator[Cache, None]:
    """Fragment store on an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        store = Cache(db)
        await store.init_db()
        yield store


@pytest.fixture()
def doc() -> Any:
    """The ``make_doc`` factory, for tests that build their own documents."""
    return make_doc


@pytest.fixture()
def make_source() -> Any:
    """Factory for CountingSource instances over custom content."""

    def factory(
        kinds: list[ContentKind] | None = None, documents: list[Document] | None = None
    ) -> CountingSource:
        return CountingSource(kinds or [], documents or [])

    return factory
