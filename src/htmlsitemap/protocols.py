"""Protocol interfaces for swappable components.

The engine, the invalidation controller and the admin layer reference these
protocols, not the concrete implementations. This allows:
- Tests to use lightweight in-memory implementations
- Hosts to plug in their own content store or fragment store backend
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from htmlsitemap.models.cache import FragmentEntry
    from htmlsitemap.models.config import SortOrder
    from htmlsitemap.models.content import ContentKind, Document, ParentFilter


class ContentSourceProtocol(Protocol):
    """Read-only view over the external content store.

    Implementations raise ``SitemapError`` when the store cannot answer.
    They must not load body content and must not trigger renders.
    """

    async def list_public_kinds(self) -> Sequence[ContentKind]: ...

    async def kind_exists(self, tag: str) -> bool: ...

    async def list_documents(
        self,
        kind: str,
        parent_id: ParentFilter,
        excluded_ids: frozenset[int],
        sort_order: SortOrder,
        limit: int,
    ) -> Sequence[Document]: ...

    async def get_index_metadata(self, document_id: int) -> Mapping[str, Any]: ...


class FragmentStoreProtocol(Protocol):
    """Interface for the shared fragment store. All operations are best-effort."""

    async def get(self, key: str) -> FragmentEntry | None: ...

    async def put(self, key: str, fragment: str, ttl_seconds: int) -> None: ...

    async def purge_all(self) -> None: ...


class SettingsStoreProtocol(Protocol):
    """Interface for the persisted settings record."""

    async def load_settings(self) -> dict[str, Any] | None: ...

    async def save_settings(self, record: Mapping[str, Any]) -> bool: ...

    async def delete_settings(self) -> bool: ...
