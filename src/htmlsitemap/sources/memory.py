"""In-memory content source.

Holds published documents and kind descriptors in dicts. Used by embedders
that already have their content in memory, and as the test double for the
content store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from htmlsitemap.models.content import ANY_PARENT
from htmlsitemap.selector import sort_documents

if TYPE_CHECKING:
    from collections.abc import Iterable

    from htmlsitemap.models.config import SortOrder
    from htmlsitemap.models.content import ContentKind, Document, ParentFilter


class InMemoryContentSource:
    """ContentSourceProtocol over in-memory collections."""

    def __init__(
        self,
        kinds: Iterable[ContentKind] = (),
        documents: Iterable[Document] = (),
    ) -> None:
        self._kinds: dict[str, ContentKind] = {kind.tag: kind for kind in kinds}
        self._documents: dict[int, Document] = {doc.id: doc for doc in documents}

    def add_kind(self, kind: ContentKind) -> None:
        self._kinds[kind.tag] = kind

    def add_document(self, document: Document) -> None:
        self._documents[document.id] = document

    def remove_document(self, document_id: int) -> None:
        self._documents.pop(document_id, None)

    async def list_public_kinds(self) -> list[ContentKind]:
        return [kind for kind in self._kinds.values() if kind.public]

    async def kind_exists(self, tag: str) -> bool:
        return tag in self._kinds

    async def list_documents(
        self,
        kind: str,
        parent_id: ParentFilter,
        excluded_ids: frozenset[int],
        sort_order: SortOrder,
        limit: int,
    ) -> list[Document]:
        matches = [
            doc
            for doc in self._documents.values()
            if doc.kind == kind
            and (parent_id is ANY_PARENT or doc.parent_id == parent_id)
            and doc.id not in excluded_ids
        ]
        return sort_documents(matches, sort_order)[:limit]

    async def get_index_metadata(self, document_id: int) -> dict[str, Any]:
        doc = self._documents.get(document_id)
        return dict(doc.meta) if doc is not None else {}
