"""Tree walking for hierarchical kinds.

Builds the rendered forest for one kind, depth-first, asking the content
source for each node's children. Descent stops at ``max_depth`` (roots are
depth 1), when a node has no children, or at the per-parent cap.

A document that is excluded, suppressed, or lacks a title or URL is not
rendered, but its rendered children take its place in its parent's list,
one level up. Ids already visited in this render are skipped without
descending, which breaks cycles in faulty parent pointers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from htmlsitemap.selector import CHILD_LIMIT, ROOT_LIMIT

if TYPE_CHECKING:
    from collections.abc import Sequence

    from htmlsitemap.models.content import ContentKind, Document
    from htmlsitemap.selector import DocumentSelector

log = structlog.get_logger()


@dataclass
class SitemapNode:
    """A rendered entry and the entries nested under it."""

    document: Document
    children: list[SitemapNode] = field(default_factory=list)


class TreeWalker:
    def __init__(
        self,
        selector: DocumentSelector,
        kind: ContentKind,
        max_depth: int,
        *,
        seen: set[int] | None = None,
    ) -> None:
        self._selector = selector
        self._kind = kind
        self._max_depth = max_depth
        self._seen = seen if seen is not None else set()

    async def walk(self) -> list[SitemapNode]:
        # Exclusions are checked here rather than in the query so that an
        # excluded page's children can still be reparented.
        roots = await self._selector.documents(
            self._kind.tag, None, limit=ROOT_LIMIT, push_exclusions=False
        )
        return await self._build(roots, depth=1)

    async def _build(self, candidates: Sequence[Document], depth: int) -> list[SitemapNode]:
        nodes: list[SitemapNode] = []
        for document in candidates:
            if document.id in self._seen:
                log.debug("document_revisited", document_id=document.id, depth=depth)
                continue
            self._seen.add(document.id)

            children: list[SitemapNode] = []
            if depth < self._max_depth:
                child_documents = await self._selector.documents(
                    self._kind.tag, document.id, limit=CHILD_LIMIT, push_exclusions=False
                )
                if child_documents:
                    children = await self._build(child_documents, depth + 1)

            if await self._selector.accepts(document):
                nodes.append(SitemapNode(document=document, children=children))
            else:
                nodes.extend(children)
        return nodes
