"""Document selection.

Combines the effective configuration, the content source and the
index-policy evaluator: which kinds a render covers, which documents each
query returns and in what order, and whether a document may appear.

Adapter failures never escape this module. A failed query is logged and
read as an empty result, and the selector is marked ``degraded`` so the
engine can decide not to cache what it rendered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from htmlsitemap.errors import ErrorCode, SitemapError
from htmlsitemap.models.content import ANY_PARENT
from htmlsitemap.policy import matching_policy_key
from htmlsitemap.render import escape_url

if TYPE_CHECKING:
    from collections.abc import Iterable

    from htmlsitemap.models.config import EffectiveConfig, SortOrder
    from htmlsitemap.models.content import ContentKind, Document, ParentFilter
    from htmlsitemap.protocols import ContentSourceProtocol

log = structlog.get_logger()

# Per-query caps, applied after ordering.
FLAT_LIMIT = 500
ROOT_LIMIT = 200
CHILD_LIMIT = 100

MAX_KINDS_PER_RENDER = 20


def sort_documents(documents: Iterable[Document], sort_order: SortOrder) -> list[Document]:
    """Order documents for display.

    ``alphabetical``: title ascending by code point, then id ascending.
    ``recent``: publication time descending, then id descending.
    """
    if sort_order == "recent":
        return sorted(documents, key=lambda d: (d.published_at, d.id), reverse=True)
    return sorted(documents, key=lambda d: (d.title, d.id))


class DocumentSelector:
    """Selection state for one render."""

    def __init__(self, source: ContentSourceProtocol, config: EffectiveConfig) -> None:
        self._source = source
        self._config = config
        self._excluded = config.excluded_set
        self.degraded = False

    async def kinds(self) -> list[ContentKind]:
        """Resolve the kinds this render covers, in order, capped at 20.

        An empty ``included_kinds`` means every public kind. Included tags
        the content source does not recognise are ignored.
        """
        try:
            public = list(await self._source.list_public_kinds())
        except Exception as exc:
            self._query_failed("list_public_kinds", exc)
            return []

        if not self._config.included_kinds:
            return public[:MAX_KINDS_PER_RENDER]

        by_tag = {kind.tag: kind for kind in public}
        selected: list[ContentKind] = []
        for tag in self._config.included_kinds:
            kind = by_tag.get(tag)
            if kind is None:
                log.debug("content_kind_ignored", kind=tag, reason="not_public")
                continue
            try:
                exists = await self._source.kind_exists(tag)
            except Exception as exc:
                self._query_failed("kind_exists", exc, kind=tag)
                continue
            if exists:
                selected.append(kind)
            if len(selected) >= MAX_KINDS_PER_RENDER:
                break
        return selected

    async def documents(
        self,
        kind: str,
        parent_id: ParentFilter,
        *,
        limit: int,
        push_exclusions: bool = True,
    ) -> list[Document]:
        """Fetch, order and cap one listing. Failures read as an empty list."""
        excluded = self._excluded if push_exclusions else frozenset()
        try:
            found = await self._source.list_documents(
                kind, parent_id, excluded, self._config.sort_order, limit
            )
        except Exception as exc:
            self._query_failed("list_documents", exc, kind=kind)
            return []
        # Re-sort so output stays deterministic whatever order the source used
        return sort_documents(found, self._config.sort_order)[:limit]

    async def accepts(self, document: Document) -> bool:
        """Whether *document* contributes an entry to the sitemap."""
        if document.id in self._excluded:
            return False
        if not document.title.strip() or not escape_url(document.url):
            return False
        if self._config.exclude_noindex and await self._is_noindex(document):
            return False
        return True

    async def select_flat(self, kind: ContentKind) -> list[Document]:
        candidates = await self.documents(kind.tag, ANY_PARENT, limit=FLAT_LIMIT)
        return [doc for doc in candidates if await self.accepts(doc)]

    async def _is_noindex(self, document: Document) -> bool:
        try:
            metadata = await self._source.get_index_metadata(document.id)
        except Exception as exc:
            self._query_failed("get_index_metadata", exc, document_id=document.id)
            return False
        key = matching_policy_key(metadata)
        if key is not None:
            log.debug("document_suppressed", document_id=document.id, meta_key=key)
            return True
        return False

    def _query_failed(self, operation: str, exc: Exception, **context: object) -> None:
        self.degraded = True
        if isinstance(exc, SitemapError):
            log.warning(
                "content_query_failed",
                operation=operation,
                code=exc.code,
                message=exc.message,
                **context,
            )
            return
        log.warning(
            "content_query_failed",
            operation=operation,
            code=ErrorCode.CONTENT_QUERY_FAILED,
            message=str(exc),
            exc_info=True,
            **context,
        )
