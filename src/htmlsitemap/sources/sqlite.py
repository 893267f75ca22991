"""SQLite content source.

Reads published documents, kind descriptors and index-policy metadata from
a content database through a shared ``aiosqlite`` connection. Ordering,
exclusions and limits are applied in SQL.

Timestamps are stored as ISO-8601 text in UTC; the ``recent`` ordering
relies on that for lexical comparison.
"""

from __future__ import annotations

from datetime import UTC
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog
from pydantic import ValidationError

from htmlsitemap.errors import ErrorCode, SitemapError
from htmlsitemap.models.content import ANY_PARENT, ContentKind, Document
from htmlsitemap.policy import POLICY_META_KEYS

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from htmlsitemap.models.config import SortOrder
    from htmlsitemap.models.content import ParentFilter

log = structlog.get_logger()

PUBLISHED_STATUS = "publish"

_CREATE_KINDS_TABLE = """
CREATE TABLE IF NOT EXISTS content_kinds (
    tag          TEXT PRIMARY KEY,
    label        TEXT NOT NULL,
    hierarchical INTEGER NOT NULL DEFAULT 0,
    public       INTEGER NOT NULL DEFAULT 1,
    position     INTEGER NOT NULL DEFAULT 0
)
"""

_CREATE_DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    id           INTEGER PRIMARY KEY,
    kind         TEXT NOT NULL,
    title        TEXT NOT NULL DEFAULT '',
    url          TEXT NOT NULL DEFAULT '',
    status       TEXT NOT NULL DEFAULT 'publish',
    published_at TEXT NOT NULL,
    parent_id    INTEGER
)
"""

_CREATE_DOCUMENTS_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_documents_kind_parent ON documents(kind, parent_id)"
)

_CREATE_META_TABLE = """
CREATE TABLE IF NOT EXISTS document_meta (
    document_id INTEGER NOT NULL,
    meta_key    TEXT NOT NULL,
    meta_value  TEXT,
    PRIMARY KEY (document_id, meta_key)
)
"""

_ORDER_BY: dict[str, str] = {
    "alphabetical": "title COLLATE BINARY ASC, id ASC",
    "recent": "published_at DESC, id DESC",
}


# aiosqlite raises ValueError, not aiosqlite.Error, once the connection is closed
_QUERY_ERRORS = (aiosqlite.Error, ValueError)


def _query_failed(operation: str, exc: Exception) -> SitemapError:
    return SitemapError(
        code=ErrorCode.CONTENT_QUERY_FAILED,
        message=f"Content store query failed during {operation}: {exc}",
        suggestion="Check that the content database is reachable and initialised.",
        recoverable=True,
    )


def _utc_text(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat()


class SqliteContentSource:
    """ContentSourceProtocol over a SQLite content database."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_schema(self) -> None:
        """Create the content tables if missing."""
        await self._db.execute(_CREATE_KINDS_TABLE)
        await self._db.execute(_CREATE_DOCUMENTS_TABLE)
        await self._db.execute(_CREATE_DOCUMENTS_INDEX)
        await self._db.execute(_CREATE_META_TABLE)
        await self._db.commit()

    # ------------------------------------------------------------------
    # Writes (host-side synchronisation helpers)
    # ------------------------------------------------------------------

    async def upsert_kind(self, kind: ContentKind, position: int = 0) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO content_kinds (tag, label, hierarchical, public, position) "
            "VALUES (?, ?, ?, ?, ?)",
            (kind.tag, kind.label, int(kind.hierarchical), int(kind.public), position),
        )
        await self._db.commit()

    async def upsert_document(
        self,
        *,
        id: int,
        kind: str,
        title: str,
        url: str,
        published_at: datetime,
        parent_id: int | None = None,
        status: str = PUBLISHED_STATUS,
    ) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO documents "
            "(id, kind, title, url, status, published_at, parent_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (id, kind, title, url, status, _utc_text(published_at), parent_id),
        )
        await self._db.commit()

    async def set_meta(self, document_id: int, meta_key: str, meta_value: str) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO document_meta (document_id, meta_key, meta_value) "
            "VALUES (?, ?, ?)",
            (document_id, meta_key, meta_value),
        )
        await self._db.commit()

    # ------------------------------------------------------------------
    # ContentSourceProtocol
    # ------------------------------------------------------------------

    async def list_public_kinds(self) -> list[ContentKind]:
        try:
            cursor = await self._db.execute(
                "SELECT tag, label, hierarchical FROM content_kinds "
                "WHERE public = 1 ORDER BY position ASC, tag ASC"
            )
            rows = await cursor.fetchall()
        except _QUERY_ERRORS as exc:
            raise _query_failed("list_public_kinds", exc) from exc

        kinds: list[ContentKind] = []
        for tag, label, hierarchical in rows:
            try:
                kinds.append(ContentKind(tag=tag, label=label, hierarchical=bool(hierarchical)))
            except ValidationError:
                log.warning("content_kind_invalid", tag=tag)
        return kinds

    async def kind_exists(self, tag: str) -> bool:
        try:
            cursor = await self._db.execute(
                "SELECT 1 FROM content_kinds WHERE tag = ?", (tag,)
            )
            return await cursor.fetchone() is not None
        except _QUERY_ERRORS as exc:
            raise _query_failed("kind_exists", exc) from exc

    async def list_documents(
        self,
        kind: str,
        parent_id: ParentFilter,
        excluded_ids: frozenset[int],
        sort_order: SortOrder,
        limit: int,
    ) -> list[Document]:
        clauses = ["kind = ?", "status = ?"]
        params: list[Any] = [kind, PUBLISHED_STATUS]

        if parent_id is None:
            # Zero and self-referencing parents are roots too
            clauses.append("(parent_id IS NULL OR parent_id = 0 OR parent_id = id)")
        elif parent_id is not ANY_PARENT:
            clauses.append("parent_id = ? AND id != ?")
            params.extend([parent_id, parent_id])

        if excluded_ids:
            ordered = sorted(excluded_ids)
            clauses.append(f"id NOT IN ({', '.join('?' for _ in ordered)})")
            params.extend(ordered)

        sql = (
            "SELECT id, kind, title, url, published_at, parent_id FROM documents "
            f"WHERE {' AND '.join(clauses)} "
            f"ORDER BY {_ORDER_BY.get(sort_order, _ORDER_BY['alphabetical'])} "
            "LIMIT ?"
        )
        params.append(limit)

        try:
            cursor = await self._db.execute(sql, params)
            rows = await cursor.fetchall()
        except _QUERY_ERRORS as exc:
            raise _query_failed("list_documents", exc) from exc

        documents: list[Document] = []
        for row in rows:
            try:
                documents.append(
                    Document(
                        id=row[0],
                        kind=row[1],
                        title=row[2],
                        url=row[3],
                        published_at=row[4],
                        parent_id=row[5],
                    )
                )
            except ValidationError:
                log.warning("document_row_invalid", document_id=row[0], kind=kind)
        return documents

    async def get_index_metadata(self, document_id: int) -> Mapping[str, Any]:
        placeholders = ", ".join("?" for _ in POLICY_META_KEYS)
        try:
            cursor = await self._db.execute(
                "SELECT meta_key, meta_value FROM document_meta "
                f"WHERE document_id = ? AND meta_key IN ({placeholders})",
                (document_id, *POLICY_META_KEYS),
            )
            rows = await cursor.fetchall()
        except _QUERY_ERRORS as exc:
            raise _query_failed("get_index_metadata", exc) from exc
        return {key: value for key, value in rows}
