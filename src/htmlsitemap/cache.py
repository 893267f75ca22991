"""SQLite fragment store and settings record.

All store operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as a miss by callers),
write and purge failures are logged and ignored (the freshly rendered
fragment is still returned to the reader). Infrastructure errors never cross
the Cache class boundary.

Fragments live under the ``hsb_sitemap_html_`` key prefix. Other keys in
the same table (the invalidation cool-down sentinel) survive ``purge_all()``.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog

from htmlsitemap.fingerprint import FRAGMENT_KEY_PREFIX
from htmlsitemap.models.cache import FragmentEntry

if TYPE_CHECKING:
    from collections.abc import Mapping

log = structlog.get_logger()

SETTINGS_KEY = "hsb_settings"

_CREATE_FRAGMENT_TABLE = """
CREATE TABLE IF NOT EXISTS fragment_cache (
    key        TEXT PRIMARY KEY,
    fragment   TEXT NOT NULL,
    stored_at  TEXT NOT NULL,
    expires_at TEXT NOT NULL
)
"""

_CREATE_FRAGMENT_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_fragment_expires ON fragment_cache(expires_at)"
)

_CREATE_OPTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS options (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


def _like_prefix(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped + "%"


class Cache:
    """SQLite-backed store implementing FragmentStoreProtocol and SettingsStoreProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_FRAGMENT_TABLE)
        await self._db.execute(_CREATE_FRAGMENT_INDEX)
        await self._db.execute(_CREATE_OPTIONS_TABLE)
        await self._db.commit()

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    async def get(self, key: str) -> FragmentEntry | None:
        """Read an entry. Returns ``None`` on miss, expiry, or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT key, fragment, stored_at, expires_at FROM fragment_cache WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            expires_at = datetime.fromisoformat(row[3])
            if datetime.now(UTC) >= expires_at:
                return None

            return FragmentEntry(
                key=row[0],
                fragment=row[1],
                stored_at=datetime.fromisoformat(row[2]),
                expires_at=expires_at,
            )
        except aiosqlite.Error:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

    async def put(self, key: str, fragment: str, ttl_seconds: int) -> None:
        """Write an entry that expires after *ttl_seconds*. Non-fatal on failure."""
        try:
            now = datetime.now(UTC)
            expires_at = now + timedelta(seconds=ttl_seconds)
            await self._db.execute(
                "INSERT OR REPLACE INTO fragment_cache (key, fragment, stored_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (key, fragment, now.isoformat(), expires_at.isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=key, exc_info=True)

    async def purge_all(self) -> None:
        """Delete every fragment under the fragment prefix. Non-fatal on failure."""
        try:
            cursor = await self._db.execute(
                "DELETE FROM fragment_cache WHERE key LIKE ? ESCAPE '\\'",
                (_like_prefix(FRAGMENT_KEY_PREFIX),),
            )
            purged = cursor.rowcount
            await self._db.commit()
            log.info("cache_purged", purged=purged)
        except aiosqlite.Error:
            log.warning("cache_purge_error", exc_info=True)

    # ------------------------------------------------------------------
    # Settings record
    # ------------------------------------------------------------------

    async def load_settings(self) -> dict[str, Any] | None:
        """Read the stored settings record. ``None`` when absent, unreadable, or malformed."""
        try:
            cursor = await self._db.execute(
                "SELECT value FROM options WHERE key = ?", (SETTINGS_KEY,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("settings_read_error", exc_info=True)
            return None
        if row is None:
            return None
        try:
            record = json.loads(row[0])
        except ValueError:
            log.warning("settings_malformed", reason="invalid_json")
            return None
        return record if isinstance(record, dict) else None

    async def save_settings(self, record: Mapping[str, Any]) -> bool:
        """Persist the settings record. Returns False (and logs) on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO options (key, value) VALUES (?, ?)",
                (SETTINGS_KEY, json.dumps(dict(record))),
            )
            await self._db.commit()
            return True
        except aiosqlite.Error:
            log.warning("settings_write_error", exc_info=True)
            return False

    async def delete_settings(self) -> bool:
        try:
            await self._db.execute("DELETE FROM options WHERE key = ?", (SETTINGS_KEY,))
            await self._db.commit()
            return True
        except aiosqlite.Error:
            log.warning("settings_delete_error", exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def cleanup_if_due(self, interval_hours: int) -> None:
        """Run cleanup only if interval_hours have elapsed since the last run.

        Reads and writes ``last_cleanup_at`` from the ``options`` table.
        Falls through to run cleanup if the row is missing or unreadable.
        Non-fatal on failure.
        """
        try:
            cursor = await self._db.execute(
                "SELECT value FROM options WHERE key = 'last_cleanup_at'"
            )
            row = await cursor.fetchone()
            if row is not None:
                last_run = datetime.fromisoformat(row[0])
                if datetime.now(UTC) - last_run < timedelta(hours=interval_hours):
                    log.debug("cache_cleanup_skipped", reason="not_due")
                    return
        except (aiosqlite.Error, ValueError):
            log.warning("cache_metadata_read_error", exc_info=True)

        await self.cleanup_expired()

        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO options (key, value) VALUES ('last_cleanup_at', ?)",
                (datetime.now(UTC).isoformat(),),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_metadata_write_error", exc_info=True)

    async def cleanup_expired(self) -> None:
        """Delete entries whose expiry has passed. Non-fatal on failure."""
        try:
            cutoff = datetime.now(UTC).isoformat()
            cursor = await self._db.execute(
                "DELETE FROM fragment_cache WHERE expires_at < ?", (cutoff,)
            )
            deleted = cursor.rowcount
            await self._db.commit()
            log.info("cache_cleanup_complete", deleted=deleted)
        except aiosqlite.Error:
            log.warning("cache_cleanup_error", exc_info=True)
