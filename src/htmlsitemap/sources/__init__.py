"""Content source adapters: read-only views over a content store."""

from __future__ import annotations

from htmlsitemap.sources.memory import InMemoryContentSource
from htmlsitemap.sources.sqlite import SqliteContentSource

__all__ = ["InMemoryContentSource", "SqliteContentSource"]
