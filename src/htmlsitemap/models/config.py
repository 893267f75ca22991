from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SortOrder = Literal["alphabetical", "recent"]

SORT_ORDERS: tuple[SortOrder, ...] = ("alphabetical", "recent")

MAX_DEPTH_LIMIT = 50
MAX_CACHE_TTL_MINUTES = 10080  # One week
MAX_EXCLUDED_IDS = 1000


class StoredSettings(BaseModel):
    """The persisted settings record, as saved by the admin layer."""

    included_kinds: list[str] = []
    excluded_ids: list[int] = []
    hierarchical: bool = True
    max_depth: int = Field(default=20, ge=1, le=MAX_DEPTH_LIMIT)
    sort_order: SortOrder = "alphabetical"
    exclude_noindex: bool = False
    cache_ttl_minutes: int = Field(default=60, ge=0, le=MAX_CACHE_TTL_MINUTES)


class EffectiveConfig(BaseModel):
    """Validated per-render configuration.

    Derived from the stored settings and the placeholder attributes for a
    single render, then discarded.
    """

    model_config = ConfigDict(frozen=True)

    included_kinds: tuple[str, ...] = ()  # Empty means every public kind
    excluded_ids: tuple[int, ...] = ()  # Deduplicated, first-seen order
    hierarchical: bool = True
    max_depth: int = Field(default=20, ge=1, le=MAX_DEPTH_LIMIT)
    sort_order: SortOrder = "alphabetical"
    exclude_noindex: bool = False
    cache_ttl_minutes: int = Field(default=60, ge=0, le=MAX_CACHE_TTL_MINUTES)

    @property
    def excluded_set(self) -> frozenset[int]:
        return frozenset(self.excluded_ids)
