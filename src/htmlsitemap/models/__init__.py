from __future__ import annotations

from htmlsitemap.models.cache import FragmentEntry
from htmlsitemap.models.config import EffectiveConfig, SortOrder, StoredSettings
from htmlsitemap.models.content import ANY_PARENT, ContentKind, Document, ParentFilter
from htmlsitemap.models.events import ContentEvent, ContentEventType

__all__ = [
    # content
    "ANY_PARENT",
    "ContentKind",
    "Document",
    "ParentFilter",
    # config
    "EffectiveConfig",
    "SortOrder",
    "StoredSettings",
    # cache
    "FragmentEntry",
    # events
    "ContentEvent",
    "ContentEventType",
]
