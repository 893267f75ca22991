"""Administration of the stored settings record.

Handlers for the settings form: listing the kinds an administrator may
choose from, validating a submitted record, saving it and removing all
persisted state on uninstall. Saving always purges every fragment, without
regard to the invalidation cool-down.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from htmlsitemap.errors import ErrorCode, SitemapError
from htmlsitemap.models.config import StoredSettings
from htmlsitemap.resolver import resolve_config

if TYPE_CHECKING:
    from collections.abc import Iterable

    from htmlsitemap.models.config import EffectiveConfig
    from htmlsitemap.models.content import ContentKind
    from htmlsitemap.protocols import (
        ContentSourceProtocol,
        FragmentStoreProtocol,
        SettingsStoreProtocol,
    )

log = structlog.get_logger()

# Public kinds never offered in the settings form.
EXCLUDED_ADMIN_KINDS = frozenset({"attachment", "elementor_library"})


def _as_stored(resolved: EffectiveConfig, included_kinds: list[str]) -> StoredSettings:
    return StoredSettings(
        included_kinds=included_kinds,
        excluded_ids=list(resolved.excluded_ids),
        hierarchical=resolved.hierarchical,
        max_depth=resolved.max_depth,
        sort_order=resolved.sort_order,
        exclude_noindex=resolved.exclude_noindex,
        cache_ttl_minutes=resolved.cache_ttl_minutes,
    )


async def selectable_kinds(source: ContentSourceProtocol) -> list[ContentKind]:
    """Public kinds an administrator can include in the sitemap."""
    kinds = await source.list_public_kinds()
    return [kind for kind in kinds if kind.tag not in EXCLUDED_ADMIN_KINDS]


def sanitize_settings(raw: Any, public_kinds: Iterable[ContentKind]) -> StoredSettings:
    """Validate a submitted settings record.

    Unknown or non-public kinds are dropped, integers are clamped to their
    ranges and an unrecognised sort order falls back to alphabetical.
    Raises SitemapError if *raw* is not a mapping at all.
    """
    if not isinstance(raw, dict):
        raise SitemapError(
            code=ErrorCode.INVALID_SETTINGS,
            message="Settings must be a JSON object.",
            suggestion="Send an object with keys such as included_kinds and max_depth.",
            recoverable=False,
        )

    resolved = resolve_config(raw)
    public_tags = {kind.tag for kind in public_kinds}
    dropped = [tag for tag in resolved.included_kinds if tag not in public_tags]
    if dropped:
        log.info("settings_kinds_dropped", kinds=dropped)

    return _as_stored(resolved, [tag for tag in resolved.included_kinds if tag in public_tags])


async def stored_settings_view(store: SettingsStoreProtocol) -> StoredSettings:
    """The stored record as the settings form shows it, defaults filled in."""
    resolved = resolve_config(await store.load_settings())
    return _as_stored(resolved, list(resolved.included_kinds))


async def save_settings(
    raw: Any,
    *,
    store: SettingsStoreProtocol,
    fragments: FragmentStoreProtocol,
    source: ContentSourceProtocol,
) -> StoredSettings:
    """Sanitize and persist a settings record, then purge every fragment."""
    public_kinds = await source.list_public_kinds()
    settings = sanitize_settings(raw, public_kinds)

    if not await store.save_settings(settings.model_dump()):
        raise SitemapError(
            code=ErrorCode.STORE_UNAVAILABLE,
            message="The settings record could not be saved.",
            suggestion="Check that the cache database is writable and retry.",
            recoverable=True,
        )

    await fragments.purge_all()
    log.info("settings_saved", **settings.model_dump())
    return settings


async def uninstall(store: SettingsStoreProtocol, fragments: FragmentStoreProtocol) -> None:
    """Remove the settings record and every stored fragment."""
    deleted = await store.delete_settings()
    await fragments.purge_all()
    log.info("uninstall_complete", settings_deleted=deleted)
