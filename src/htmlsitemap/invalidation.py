"""Fragment invalidation on content changes.

Every created, updated or deleted document purges all fragments. Metadata
changes only count when the key belongs to an SEO integration. Purges are
rate limited by a cool-down whose timestamp lives in the fragment store
under a sentinel key outside the fragment prefix, so ``purge_all()`` never
clears it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from htmlsitemap.models.events import ContentEvent
    from htmlsitemap.protocols import FragmentStoreProtocol

log = structlog.get_logger()

COOLDOWN_SENTINEL_KEY = "hsb_last_cache_clear"
DEFAULT_COOLDOWN_SECONDS = 60

SEO_META_TERMS = ("yoast", "rank_math", "seopress", "noindex", "robots")
MAX_META_KEY_LENGTH = 255


def is_seo_meta_key(meta_key: str | None) -> bool:
    """Whether a changed metadata key can affect index policy."""
    if not meta_key or len(meta_key) > MAX_META_KEY_LENGTH:
        return False
    needle = meta_key.lower()
    return any(term in needle for term in SEO_META_TERMS)


class InvalidationController:
    """Purges the fragment store in response to content change events."""

    def __init__(
        self,
        fragments: FragmentStoreProtocol,
        *,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
    ) -> None:
        self._fragments = fragments
        self._cooldown_seconds = cooldown_seconds

    def qualifies(self, event: ContentEvent) -> bool:
        if event.type == "meta_updated":
            return is_seo_meta_key(event.meta_key)
        return True

    async def handle(self, event: ContentEvent) -> bool:
        """Purge all fragments unless the event is irrelevant or a purge ran recently.

        Returns True when a purge was issued.
        """
        if not self.qualifies(event):
            log.debug("invalidation_ignored", event_type=event.type, meta_key=event.meta_key)
            return False

        if await self._fragments.get(COOLDOWN_SENTINEL_KEY) is not None:
            log.debug("invalidation_dropped", reason="cooldown", event_type=event.type)
            return False

        await self._fragments.purge_all()
        await self._fragments.put(
            COOLDOWN_SENTINEL_KEY,
            datetime.now(UTC).isoformat(),
            self._cooldown_seconds,
        )
        log.info(
            "invalidation_complete",
            event_type=event.type,
            document_id=event.document_id,
            cooldown_seconds=self._cooldown_seconds,
        )
        return True
