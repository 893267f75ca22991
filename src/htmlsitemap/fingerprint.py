"""Fragment cache keys.

A fingerprint is the SHA-256 of a canonical string built from every input
that affects the rendered fragment. The store key is the fragment prefix
followed by the fingerprint, so ``purge_all()`` can drop every fragment with
one prefix match.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from htmlsitemap.models.config import EffectiveConfig

FRAGMENT_KEY_PREFIX = "hsb_sitemap_html_"

# Bump when the markup changes so stale fragments are never served.
FRAGMENT_FORMAT_VERSION = "1.0.5"

MAX_FINGERPRINT_KINDS = 20
MAX_FINGERPRINT_EXCLUDED_IDS = 100


def canonical_string(config: EffectiveConfig, kinds: Sequence[str]) -> str:
    """Build ``pt:K|ex:E|ni:N|hier:H|depth:D|sort:S|v:V`` for a render.

    *kinds* is the resolved kind list the render will walk, in order.
    """
    return "|".join(
        [
            "pt:" + ",".join(kinds[:MAX_FINGERPRINT_KINDS]),
            "ex:" + ",".join(str(i) for i in config.excluded_ids[:MAX_FINGERPRINT_EXCLUDED_IDS]),
            "ni:" + ("1" if config.exclude_noindex else "0"),
            "hier:" + ("1" if config.hierarchical else "0"),
            f"depth:{config.max_depth}",
            f"sort:{config.sort_order}",
            f"v:{FRAGMENT_FORMAT_VERSION}",
        ]
    )


def fingerprint(config: EffectiveConfig, kinds: Sequence[str]) -> str:
    return hashlib.sha256(canonical_string(config, kinds).encode("utf-8")).hexdigest()


def fragment_key(config: EffectiveConfig, kinds: Sequence[str]) -> str:
    return FRAGMENT_KEY_PREFIX + fingerprint(config, kinds)
