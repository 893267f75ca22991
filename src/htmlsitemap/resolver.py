"""Configuration resolution.

Pure business logic. Merges the stored settings record with the attributes
of one placeholder invocation into an ``EffectiveConfig``. No knowledge of
the fragment store, the content source, or I/O.

Resolution never raises: absent or malformed input falls back to defaults,
out-of-range integers are clamped.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING, Any

from htmlsitemap.models.config import (
    MAX_CACHE_TTL_MINUTES,
    MAX_DEPTH_LIMIT,
    MAX_EXCLUDED_IDS,
    SORT_ORDERS,
    EffectiveConfig,
    SortOrder,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

DEFAULT_HIERARCHICAL = True
DEFAULT_MAX_DEPTH = 20
DEFAULT_SORT_ORDER: SortOrder = "alphabetical"
DEFAULT_CACHE_TTL_MINUTES = 60
DEFAULT_EXCLUDE_NOINDEX = False

MAX_ID_LIST_CHARS = 10_000

# Integers saturate at the 64-bit range, like the host platform's intval()
MAX_INT = 2**63 - 1
_MAX_INT_DIGITS = 18

# Placeholder attributes understood by the resolver; anything else is ignored.
OVERRIDE_ATTRIBUTES = ("exclude_posts", "cache_minutes", "hierarchical", "max_depth", "sort_order")

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_ID_TOKEN_RE = re.compile(r"^\+?\d+$")
_ID_SEPARATOR_RE = re.compile(r"[,\s]+")
_KEY_STRIP_RE = re.compile(r"[^a-z0-9_-]")


def coerce_int(value: Any) -> int | None:
    """Coerce a raw value to an integer, or ``None`` if it has no integer reading.

    Strings are read up to the first non-digit (``"12px"`` → 12), floats are
    truncated, booleans count as 0/1.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value)
        if match:
            return _saturating_int(match.group(1))
    return None


def _saturating_int(text: str) -> int:
    if len(text.lstrip("+-").lstrip("0")) > _MAX_INT_DIGITS:
        return -MAX_INT if text.startswith("-") else MAX_INT
    return int(text)


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def is_truthy(value: Any) -> bool:
    """Truthiness of a stored flag: ``None``, ``""``, ``"0"``, 0 and empty containers are false."""
    if isinstance(value, str):
        return value.strip() not in ("", "0")
    return bool(value)


def sanitize_key(raw: Any) -> str:
    """Reduce a raw tag to lowercase alphanumerics, dashes and underscores."""
    if not isinstance(raw, str):
        return ""
    return _KEY_STRIP_RE.sub("", raw.lower())


def parse_id_list(raw: Any) -> list[int]:
    """Parse a list of document ids from text or a sequence.

    Text is truncated to 10,000 characters and split on commas and
    whitespace. Non-numeric and non-positive tokens are dropped. The result
    is deduplicated in first-seen order and capped at 1000 ids.
    """
    tokens: Iterable[Any]
    if isinstance(raw, str):
        text = raw.strip()[:MAX_ID_LIST_CHARS]
        tokens = _ID_SEPARATOR_RE.split(text)
    elif isinstance(raw, (list, tuple, set, frozenset)):
        tokens = raw
    else:
        return []

    ids: list[int] = []
    seen: set[int] = set()
    for token in tokens:
        doc_id = _parse_id(token)
        if doc_id is None or doc_id in seen:
            continue
        seen.add(doc_id)
        ids.append(doc_id)
        if len(ids) >= MAX_EXCLUDED_IDS:
            break
    return ids


def _parse_id(token: Any) -> int | None:
    if isinstance(token, bool):
        return None
    if isinstance(token, int):
        return token if token > 0 else None
    if isinstance(token, str):
        token = token.strip()
        if _ID_TOKEN_RE.match(token):
            value = _saturating_int(token)
            return value if value > 0 else None
    return None


def parse_kind_list(raw: Any) -> list[str]:
    """Sanitize a list of kind tags, dropping blanks and duplicates."""
    if not isinstance(raw, (list, tuple)):
        return []
    kinds: list[str] = []
    for item in raw:
        tag = sanitize_key(item)
        if tag and tag not in kinds:
            kinds.append(tag)
    return kinds


def parse_sort_order(raw: Any) -> SortOrder:
    if isinstance(raw, str) and raw.strip() in SORT_ORDERS:
        return raw.strip()  # type: ignore[return-value]
    return DEFAULT_SORT_ORDER


def _stored_int(stored: Mapping[str, Any], key: str, default: int, lower: int, upper: int) -> int:
    value = coerce_int(stored.get(key))
    if value is None:
        return default
    return clamp(value, lower, upper)


def _override_value(overrides: Mapping[str, Any], key: str) -> str:
    """Return an override as trimmed text; empty means "not given"."""
    value = overrides.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _override_int(
    overrides: Mapping[str, Any], key: str, current: int, default: int, lower: int, upper: int
) -> int:
    """Apply an integer override. Non-numeric text resolves to *default*."""
    raw = _override_value(overrides, key)
    if not raw:
        return current
    value = coerce_int(raw)
    if value is None:
        return default
    return clamp(value, lower, upper)


def resolve_config(
    stored: Any,
    overrides: Mapping[str, Any] | None = None,
) -> EffectiveConfig:
    """Build the effective configuration for one render.

    *stored* is the persisted settings record (may be missing or not a
    mapping at all). *overrides* holds the placeholder attributes; unknown
    attributes are ignored and empty values leave the stored setting in
    effect. A non-numeric integer field, stored or overridden, resolves to
    its default.
    """
    if not isinstance(stored, dict):
        stored = {}
    overrides = overrides or {}

    included_kinds = parse_kind_list(stored.get("included_kinds"))

    hierarchical = (
        is_truthy(stored["hierarchical"]) if "hierarchical" in stored else DEFAULT_HIERARCHICAL
    )
    exclude_noindex = is_truthy(stored.get("exclude_noindex", DEFAULT_EXCLUDE_NOINDEX))
    max_depth = _stored_int(stored, "max_depth", DEFAULT_MAX_DEPTH, 1, MAX_DEPTH_LIMIT)
    cache_ttl = _stored_int(
        stored, "cache_ttl_minutes", DEFAULT_CACHE_TTL_MINUTES, 0, MAX_CACHE_TTL_MINUTES
    )
    sort_order = parse_sort_order(stored.get("sort_order"))
    excluded = parse_id_list(stored.get("excluded_ids"))

    # Placeholder overrides
    raw_excluded = _override_value(overrides, "exclude_posts")
    if raw_excluded:
        excluded = parse_id_list(excluded + parse_id_list(raw_excluded))

    raw_hierarchical = _override_value(overrides, "hierarchical")
    if raw_hierarchical:
        hierarchical = raw_hierarchical in ("true", "1")

    max_depth = _override_int(
        overrides, "max_depth", max_depth, DEFAULT_MAX_DEPTH, 1, MAX_DEPTH_LIMIT
    )

    raw_sort = _override_value(overrides, "sort_order")
    if raw_sort:
        sort_order = parse_sort_order(raw_sort)

    cache_ttl = _override_int(
        overrides, "cache_minutes", cache_ttl, DEFAULT_CACHE_TTL_MINUTES, 0, MAX_CACHE_TTL_MINUTES
    )

    return EffectiveConfig(
        included_kinds=tuple(included_kinds),
        excluded_ids=tuple(excluded),
        hierarchical=hierarchical,
        max_depth=max_depth,
        sort_order=sort_order,
        exclude_noindex=exclude_noindex,
        cache_ttl_minutes=cache_ttl,
    )
