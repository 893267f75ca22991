"""Index-policy evaluation.

Decides whether a document is marked "do not index" by an upstream SEO
integration. Only a fixed list of metadata keys is consulted, in order; the
first key whose value reads as noindex wins.

Values arrive raw from the content store. A value may be a sequence, a
textual serialised sequence (JSON or PHP ``serialize()`` output, one level
deep), or a scalar.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

POLICY_META_KEYS: tuple[str, ...] = (
    "_yoast_wpseo_meta-robots-noindex",
    "_yoast_wpseo_noindex",
    "rank_math_robots",
    "_rank_math_robots",
    "_seopress_robots_index",
    "seopress_robots",
)

MAX_KEY_LENGTH = 100
MAX_VALUE_LENGTH = 1000
MAX_SEQUENCE_ITEMS = 50
TEST_PREFIX_LENGTH = 100

_SUPPRESS_VALUES = frozenset({"1", "yes", "true", "on", "no", "noindex"})

_PHP_ARRAY_RE = re.compile(rb"^a:(\d+):\{(.*)\}$", re.DOTALL)
_PHP_TOKEN_RE = re.compile(rb's:(\d+):"|i:(-?\d+);|b:([01]);|d:([^;]+);|N;')


def matching_policy_key(
    metadata: Mapping[str, Any],
    keys: tuple[str, ...] = POLICY_META_KEYS,
) -> str | None:
    """Return the first metadata key that marks the document noindex, or None."""
    for key in keys:
        if len(key) > MAX_KEY_LENGTH:
            continue
        value = metadata.get(key)
        if _is_empty(value):
            continue
        if isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
            continue
        if any(_suppresses(test) for test in _test_strings(value)):
            return key
    return None


def is_suppressed(metadata: Mapping[str, Any]) -> bool:
    return matching_policy_key(metadata) is not None


def _suppresses(test: str) -> bool:
    return "noindex" in test or test in _SUPPRESS_VALUES


def _is_empty(value: Any) -> bool:
    # Host-style emptiness: "0" counts as empty
    if isinstance(value, str):
        return value == "" or value == "0"
    return not value


def _test_strings(value: Any) -> Iterator[str]:
    if isinstance(value, (list, tuple)):
        yield from _sequence_tests(value)
        return
    if isinstance(value, dict):
        yield from _sequence_tests(list(value.values()))
        return
    if isinstance(value, str):
        decoded = decode_serialized_sequence(value)
        if decoded is not None:
            yield from _sequence_tests(decoded)
            return
    yield _as_text(value)[:TEST_PREFIX_LENGTH].lower()


def _sequence_tests(items: list[Any] | tuple[Any, ...]) -> Iterator[str]:
    for item in items[:MAX_SEQUENCE_ITEMS]:
        yield _as_text(item)[:TEST_PREFIX_LENGTH].lower()


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, (int, float)):
        return str(value)
    # Nested containers and unknown objects never match
    return ""


def decode_serialized_sequence(text: str) -> list[Any] | None:
    """Decode a one-level serialised sequence, or return None if *text* is not one.

    Accepts JSON arrays and objects (object values are taken in order) and
    PHP ``serialize()`` arrays of scalars.
    """
    stripped = text.strip()
    if stripped[:1] in ("[", "{"):
        try:
            decoded = json.loads(stripped)
        except ValueError:
            return None
        if isinstance(decoded, list):
            return decoded
        if isinstance(decoded, dict):
            return list(decoded.values())
        return None
    if stripped.startswith("a:"):
        return _decode_php_array(stripped.encode("utf-8"))
    return None


def _decode_php_array(data: bytes) -> list[Any] | None:
    match = _PHP_ARRAY_RE.match(data)
    if match is None:
        return None
    body = match.group(2)

    tokens: list[Any] = []
    pos = 0
    while pos < len(body):
        token = _PHP_TOKEN_RE.match(body, pos)
        if token is None:
            # Nested arrays, objects and malformed input are not decoded
            return None
        if token.group(1) is not None:
            start = token.end()
            end = start + int(token.group(1))
            if body[end : end + 2] != b'";':
                return None
            tokens.append(body[start:end].decode("utf-8", errors="replace"))
            pos = end + 2
            continue
        if token.group(2) is not None:
            tokens.append(int(token.group(2)))
        elif token.group(3) is not None:
            tokens.append(token.group(3) == b"1")
        elif token.group(4) is not None:
            tokens.append(token.group(4).decode("ascii", errors="replace"))
        else:
            tokens.append(None)
        pos = token.end()

    if len(tokens) % 2:
        return None
    # Tokens alternate key, value
    return tokens[1::2]
