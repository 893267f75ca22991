"""Placeholder parsing and expansion.

Pages embed the sitemap with ``[html_sitemap]``, optionally with
attributes: ``[html_sitemap max_depth="3" sort_order='recent' hierarchical=false]``.
A doubled placeholder ``[[html_sitemap]]`` is an escape and is emitted as
the literal ``[html_sitemap]``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from htmlsitemap.engine import SitemapEngine

log = structlog.get_logger()

PLACEHOLDER_NAME = "html_sitemap"

_PLACEHOLDER_RE = re.compile(
    r"\[(\[?)" + PLACEHOLDER_NAME + r"(?![\w-])([^\]]*?)/?\](\]?)"
)

_ATTRIBUTE_RE = re.compile(
    r"""([\w-]+)\s*=\s*"([^"]*)"(?:\s|$)"""
    r"""|([\w-]+)\s*=\s*'([^']*)'(?:\s|$)"""
    r"""|([\w-]+)\s*=\s*([^\s'"]+)(?:\s|$)"""
    r"""|"[^"]*"(?:\s|$)"""
    r"""|'[^']*'(?:\s|$)"""
    r"""|\S+(?:\s|$)"""
)

# Typographic quotes and non-breaking spaces that editors substitute
_NORMALIZE = str.maketrans(
    {
        "\u00a0": " ",
        "\u200b": " ",
        "\u201c": '"',
        "\u201d": '"',
        "\u2033": '"',
        "\u2018": "'",
        "\u2019": "'",
        "\u2032": "'",
    }
)


def parse_placeholder_attributes(text: str) -> dict[str, str]:
    """Parse the attribute text of one placeholder into a dict.

    Names are lowercased. Values may be double-quoted, single-quoted or
    bare. Positional (unnamed) values are dropped; the last occurrence of a
    repeated name wins.
    """
    attributes: dict[str, str] = {}
    for match in _ATTRIBUTE_RE.finditer(text.translate(_NORMALIZE)):
        if match.group(1) is not None:
            attributes[match.group(1).lower()] = match.group(2)
        elif match.group(3) is not None:
            attributes[match.group(3).lower()] = match.group(4)
        elif match.group(5) is not None:
            attributes[match.group(5).lower()] = match.group(6)
    return attributes


def find_placeholders(page: str) -> list[dict[str, str]]:
    """Attributes of each unescaped placeholder in *page*, in order."""
    return [
        parse_placeholder_attributes(match.group(2))
        for match in _PLACEHOLDER_RE.finditer(page)
        if not (match.group(1) == "[" and match.group(3) == "]")
    ]


async def expand_placeholders(page: str, engine: SitemapEngine) -> str:
    """Replace every placeholder in *page* with its rendered fragment."""
    parts: list[str] = []
    position = 0
    count = 0
    for match in _PLACEHOLDER_RE.finditer(page):
        parts.append(page[position : match.start()])
        position = match.end()
        if match.group(1) == "[" and match.group(3) == "]":
            parts.append(match.group(0)[1:-1])
            continue
        fragment = await engine.render(parse_placeholder_attributes(match.group(2)))
        # A single stray bracket on either side is kept as text
        parts.append(match.group(1) + fragment + match.group(3))
        count += 1
    parts.append(page[position:])

    if count:
        log.debug("placeholders_expanded", count=count)
    return "".join(parts)
