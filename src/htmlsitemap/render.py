"""Sitemap markup.

Turns selected documents into the sitemap fragment. Output is compact (no
whitespace between tags) and depends only on its inputs, so identical
selections always produce byte-identical fragments.

Fragment shape::

    <div class="hsb-sitemap">
      <section class="hsb-pt-group hsb-pt-{KIND}"><h3>{LABEL}</h3><ul>...</ul></section>
    </div>
    <style type="text/css">...</style>
"""

from __future__ import annotations

import html
import re
from typing import TYPE_CHECKING
from urllib.parse import quote, urlsplit

if TYPE_CHECKING:
    from collections.abc import Sequence

    from htmlsitemap.models.content import ContentKind, Document
    from htmlsitemap.walker import SitemapNode

CONTAINER_OPEN = '<div class="hsb-sitemap">'
CONTAINER_CLOSE = "</div>"

STYLE_BLOCK = (
    '<style type="text/css">'
    ".hsb-sitemap h3{margin-top:16px;font-size:1.1em}"
    ".hsb-sitemap ul{list-style:disc;margin-left:20px}"
    ".hsb-sitemap li{margin:4px 0}"
    ".hsb-sitemap .hsb-children{margin-left:15px;margin-top:8px}"
    ".hsb-sitemap .hsb-children ul{list-style:circle;margin-left:15px}"
    ".hsb-sitemap .hsb-depth-2 ul{list-style:square}"
    ".hsb-sitemap .hsb-depth-3 ul{list-style:disc}"
    ".hsb-sitemap .hsb-depth-4 ul{list-style:circle}"
    ".hsb-sitemap .hsb-depth-5 ul{list-style:square}"
    "</style>"
)

UNAVAILABLE_NOTICE = "<p>Sitemap temporarily unavailable due to high server load.</p>"

TITLE_WORD_LIMIT = 20
LABEL_WORD_LIMIT = 10
ELLIPSIS = "…"

_TAG_RE = re.compile(r"<[^>]*>")

# Reserved and unreserved characters stay as-is; "%" keeps existing escapes intact.
_URL_SAFE_CHARS = "-._~:/?#[]@!$&'()*+,;=%"

_ALLOWED_SCHEMES = frozenset(
    {"http", "https", "ftp", "ftps", "mailto", "news", "irc", "nntp", "feed", "tel", "webcal"}
)


def trim_words(text: str, limit: int) -> str:
    """Strip tags, collapse whitespace and keep at most *limit* words.

    Truncated text gets a trailing ellipsis.
    """
    words = _TAG_RE.sub("", text).split()
    if len(words) > limit:
        return " ".join(words[:limit]) + ELLIPSIS
    return " ".join(words)


def escape_text(text: str) -> str:
    """Escape display text without encoding entities it already carries."""
    return html.escape(html.unescape(text), quote=True)


def escape_title(title: str) -> str:
    return escape_text(trim_words(title, TITLE_WORD_LIMIT))


def escape_url(url: str) -> str:
    """Percent-encode *url* and escape it for an attribute value.

    Returns an empty string for URLs with a scheme outside the allowlist
    (``javascript:``, ``data:``, ...).
    """
    url = url.strip()
    if not url:
        return ""
    encoded = quote(url, safe=_URL_SAFE_CHARS)
    try:
        scheme = urlsplit(encoded).scheme.lower()
    except ValueError:
        return ""
    if scheme and scheme not in _ALLOWED_SCHEMES:
        return ""
    return html.escape(encoded, quote=True)


def render_anchor(document: Document) -> str:
    return f'<a href="{escape_url(document.url)}">{escape_title(document.title)}</a>'


def render_flat_list(documents: Sequence[Document]) -> str:
    """Render a flat ``<ul>``; empty input renders nothing."""
    if not documents:
        return ""
    items = "".join(f"<li>{render_anchor(doc)}</li>" for doc in documents)
    return f"<ul>{items}</ul>"


def render_tree(nodes: Sequence[SitemapNode], depth: int = 1) -> str:
    """Render a nested ``<ul>``.

    A node with rendered children wraps them in ``hsb-children hsb-depth-N``
    where N is the node's own 1-based depth.
    """
    if not nodes:
        return ""
    parts = ["<ul>"]
    for node in nodes:
        parts.append(f"<li>{render_anchor(node.document)}")
        if node.children:
            parts.append(
                f'<div class="hsb-children hsb-depth-{depth}">'
                f"{render_tree(node.children, depth + 1)}"
                "</div>"
            )
        parts.append("</li>")
    parts.append("</ul>")
    return "".join(parts)


def render_section(kind: ContentKind, body: str) -> str:
    safe_tag = html.escape(kind.tag, quote=True)
    safe_label = escape_text(trim_words(kind.label, LABEL_WORD_LIMIT))
    return (
        f'<section class="hsb-pt-group hsb-pt-{safe_tag}">'
        f"<h3>{safe_label}</h3>{body}"
        "</section>"
    )


def render_fragment(sections: Sequence[str]) -> str:
    """Wrap sections in the sitemap container and append the style block."""
    return CONTAINER_OPEN + "".join(sections) + CONTAINER_CLOSE + STYLE_BLOCK
