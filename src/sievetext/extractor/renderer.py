"""
BeautifulSoup-based HTML renderer.

Renders markup the way a text browser would before wrapping: every block
element starts a new line, inline content (links included) flows into the
current line, and non-visible content is dropped.
"""

from __future__ import annotations

from typing import List, Union

import structlog
from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, PageElement, ProcessingInstruction, Tag

logger = structlog.get_logger(__name__)

DROPPED_TAGS = frozenset({"script", "style", "noscript", "template", "head", "iframe", "object", "svg"})

BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "caption", "center", "dd", "details",
        "dialog", "dir", "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
        "frameset", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "html", "legend", "li",
        "main", "menu", "nav", "ol", "option", "p", "pre", "section", "summary", "table", "tbody",
        "td", "tfoot", "th", "thead", "title", "tr", "ul",
    }
)  # fmt: skip

_SKIPPED_STRINGS = (Comment, Doctype, ProcessingInstruction)

# Marks where a block element closes.
_BLOCK_END = object()


class SoupRenderer:
    """Renders HTML into an ordered list of raw text lines."""

    name = "soup"

    def __init__(self, parser: str = "html.parser") -> None:
        self.parser = parser

    def render(self, html: str) -> List[str]:
        soup = BeautifulSoup(html, self.parser)
        for tag in soup.find_all(DROPPED_TAGS):
            tag.decompose()

        lines: List[str] = []
        current: List[str] = []

        def flush() -> None:
            if current:
                lines.append("".join(current))
                current.clear()

        # Iterative walk; page nesting depth is unbounded.
        stack: List[Union[PageElement, object]] = list(reversed(soup.contents))
        while stack:
            node = stack.pop()
            if node is _BLOCK_END:
                flush()
            elif isinstance(node, NavigableString):
                if not isinstance(node, _SKIPPED_STRINGS):
                    current.append(str(node))
            elif isinstance(node, Tag):
                name = (node.name or "").lower()
                if name == "br":
                    flush()
                elif name in BLOCK_TAGS:
                    flush()
                    stack.append(_BLOCK_END)
                    stack.extend(reversed(node.contents))
                else:
                    stack.extend(reversed(node.contents))

        flush()
        return lines
