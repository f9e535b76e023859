"""
Build a :class:`~voxaid.dom.document.Document` from HTML markup.

Parsing is done with BeautifulSoup's ``html.parser`` backend.  Markup has no
layout, so each element gets a vertical position from a ``data-top``
attribute when present, otherwise from its position in document order
(``LINE_HEIGHT`` per element).  Script, style and template content is not
part of the readable tree and is dropped.
"""
from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from ..utils.logging_system import setup_log_system
from .document import Document, Node

logger = setup_log_system("html_loader")

LINE_HEIGHT = 20.0
_SKIPPED_TAGS = {"script", "style", "template", "noscript", "head"}


def _attrs_of(tag: Tag) -> dict:
    attrs = {}
    for key, value in tag.attrs.items():
        # bs4 hands multi-valued attributes (class, rel) back as lists
        attrs[key] = " ".join(value) if isinstance(value, list) else value
    return attrs


def _position(tag: Tag, order: int) -> float:
    raw = tag.get("data-top")
    if raw is not None:
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric data-top={raw!r} on <{tag.name}>.")
    return order * LINE_HEIGHT


def parse_html(markup: str, url: str = "") -> Document:
    """Parse ``markup`` into a Document."""
    soup = BeautifulSoup(markup, "html.parser")
    order = 0

    def convert(tag: Tag, parent: Optional[Node]) -> Node:
        nonlocal order
        node = Node(tag.name, _attrs_of(tag), top=_position(tag, order))
        order += 1
        if parent is not None:
            parent.append(node)
        for child in tag.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                node.append(str(child))
            elif isinstance(child, Tag) and child.name not in _SKIPPED_TAGS:
                convert(child, node)
        return node

    html_tag = soup.find("html")
    if isinstance(html_tag, Tag):
        root = convert(html_tag, None)
    else:
        # Fragment: wrap everything in a synthetic <html><body>.
        root = Node("html")
        body = Node("body")
        root.append(body)
        for child in soup.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                body.append(str(child))
            elif isinstance(child, Tag) and child.name not in _SKIPPED_TAGS:
                convert(child, body)

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if isinstance(title_tag, Tag) else ""
    document = Document(root, title=title, url=url)
    logger.debug(f"Parsed document '{title}' with {sum(1 for _ in document.iter())} elements.")
    return document


def load_html_file(path: str) -> Document:
    with open(path, "r", encoding="utf-8") as fh:
        return parse_html(fh.read(), url=f"file://{path}")
