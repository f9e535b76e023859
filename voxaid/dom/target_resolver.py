"""
Target resolution: map a spoken phrase to an element of the document.

Pages label their controls inconsistently, so no single heuristic is
reliable.  Every lookup is a cascade of increasingly loose tests that stops
at the first hit:

``resolve(text, role)``
    1. exact text match among candidates for ``role``
    2. substring match among the same candidates
    3. ``aria-label`` substring match
    4. any element whose text contains the phrase, walked up to the nearest
       ancestor that satisfies ``role``

``resolve_field(text)``
    exact id, ``name`` attribute, placeholder, ``aria-label``, then the text
    of an associated ``<label>``.

All functions here are pure reads over the document tree.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from ..utils.logging_system import setup_log_system
from .document import Document, Node

logger = setup_log_system("target_resolver")

_CLICKABLE_TAGS = {"a", "button", "input", "select", "textarea"}
_BUTTON_INPUT_TYPES = {"submit", "button", "reset", "image"}
_TEXT_FIELD_EXCLUDED_TYPES = _BUTTON_INPUT_TYPES | {"hidden", "checkbox", "radio", "file"}
_POINTER_CURSOR = re.compile(r"cursor\s*:\s*pointer", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

MAIN_CONTENT_MIN_CHARS = 100


class TargetRole(str, Enum):
    INTERACTIVE = "element"
    BUTTON = "button"
    LINK = "link"


def normalize(text: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", (text or "").lower()).strip()


def is_button(node: Node) -> bool:
    if node.tag == "button" or node.role == "button":
        return True
    return node.tag == "input" and node.input_type in _BUTTON_INPUT_TYPES


def is_link(node: Node) -> bool:
    return node.tag == "a"


def is_clickable(node: Node) -> bool:
    """Whether a user could reasonably click ``node``."""
    if node.tag in _CLICKABLE_TAGS or node.role == "button":
        return True
    if node.has_attr("onclick"):
        return True
    if _POINTER_CURSOR.search(node.get("style", "") or ""):
        return True
    return node.has_attr("tabindex") and node.get("tabindex") != "-1"


def _is_interactive_candidate(node: Node) -> bool:
    return node.tag == "a" or is_button(node) or node.has_attr("tabindex")


_CANDIDATES: Dict[TargetRole, Callable[[Node], bool]] = {
    TargetRole.INTERACTIVE: _is_interactive_candidate,
    TargetRole.BUTTON: is_button,
    TargetRole.LINK: is_link,
}

_FALLBACK_TARGET: Dict[TargetRole, Callable[[Node], bool]] = {
    TargetRole.INTERACTIVE: is_clickable,
    TargetRole.BUTTON: is_button,
    TargetRole.LINK: is_link,
}


def visible_text(node: Node) -> str:
    """Text a sighted user would read on the control, normalized."""
    if node.tag == "input" and node.input_type in _BUTTON_INPUT_TYPES:
        return normalize(node.value or node.get("alt"))
    return normalize(node.text_content)


def _first(nodes: Iterable[Node], predicate: Callable[[Node], bool]) -> Optional[Node]:
    for node in nodes:
        if predicate(node):
            return node
    return None


def resolve(document: Document, text: str, role: TargetRole = TargetRole.INTERACTIVE) -> Optional[Node]:
    """Find the element ``text`` refers to, or ``None``."""
    phrase = normalize(text)
    if not phrase:
        return None
    candidates = document.find_all(_CANDIDATES[role])

    hit = _first(candidates, lambda n: visible_text(n) == phrase)
    if hit is None:
        hit = _first(candidates, lambda n: phrase in visible_text(n))
    if hit is None:
        hit = _first(candidates, lambda n: phrase in normalize(n.get("aria-label")))
    if hit is None:
        wanted = _FALLBACK_TARGET[role]
        for node in document.iter():
            if phrase in normalize(node.text_content):
                hit = node.closest(wanted)
                if hit is not None:
                    break
    if hit is None:
        logger.debug(f"No {role.value} found for '{phrase}'.")
    return hit


def _field_candidates(document: Document) -> List[Node]:
    return document.find_all(
        lambda n: n.tag in ("textarea", "select")
        or (n.tag == "input" and n.input_type not in _TEXT_FIELD_EXCLUDED_TYPES)
    )


def _id_variants(phrase: str) -> List[str]:
    variants = [phrase, phrase.replace(" ", "-"), phrase.replace(" ", "_"), phrase.replace(" ", "")]
    return list(dict.fromkeys(variants))


def resolve_field(document: Document, text: str) -> Optional[Node]:
    """Find the form field a spoken field name refers to, or ``None``."""
    phrase = normalize(text)
    if not phrase:
        return None
    fields = _field_candidates(document)
    variants = _id_variants(phrase)

    hit = _first(fields, lambda n: n.id.lower() in variants)
    if hit is None:
        hit = _first(fields, lambda n: normalize(n.get("name")) in variants)
    if hit is None:
        hit = _first(fields, lambda n: phrase in normalize(n.get("placeholder")))
    if hit is None:
        hit = _first(fields, lambda n: phrase in normalize(n.get("aria-label")))
    if hit is None:
        for label in document.by_tag("label"):
            if phrase not in normalize(label.text_content):
                continue
            target_id = label.get("for")
            if target_id:
                target = document.get_element_by_id(target_id)
                hit = target if target in fields else None
            else:
                hit = label.find(lambda n: n in fields)
            if hit is not None:
                break
    if hit is None:
        logger.debug(f"No form field found for '{phrase}'.")
    return hit


def find_search_input(document: Document) -> Optional[Node]:
    def looks_like_search(node: Node) -> bool:
        if node.tag != "input":
            return False
        if node.input_type == "search":
            return True
        return any("search" in normalize(node.get(attr)) for attr in ("name", "placeholder", "id"))

    return document.find(looks_like_search)


def find_form_to_submit(document: Document, is_visible: Callable[[Node], bool]) -> Optional[Node]:
    """The form holding the focused element, else the first visible form."""
    active = document.active_element
    if active is not None:
        form = active.closest(lambda n: n.tag == "form")
        if form is not None:
            return form
    return _first(document.by_tag("form"), is_visible)


def find_submit_button(form: Node) -> Optional[Node]:
    return form.find(
        lambda n: (n.tag == "input" and n.input_type == "submit")
        or (n.tag == "button" and (n.get("type") or "submit").lower() == "submit")
    )


def find_main_content(document: Document) -> Optional[Node]:
    """Locate the element holding the page's main text."""
    selectors: List[Callable[[Node], bool]] = [
        lambda n: n.tag == "main",
        lambda n: n.tag == "article",
        lambda n: n.role == "main",
        lambda n: n.id == "content",
        lambda n: n.has_class("content"),
        lambda n: n.id == "main",
        lambda n: n.has_class("main"),
    ]
    for selector in selectors:
        node = document.find(selector)
        if node is not None and len(node.text_content.strip()) > MAIN_CONTENT_MIN_CHARS:
            return node

    best: Optional[Node] = None
    best_length = MAIN_CONTENT_MIN_CHARS
    for node in document.by_tag("div", "section", "article"):
        length = len(node.text_content.strip())
        if length > best_length:
            best, best_length = node, length
    return best


def find_image(document: Document, text: str, is_visible: Callable[[Node], bool]) -> Optional[Node]:
    """Image whose alt, title or src mentions ``text``; the first visible image when ``text`` is empty."""
    images = [n for n in document.by_tag("img") if is_visible(n)]
    phrase = normalize(text)
    if not phrase:
        return images[0] if images else None
    return _first(
        images, lambda n: any(phrase in normalize(n.get(attr)) for attr in ("alt", "title", "src"))
    )
