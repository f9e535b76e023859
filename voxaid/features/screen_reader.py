"""
Screen-reader traversal engine.

``scan_page`` walks the document and builds an ordered list of readable
elements (headings, paragraphs, list items, links, buttons, described
images and form controls), sorted top to bottom.  A cursor moves through the
list with wraparound; the current element is highlighted, scrolled into
view and spoken.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import ScreenReaderSettings
from ..dom.document import FORM_CONTROL_TAGS, Document, Node
from ..dom.page import PageHost
from ..errors import CommandError
from ..tts.tts_engine import SpeechSynthesizer
from ..utils.logging_system import setup_log_system

logger = setup_log_system("screen_reader")

HIGHLIGHT_CLASS = "voxaid-reading-current"
HIGHLIGHT_OUTLINE = "3px solid #0078FF"
ACTIVE_CLASS = "voxaid-screen-reader-active"

MIN_RATE = 0.5
MAX_RATE = 2.0
RATE_STEP = 0.1

_HEADING = re.compile(r"^h([1-6])$")
_WHITESPACE = re.compile(r"\s+")
_BUTTON_INPUTS = {"submit": "Submit", "reset": "Reset", "button": "Button", "image": "Button"}


@dataclass
class ReadableElement:
    node: Node
    text: str
    role: str
    level: Optional[int] = None
    state: Optional[str] = None


def _clean(text: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def _text_without(node: Node, skip: Node) -> str:
    parts: List[str] = []
    for item in node.contents:
        if isinstance(item, str):
            parts.append(item)
        elif item is not skip:
            parts.append(_text_without(item, skip))
    return "".join(parts)


def control_label(document: Document, node: Node) -> str:
    """Accessible name of a form control."""
    for label in document.labels_for(node):
        text = _clean(_text_without(label, node))
        if text:
            return text
    aria = _clean(node.get("aria-label"))
    if aria:
        return aria
    labelledby = node.get("aria-labelledby") or ""
    names = [document.get_element_by_id(i) for i in labelledby.split()]
    return _clean(" ".join(n.text_content for n in names if n is not None))


def _describe_control(document: Document, node: Node) -> Optional[ReadableElement]:
    kind = node.input_type or node.tag
    if kind == "hidden":
        return None
    label = control_label(document, node)

    if kind == "checkbox":
        role, role_name = "checkbox", "checkbox"
        state = "checked" if node.checked else "not checked"
    elif kind == "radio":
        role, role_name = "radio", "radio button"
        state = "selected" if node.checked else "not selected"
    elif kind in _BUTTON_INPUTS:
        text = _clean(node.value) or label or _BUTTON_INPUTS[kind]
        return ReadableElement(node, f"{text}, button", "button")
    elif kind == "select":
        role, role_name = "combobox", "combo box"
        option = node.selected_option
        state = _clean(option.text_content) if option is not None else "no selection"
        label = label or "Dropdown menu"
    else:
        role = "textbox"
        role_name = "text area" if kind == "textarea" else "text field"
        label = label or _clean(node.get("placeholder")) or _clean(node.get("name"))
        if not node.value:
            state = "blank"
        elif kind == "password":
            state = "filled"
        else:
            state = node.value

    parts = [p for p in (label, role_name, state) if p]
    return ReadableElement(node, ", ".join(parts), role, state=state)


def describe_node(document: Document, node: Node) -> Optional[ReadableElement]:
    """Readable form of ``node``, or ``None`` if it is not read on its own."""
    heading = _HEADING.match(node.tag)
    if heading:
        text = _clean(node.text_content)
        level = int(heading.group(1))
        return ReadableElement(node, f"Heading level {level}: {text}", "heading", level=level) if text else None
    if node.tag == "p":
        text = _clean(node.text_content)
        return ReadableElement(node, text, "paragraph") if text else None
    if node.tag == "li":
        text = _clean(node.text_content)
        return ReadableElement(node, f"List item: {text}", "listitem") if text else None
    if node.tag == "a":
        text = _clean(node.text_content) or _clean(node.get("aria-label"))
        return ReadableElement(node, f"Link: {text}", "link") if text else None
    if node.tag == "button" or (node.role == "button" and node.tag not in FORM_CONTROL_TAGS):
        text = _clean(node.text_content) or _clean(node.get("aria-label"))
        return ReadableElement(node, f"Button: {text}", "button") if text else None
    if node.tag == "img":
        text = _clean(node.get("alt"))
        if not text:
            figure = node.closest(lambda n: n.tag == "figure")
            caption = figure.find(lambda n: n.tag == "figcaption") if figure is not None else None
            text = _clean(caption.text_content) if caption is not None else ""
        return ReadableElement(node, f"Image: {text}", "img") if text else None
    if node.tag in FORM_CONTROL_TAGS:
        return _describe_control(document, node)
    return None


class ScreenReader:
    """Reads a page element by element through a speech synthesizer."""

    def __init__(
        self,
        page: PageHost,
        synthesizer: SpeechSynthesizer,
        settings: Optional[ScreenReaderSettings] = None,
        *,
        language: str = "en-US",
        activate: Optional[Callable[[], object]] = None,
    ) -> None:
        self.page = page
        self.synthesizer = synthesizer
        self.settings = settings or ScreenReaderSettings()
        self.language = language
        # Routed through the feature state machine by the session
        self.activate: Callable[[], object] = activate or self.enable
        self._elements: List[ReadableElement] = []
        self._cursor = -1
        self._active = False

    @property
    def elements(self) -> List[ReadableElement]:
        return list(self._elements)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def current(self) -> Optional[ReadableElement]:
        if 0 <= self._cursor < len(self._elements):
            return self._elements[self._cursor]
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def enable(self) -> None:
        if self._active:
            return
        self._active = True
        self.page.add_root_class(ACTIVE_CLASS)
        self.scan_page()
        logger.info("Screen reader enabled.")

    def disable(self) -> None:
        if not self._active:
            return
        self.stop_reading()
        self._clear_highlight()
        self._cursor = -1
        self.page.remove_root_class(ACTIVE_CLASS)
        self._active = False
        logger.info("Screen reader disabled.")

    def cleanup(self) -> None:
        self.stop_reading()
        self._clear_highlight()
        self._elements = []
        self._cursor = -1
        if self._active:
            self.page.remove_root_class(ACTIVE_CLASS)
            self._active = False

    # ------------------------------------------------------------------
    # Scanning and traversal
    # ------------------------------------------------------------------
    def scan_page(self) -> List[ReadableElement]:
        """Rebuild the element list; the cursor resets to -1."""
        self._clear_highlight()
        self._cursor = -1
        document = self.page.document
        found = []
        for node in document.iter():
            item = describe_node(document, node)
            if item is not None and self.page.is_visible(node):
                found.append(item)
        # sort() is stable, so equal positions keep document order
        found.sort(key=lambda e: e.node.top)
        self._elements = found
        logger.info(f"Screen reader found {len(found)} readable elements.")
        return list(found)

    def next(self) -> Optional[ReadableElement]:
        if not self._elements:
            return None
        self._clear_highlight()
        self._cursor = (self._cursor + 1) % len(self._elements)
        return self._present()

    def previous(self) -> Optional[ReadableElement]:
        if not self._elements:
            return None
        self._clear_highlight()
        self._cursor -= 1
        if self._cursor < 0:
            self._cursor = len(self._elements) - 1
        return self._present()

    def read_page(self) -> Optional[ReadableElement]:
        """Read from the top of the page."""
        self.activate()
        if not self._elements:
            self.scan_page()
        self._clear_highlight()
        self._cursor = -1
        return self.next()

    def _present(self) -> ReadableElement:
        element = self._elements[self._cursor]
        element.node.add_class(HIGHLIGHT_CLASS)
        element.node.outline = HIGHLIGHT_OUTLINE
        self.page.scroll_into_view(element.node)
        self.speak(element.text)
        return element

    def _clear_highlight(self) -> None:
        element = self.current
        if element is not None:
            element.node.remove_class(HIGHLIGHT_CLASS)
            element.node.outline = ""

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------
    @property
    def is_speaking(self) -> bool:
        return self.synthesizer.is_speaking

    def speak(self, text: str) -> None:
        s = self.settings
        self.synthesizer.speak(
            text, language=self.language, rate=s.rate, pitch=s.pitch, volume=s.volume, voice=s.voice
        )

    def read_text(self, text: str) -> None:
        text = _clean(text)
        if text:
            self.speak(text)

    def read_selection(self) -> str:
        text = _clean(self.page.document.selection)
        if not text:
            raise CommandError("No text selected")
        self.speak(text)
        return text

    def stop_reading(self) -> None:
        self.synthesizer.cancel()

    def increase_speed(self) -> float:
        self.settings.rate = round(min(MAX_RATE, self.settings.rate + RATE_STEP), 1)
        logger.debug(f"Reading rate now {self.settings.rate}")
        return self.settings.rate

    def decrease_speed(self) -> float:
        self.settings.rate = round(max(MIN_RATE, self.settings.rate - RATE_STEP), 1)
        logger.debug(f"Reading rate now {self.settings.rate}")
        return self.settings.rate
