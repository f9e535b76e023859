"""
Page host: the side-effecting half of the document capability.

:class:`PageHost` is what command actions and the screen reader call to
scroll, navigate, click, type and highlight.  :class:`DocumentPage` is the
in-process host backing VoxAid's CLI and tests: it applies every action to a
parsed :class:`~voxaid.dom.document.Document` and records the resulting DOM
events in :attr:`DocumentPage.events`.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..utils.logging_system import setup_log_system
from .document import Document, Node

logger = setup_log_system("page")

_DISPLAY_NONE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


class PageHost(ABC):
    """Operations a host page must offer to VoxAid."""

    document: Document

    # Scrolling
    @abstractmethod
    def scroll_by(self, dy: float) -> None: ...

    @abstractmethod
    def scroll_to(self, y: float) -> None: ...

    @abstractmethod
    def scroll_into_view(self, node: Node) -> None: ...

    # History
    @abstractmethod
    def back(self) -> None: ...

    @abstractmethod
    def forward(self) -> None: ...

    @abstractmethod
    def reload(self) -> None: ...

    # Interaction
    @abstractmethod
    def click(self, node: Node) -> None: ...

    @abstractmethod
    def focus(self, node: Node) -> None: ...

    @abstractmethod
    def fill(self, node: Node, value: str) -> None: ...

    @abstractmethod
    def press_key(self, node: Node, key: str) -> None: ...

    @abstractmethod
    def submit(self, form: Node) -> None: ...

    # Presentation
    @abstractmethod
    def set_font_scale(self, scale: float) -> None: ...

    @property
    @abstractmethod
    def font_scale(self) -> float: ...

    def add_root_class(self, name: str) -> None:
        self.document.root.add_class(name)

    def remove_root_class(self, name: str) -> None:
        self.document.root.remove_class(name)

    def is_visible(self, node: Node) -> bool:
        for current in [node, *node.ancestors()]:
            if current.has_attr("hidden") or current.input_type == "hidden":
                return False
            if _DISPLAY_NONE.search(current.get("style", "") or ""):
                return False
        return True


class DocumentPage(PageHost):
    """In-memory page host over a parsed Document."""

    def __init__(self, document: Document, viewport_height: float = 800.0) -> None:
        self.document = document
        self.viewport_height = viewport_height
        self.scroll_y = 0.0
        self.events: List[Tuple[str, Optional[Node]]] = []
        self.history: List[str] = [document.url or "about:blank"]
        self.history_index = 0
        self.reload_count = 0
        self.submitted: List[Node] = []
        self._font_scale = 1.0

    # ------------------------------------------------------------------
    # Scrolling
    # ------------------------------------------------------------------
    @property
    def max_scroll(self) -> float:
        return max(0.0, self.document.scroll_height - self.viewport_height)

    def _set_scroll(self, y: float) -> None:
        self.scroll_y = min(max(0.0, y), self.max_scroll)
        self.events.append(("scroll", None))

    def scroll_by(self, dy: float) -> None:
        self._set_scroll(self.scroll_y + dy)

    def scroll_to(self, y: float) -> None:
        self._set_scroll(y)

    def scroll_into_view(self, node: Node) -> None:
        self._set_scroll(node.top - self.viewport_height / 2)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    @property
    def url(self) -> str:
        return self.history[self.history_index]

    def navigate(self, url: str) -> None:
        del self.history[self.history_index + 1:]
        self.history.append(url)
        self.history_index += 1
        self.events.append(("navigate", None))
        logger.debug(f"Navigated to {url}")

    def back(self) -> None:
        if self.history_index > 0:
            self.history_index -= 1
        self.events.append(("back", None))

    def forward(self) -> None:
        if self.history_index < len(self.history) - 1:
            self.history_index += 1
        self.events.append(("forward", None))

    def reload(self) -> None:
        self.reload_count += 1
        self.events.append(("reload", None))

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------
    def _dispatch(self, name: str, node: Node) -> None:
        self.events.append((name, node))

    def click(self, node: Node) -> None:
        self._dispatch("click", node)
        if node.tag == "input" and node.input_type == "checkbox":
            node.checked = not node.checked
            self._dispatch("change", node)
        elif node.tag == "input" and node.input_type == "radio":
            self._check_radio(node)
        elif self._is_submit_control(node):
            form = node.closest(lambda n: n.tag == "form")
            if form is not None:
                self.submit(form)
        elif node.tag == "a" and node.get("href"):
            self.navigate(node.get("href") or "")

    def _check_radio(self, node: Node) -> None:
        name = node.get("name")
        if name:
            for other in self.document.find_all(
                lambda n: n.tag == "input" and n.input_type == "radio" and n.get("name") == name
            ):
                other.checked = False
        node.checked = True
        self._dispatch("change", node)

    @staticmethod
    def _is_submit_control(node: Node) -> bool:
        if node.tag == "input":
            return node.input_type in ("submit", "image")
        if node.tag == "button":
            return (node.get("type") or "submit").lower() == "submit"
        return False

    def focus(self, node: Node) -> None:
        self.document.active_element = node
        self._dispatch("focus", node)

    def fill(self, node: Node, value: str) -> None:
        self.focus(node)
        node.value = value
        self._dispatch("input", node)
        self._dispatch("change", node)

    def press_key(self, node: Node, key: str) -> None:
        self._dispatch(f"keydown:{key}", node)
        if key == "Enter" and node.tag == "input":
            form = node.closest(lambda n: n.tag == "form")
            if form is not None:
                self.submit(form)

    def submit(self, form: Node) -> None:
        self.submitted.append(form)
        self._dispatch("submit", form)
        logger.info(f"Form submitted: {form!r}")

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------
    @property
    def font_scale(self) -> float:
        return self._font_scale

    def set_font_scale(self, scale: float) -> None:
        self._font_scale = scale
        self.document.root.attrs["style"] = f"font-size: {round(scale * 100)}%"

    def events_named(self, name: str) -> List[Optional[Node]]:
        return [node for event, node in self.events if event == name]
