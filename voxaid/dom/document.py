"""
Read-only document tree used by the target resolver and the screen reader.

The tree mirrors the parts of a rendered web page VoxAid needs: tag names,
attributes, text, a vertical position for ordering, and the live state of
form controls.  Reading never changes content; the only mutations offered
are presentation ones (class list, outline) and form-control state, which
the page host changes on the user's behalf.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional, Union

Predicate = Callable[["Node"], bool]

FORM_CONTROL_TAGS = ("input", "textarea", "select")


class Node:
    """One element of the document tree."""

    def __init__(self, tag: str, attrs: Optional[Dict[str, str]] = None, top: float = 0.0) -> None:
        self.tag = tag.lower()
        self.attrs: Dict[str, str] = {k.lower(): ("" if v is None else str(v)) for k, v in (attrs or {}).items()}
        self.contents: List[Union["Node", str]] = []
        self.parent: Optional["Node"] = None
        self.top = float(top)
        self.outline = ""
        self._classes: List[str] = self.attrs.get("class", "").split()
        self.checked = "checked" in self.attrs
        self._value: Optional[str] = self.attrs.get("value")

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        return f"<Node {self.tag}{ident} top={self.top:g}>"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def append(self, child: Union["Node", str]) -> Union["Node", str]:
        if isinstance(child, Node):
            child.parent = self
        self.contents.append(child)
        return child

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------
    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name.lower(), default)

    def has_attr(self, name: str) -> bool:
        return name.lower() in self.attrs

    @property
    def id(self) -> str:
        return self.attrs.get("id", "")

    @property
    def role(self) -> str:
        return self.attrs.get("role", "").lower()

    @property
    def input_type(self) -> str:
        """Lower-cased ``type`` of an input; ``text`` when absent."""
        if self.tag != "input":
            return ""
        return (self.attrs.get("type") or "text").lower()

    @property
    def classes(self) -> List[str]:
        return list(self._classes)

    def has_class(self, name: str) -> bool:
        return name in self._classes

    def add_class(self, name: str) -> None:
        if name not in self._classes:
            self._classes.append(name)

    def remove_class(self, name: str) -> None:
        if name in self._classes:
            self._classes.remove(name)

    # ------------------------------------------------------------------
    # Text and form state
    # ------------------------------------------------------------------
    @property
    def children(self) -> List["Node"]:
        return [c for c in self.contents if isinstance(c, Node)]

    @property
    def text_content(self) -> str:
        parts: List[str] = []
        for item in self.contents:
            parts.append(item if isinstance(item, str) else item.text_content)
        return "".join(parts)

    @property
    def value(self) -> str:
        if self._value is not None:
            return self._value
        if self.tag == "textarea":
            return self.text_content
        if self.tag == "select":
            option = self.selected_option
            return option.get("value", option.text_content.strip()) if option else ""
        return ""

    @value.setter
    def value(self, new_value: str) -> None:
        self._value = new_value

    @property
    def options(self) -> List["Node"]:
        return [n for n in self.iter() if n.tag == "option"]

    @property
    def selected_option(self) -> Optional["Node"]:
        options = self.options
        for option in options:
            if option.has_attr("selected"):
                return option
        return options[0] if options else None

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------
    def iter(self) -> Iterator["Node"]:
        """Depth-first, document-order walk starting with this node."""
        stack: List[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self) -> Iterator["Node"]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def closest(self, predicate: Predicate) -> Optional["Node"]:
        """Nearest node satisfying ``predicate``, this node included."""
        if predicate(self):
            return self
        for ancestor in self.ancestors():
            if predicate(ancestor):
                return ancestor
        return None

    def find(self, predicate: Predicate) -> Optional["Node"]:
        for node in self.iter():
            if node is not self and predicate(node):
                return node
        return None


class Document:
    """A parsed page: root node plus focus and selection state."""

    def __init__(self, root: Node, title: str = "", url: str = "") -> None:
        self.root = root
        self.title = title
        self.url = url
        self.active_element: Optional[Node] = None
        self.selection = ""

    def iter(self) -> Iterator[Node]:
        return self.root.iter()

    @property
    def body(self) -> Node:
        return self.find(lambda n: n.tag == "body") or self.root

    def find_all(self, predicate: Predicate) -> List[Node]:
        return [n for n in self.root.iter() if predicate(n)]

    def find(self, predicate: Predicate) -> Optional[Node]:
        for node in self.root.iter():
            if predicate(node):
                return node
        return None

    def by_tag(self, *tags: str) -> List[Node]:
        wanted = {t.lower() for t in tags}
        return self.find_all(lambda n: n.tag in wanted)

    def get_element_by_id(self, element_id: str) -> Optional[Node]:
        if not element_id:
            return None
        return self.find(lambda n: n.id == element_id)

    def labels_for(self, control: Node) -> List[Node]:
        """``<label>`` elements pointing at ``control`` or wrapping it."""
        labels: List[Node] = []
        if control.id:
            labels.extend(self.find_all(lambda n: n.tag == "label" and n.get("for") == control.id))
        for ancestor in control.ancestors():
            if ancestor.tag == "label" and ancestor not in labels:
                labels.append(ancestor)
        return labels

    @property
    def scroll_height(self) -> float:
        return max((n.top for n in self.root.iter()), default=0.0)


def element(tag: str, *contents: Union[Node, str], top: Optional[float] = None, **attrs: object) -> Node:
    """Build a node programmatically.

    Keyword attributes map ``class_`` to ``class``, ``for_`` to ``for`` and
    underscores to dashes (``aria_label`` -> ``aria-label``).  Boolean True
    becomes an empty-valued attribute, False/None drop it.
    """
    clean: Dict[str, str] = {}
    for key, value in attrs.items():
        if value is None or value is False:
            continue
        name = key.rstrip("_").replace("_", "-")
        clean[name] = "" if value is True else str(value)
    node = Node(tag, clean, top=top or 0.0)
    for item in contents:
        node.append(item)
    return node

