"""Document model, page host and target resolution for VoxAid.

The document tree is a read-only view of a web page; the page host carries
out scrolling, clicking and typing on it; the target resolver maps spoken
phrases to elements.
"""

from .document import Document, Node, element  # noqa: F401
from .html_loader import load_html_file, parse_html  # noqa: F401
from .page import DocumentPage, PageHost  # noqa: F401
from .target_resolver import TargetRole, resolve, resolve_field  # noqa: F401

__all__ = [
    "Document",
    "DocumentPage",
    "Node",
    "PageHost",
    "TargetRole",
    "element",
    "load_html_file",
    "parse_html",
    "resolve",
    "resolve_field",
]
