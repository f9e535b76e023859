"""Tests for phrase -> element resolution."""

from voxaid.dom.document import element, Document
from voxaid.dom.target_resolver import (
    TargetRole,
    find_form_to_submit,
    find_main_content,
    find_search_input,
    find_submit_button,
    resolve,
    resolve_field,
)


def _doc(*children):
    return Document(element("html", element("body", *children)))


class TestResolve:
    def test_exact_match_preferred_over_substring(self):
        longer = element("button", "Save draft")
        exact = element("button", "Save")
        doc = _doc(longer, exact)
        assert resolve(doc, "save", TargetRole.BUTTON) is exact

    def test_substring_match(self, document):
        node = resolve(document, "sign", TargetRole.BUTTON)
        assert node is not None and node.text_content == "Sign up"

    def test_aria_label_match(self, document):
        node = resolve(document, "company", TargetRole.LINK)
        assert node is not None and node.get("href") == "/about"

    def test_link_role_ignores_buttons(self, document):
        assert resolve(document, "open menu", TargetRole.LINK) is None

    def test_fallback_walks_up_to_clickable_ancestor(self):
        target = element("div", element("span", "Add to cart"), onclick="add()")
        doc = _doc(element("p", "Intro"), target)
        assert resolve(doc, "add to cart") is target

    def test_input_button_uses_value(self):
        node = element("input", type="submit", value="Go")
        doc = _doc(node)
        assert resolve(doc, "go", TargetRole.BUTTON) is node

    def test_empty_phrase(self, document):
        assert resolve(document, "   ") is None


class TestResolveField:
    def test_by_id(self, document):
        assert resolve_field(document, "email").id == "email"

    def test_by_name_with_spaces(self, document):
        assert resolve_field(document, "full name").get("name") == "full_name"

    def test_by_placeholder(self, document):
        assert resolve_field(document, "your name").get("name") == "full_name"

    def test_by_aria_label(self, document):
        assert resolve_field(document, "country").tag == "select"

    def test_by_label_text(self, document):
        assert resolve_field(document, "email address").id == "email"

    def test_checkboxes_are_not_fields(self, document):
        assert resolve_field(document, "news") is None

    def test_unknown(self, document):
        assert resolve_field(document, "phone") is None


class TestPageHelpers:
    def test_find_search_input(self, document):
        assert find_search_input(document).get("name") == "q"

    def test_form_of_focused_element(self, page):
        first = element("form", element("input", name="a"))
        second = element("form", element("input", name="b"))
        doc = _doc(first, second)
        doc.active_element = second.children[0]
        assert find_form_to_submit(doc, page.is_visible) is second

    def test_first_visible_form(self, page):
        hidden = element("form", style="display: none")
        shown = element("form")
        doc = _doc(hidden, shown)
        assert find_form_to_submit(doc, page.is_visible) is shown

    def test_find_submit_button(self, document):
        form = document.get_element_by_id("signup")
        assert find_submit_button(form).text_content == "Sign up"

    def test_main_content(self, document):
        assert find_main_content(document).tag == "main"

    def test_main_content_needs_enough_text(self):
        doc = _doc(element("main", "Too short"))
        assert find_main_content(doc) is None
