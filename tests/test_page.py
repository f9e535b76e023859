"""Tests for the in-memory page host."""

import pytest

from voxaid.dom.document import Document, element
from voxaid.dom.page import DocumentPage


@pytest.fixture
def form_page():
    body = element(
        "body",
        element(
            "form",
            element("input", id="agree", type="checkbox", top=100),
            element("input", id="red", type="radio", name="colour", checked=True, top=150),
            element("input", id="blue", type="radio", name="colour", top=170),
            element("input", id="city", name="city", top=200),
            element("button", "Go", id="go", top=250),
            element("button", "Reset", id="plain", type="button", top=260),
            id="f",
        ),
        element("a", "Next page", href="/page/2", top=2000),
    )
    return DocumentPage(Document(element("html", body), url="https://site.example/"), viewport_height=800)


def _by_id(page, ident):
    return page.document.get_element_by_id(ident)


class TestScrolling:
    def test_scroll_is_clamped(self, form_page):
        form_page.scroll_by(-50)
        assert form_page.scroll_y == 0
        form_page.scroll_to(10_000)
        assert form_page.scroll_y == form_page.max_scroll == 1200

    def test_scroll_into_view_centres(self, form_page):
        form_page.scroll_into_view(_by_id(form_page, "city"))
        assert form_page.scroll_y == 0
        link = form_page.document.by_tag("a")[0]
        form_page.scroll_into_view(link)
        assert form_page.scroll_y == 1200


class TestClicks:
    def test_checkbox_toggles(self, form_page):
        box = _by_id(form_page, "agree")
        form_page.click(box)
        assert box.checked
        form_page.click(box)
        assert not box.checked
        assert form_page.events_named("change") == [box, box]

    def test_radio_group_is_exclusive(self, form_page):
        form_page.click(_by_id(form_page, "blue"))
        assert _by_id(form_page, "blue").checked
        assert not _by_id(form_page, "red").checked

    def test_submit_button_submits_form(self, form_page):
        form_page.click(_by_id(form_page, "go"))
        assert form_page.submitted == [_by_id(form_page, "f")]

    def test_plain_button_does_not_submit(self, form_page):
        form_page.click(_by_id(form_page, "plain"))
        assert form_page.submitted == []

    def test_link_navigates_and_history_moves(self, form_page):
        form_page.click(form_page.document.by_tag("a")[0])
        assert form_page.url == "/page/2"
        form_page.back()
        assert form_page.url == "https://site.example/"
        form_page.forward()
        assert form_page.url == "/page/2"
        form_page.forward()
        assert form_page.url == "/page/2"


class TestInput:
    def test_fill_focuses_and_sets_value(self, form_page):
        city = _by_id(form_page, "city")
        form_page.fill(city, "Lisbon")
        assert city.value == "Lisbon"
        assert form_page.document.active_element is city
        assert form_page.events_named("input") == [city]

    def test_enter_in_field_submits(self, form_page):
        form_page.press_key(_by_id(form_page, "city"), "Enter")
        assert len(form_page.submitted) == 1

    def test_font_scale_sets_root_style(self, form_page):
        form_page.set_font_scale(1.25)
        assert form_page.font_scale == 1.25
        assert form_page.document.root.get("style") == "font-size: 125%"
