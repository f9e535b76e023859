"""Tests for HTML -> Document parsing."""

from voxaid.dom.html_loader import LINE_HEIGHT, load_html_file, parse_html


class TestParseHtml:
    def test_title_and_body(self, document):
        assert document.title == "Sample Shop"
        assert document.body.tag == "body"
        assert document.url == "https://shop.example/"

    def test_scripts_and_comments_dropped(self):
        doc = parse_html("<html><body><p>Kept</p><script>var x = 1;</script><!-- note --></body></html>")
        assert doc.body.text_content == "Kept"

    def test_fragment_wrapped_in_body(self):
        doc = parse_html("<p>One</p><p>Two</p>")
        assert doc.root.tag == "html"
        assert [p.text_content for p in doc.body.children] == ["One", "Two"]

    def test_positions_from_document_order(self):
        doc = parse_html("<html><body><p>One</p><p>Two</p></body></html>")
        first, second = doc.by_tag("p")
        assert second.top - first.top == LINE_HEIGHT

    def test_data_top_overrides_order(self):
        doc = parse_html('<html><body><p data-top="900">Late</p><p data-top="oops">Early</p></body></html>')
        late, early = doc.by_tag("p")
        assert late.top == 900.0
        assert early.top == 3 * LINE_HEIGHT

    def test_class_list_joined(self):
        doc = parse_html('<div class="card  wide">x</div>')
        assert doc.by_tag("div")[0].classes == ["card", "wide"]

    def test_form_state(self):
        doc = parse_html('<input type="checkbox" checked><input value="prefilled">')
        checkbox, text = doc.by_tag("input")
        assert checkbox.checked
        assert text.value == "prefilled"


def test_load_html_file(tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<html><head><title>Local</title></head><body><h1>Hi</h1></body></html>", encoding="utf-8")
    doc = load_html_file(str(path))
    assert doc.title == "Local"
    assert doc.url == f"file://{path}"
