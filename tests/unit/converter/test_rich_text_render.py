"""Tests for rich text rendering and HTML escaping."""

from __future__ import annotations

import pytest

from notionpress.converter.escape import escape_html, escape_url, is_safe_url
from notionpress.converter.rich_text import (
    apply_annotations,
    or_nbsp,
    plain_text,
    render_rich_text,
    span_content,
)
from notionpress.links.resolver import ResolvedLink

PAGE_ID = "c0ffee00c0ffee00c0ffee00c0ffee00"


def span(text: str, href: str | None = None, **annotations) -> dict:
    node = {
        "type": "text",
        "text": {"content": text, "link": {"url": href} if href else None},
        "plain_text": text,
        "annotations": annotations,
    }
    if href:
        node["href"] = href
    return node


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------

class TestEscaping:
    def test_escape_html(self):
        assert escape_html('<b>"Tom" & Jerry</b>') == "&lt;b&gt;&quot;Tom&quot; &amp; Jerry&lt;/b&gt;"

    @pytest.mark.parametrize("url", [
        "https://example.com", "http://example.com/a?b=c", "mailto:a@b.c",
        "tel:+123", "/relative/path", "#anchor", "?q=1",
    ])
    def test_safe_urls(self, url):
        assert is_safe_url(url)

    @pytest.mark.parametrize("url", [
        "javascript:alert(1)", "JavaScript:alert(1)", "data:text/html;base64,xx",
        "vbscript:msgbox", "", "   ",
    ])
    def test_unsafe_urls(self, url):
        assert not is_safe_url(url)
        assert escape_url(url) == ""

    def test_escape_url_escapes_ampersand(self):
        assert escape_url("https://e.com/?a=1&b=2") == "https://e.com/?a=1&amp;b=2"


# ---------------------------------------------------------------------------
# Spans and annotations
# ---------------------------------------------------------------------------

class TestRenderRichText:
    def test_empty(self):
        assert render_rich_text([]) == ""
        assert render_rich_text(None) == ""

    def test_plain_text_is_escaped(self):
        assert render_rich_text([span("a < b & c")]) == "a &lt; b &amp; c"

    def test_annotation_order_is_fixed(self):
        out = render_rich_text([span("x", bold=True, italic=True, code=True)])
        assert out == "<strong><em><code>x</code></em></strong>"

    def test_all_annotations(self):
        out = render_rich_text([span(
            "x", bold=True, italic=True, strikethrough=True, underline=True, code=True,
        )])
        assert out == "<strong><em><u><s><code>x</code></s></u></em></strong>"

    def test_false_annotations_ignored(self):
        assert render_rich_text([span("x", bold=False, color="red")]) == "x"

    def test_concatenates_spans(self):
        out = render_rich_text([span("Hello "), span("world", bold=True)])
        assert out == "Hello <strong>world</strong>"

    def test_external_link(self):
        out = render_rich_text([span("site", href="https://example.com", bold=True)])
        assert out == '<a href="https://example.com"><strong>site</strong></a>'

    def test_unsafe_link_dropped(self):
        assert render_rich_text([span("x", href="javascript:alert(1)")]) == "x"

    def test_resolved_internal_link_is_annotated(self):
        def resolve(url):
            return ResolvedLink(url="https://blog.example/notion/target", source_id=PAGE_ID)

        out = render_rich_text([span("see", href=f"/{PAGE_ID}")], resolve)
        assert out == (
            f'<a href="https://blog.example/notion/target" data-notion-id="{PAGE_ID}">see</a>'
        )

    def test_resolver_passes_external_through(self):
        out = render_rich_text(
            [span("ext", href="https://example.com")],
            lambda url: ResolvedLink(url=url),
        )
        assert out == '<a href="https://example.com">ext</a>'

    def test_inline_equation(self):
        node = {"type": "equation", "equation": {"expression": "a<b"}, "plain_text": "a<b"}
        assert render_rich_text([node]) == '<span class="notion-equation">a&lt;b</span>'

    def test_mention_uses_plain_text(self):
        node = {
            "type": "mention",
            "mention": {"type": "date", "date": {"start": "2026-01-01"}},
            "plain_text": "January 1, 2026",
            "annotations": {"italic": True},
        }
        assert render_rich_text([node]) == "<em>January 1, 2026</em>"


class TestHelpers:
    def test_span_content_falls_back_to_plain_text(self):
        assert span_content({"type": "text", "text": {}, "plain_text": "p"}) == "p"

    def test_plain_text(self):
        assert plain_text([span("a", bold=True), span("b")]) == "ab"

    def test_apply_annotations_no_annotations(self):
        assert apply_annotations("x", {}) == "x"

    def test_or_nbsp(self):
        assert or_nbsp("") == "&nbsp;"
        assert or_nbsp("  ") == "&nbsp;"
        assert or_nbsp("x") == "x"
