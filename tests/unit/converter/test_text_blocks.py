"""Tests for paragraph, heading, quote, callout, code, divider and equation
converters.
"""

from __future__ import annotations

import pytest

from notionpress.config import NotionpressConfig
from notionpress.converter import BlockConversionEngine, ConversionContext
from notionpress.converter.blocks.text import block_attrs, icon_markup


def text(content: str, **annotations) -> list[dict]:
    return [{"type": "text", "text": {"content": content}, "plain_text": content,
             "annotations": annotations}]


def render(node: dict) -> str:
    config = NotionpressConfig(token="test-token-1234")
    return BlockConversionEngine(config=config).convert([node], ConversionContext(config)).markup


class TestBlockAttrs:
    def test_empty(self):
        assert block_attrs({}) == ""

    def test_compact_json(self):
        assert block_attrs({"level": 2}) == ' {"level":2}'

    def test_comment_breakers_escaped(self):
        out = block_attrs({"caption": "a --> <b> & c"})
        assert "--" not in out
        assert "<" not in out and ">" not in out and "&" not in out
        assert "\\u002d\\u002d" in out


class TestParagraph:
    def test_paragraph(self):
        node = {"type": "paragraph", "id": "p", "paragraph": {"rich_text": text("Hi", bold=True)}}
        assert render(node) == "<!-- wp:paragraph -->\n<p><strong>Hi</strong></p>\n<!-- /wp:paragraph -->\n\n"

    def test_empty_paragraph_gets_nbsp(self):
        node = {"type": "paragraph", "id": "p", "paragraph": {"rich_text": []}}
        assert "<p>&nbsp;</p>" in render(node)


class TestHeading:
    @pytest.mark.parametrize("level", [1, 2, 3])
    def test_levels(self, level):
        node = {"type": f"heading_{level}", "id": "h", f"heading_{level}": {"rich_text": text("Title")}}
        out = render(node)
        assert out.startswith(f'<!-- wp:heading {{"level":{level}}} -->\n<h{level}>Title</h{level}>')

    def test_toggleable_heading_children_follow(self):
        node = {
            "type": "heading_2", "id": "h",
            "heading_2": {"rich_text": text("Section"), "is_toggleable": True},
            "children": [{"type": "paragraph", "id": "c", "paragraph": {"rich_text": text("body")}}],
        }
        out = render(node)
        assert out.index("</h2>") < out.index("<p>body</p>")


class TestQuoteAndCallout:
    def test_quote_wraps_children(self):
        node = {
            "type": "quote", "id": "q", "quote": {"rich_text": text("Said")},
            "children": [{"type": "paragraph", "id": "c", "paragraph": {"rich_text": text("more")}}],
        }
        out = render(node)
        assert out.startswith('<!-- wp:quote -->\n<blockquote class="wp-block-quote"><p>Said</p>')
        assert out.index("more") < out.index("</blockquote>")

    def test_callout_colour_and_emoji(self):
        node = {
            "type": "callout", "id": "c",
            "callout": {"rich_text": text("Note"), "color": "yellow_background",
                        "icon": {"type": "emoji", "emoji": "💡"}},
        }
        out = render(node)
        assert '<div class="notion-callout notion-callout-yellow">' in out
        assert '<span class="notion-callout-icon">💡</span>' in out
        assert '<div class="notion-callout-text">Note</div>' in out

    def test_unknown_colour_is_default(self):
        node = {"type": "callout", "id": "c", "callout": {"rich_text": text("x"), "color": "neon"}}
        assert "notion-callout-default" in render(node)

    def test_icon_markup_external(self):
        icon = {"type": "external", "external": {"url": "https://e.com/i.png"}}
        assert icon_markup(icon, "k") == '<img class="k" src="https://e.com/i.png" alt="" />'

    def test_icon_markup_unsafe_url(self):
        assert icon_markup({"type": "external", "external": {"url": "javascript:x"}}, "k") == ""


class TestCode:
    def test_known_language(self):
        node = {"type": "code", "id": "c",
                "code": {"rich_text": text("print('<hi>')"), "language": "Python"}}
        out = render(node)
        assert out.startswith('<!-- wp:code {"language":"python"} -->')
        assert "<code class=\"language-python\">print(&#x27;&lt;hi&gt;&#x27;)</code>" in out

    def test_annotations_not_applied_in_code(self):
        node = {"type": "code", "id": "c",
                "code": {"rich_text": text("x", bold=True), "language": "go"}}
        assert "<strong>" not in render(node)

    def test_unknown_language_is_plain(self):
        node = {"type": "code", "id": "c", "code": {"rich_text": text("x"), "language": "cobol-85"}}
        out = render(node)
        assert out.startswith("<!-- wp:code -->\n")
        assert "<code>x</code>" in out

    def test_caption(self):
        node = {"type": "code", "id": "c",
                "code": {"rich_text": text("x"), "language": "sql", "caption": text("Query")}}
        assert '<p class="code-caption"><em>Query</em></p>' in render(node)


class TestDividerAndEquation:
    def test_divider(self):
        assert "<hr class=\"wp-block-separator has-alpha-channel-opacity\"/>" in render(
            {"type": "divider", "id": "d", "divider": {}},
        )

    def test_equation_escaped(self):
        out = render({"type": "equation", "id": "e", "equation": {"expression": "a<b"}})
        assert '<pre class="wp-block-preformatted notion-equation">a&lt;b</pre>' in out

    def test_empty_equation(self):
        out = render({"type": "equation", "id": "e", "equation": {"expression": ""}})
        assert "notion-equation\">&nbsp;</pre>" in out
