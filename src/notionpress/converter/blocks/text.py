"""Text blocks: paragraphs, headings, quotes, callouts, code, dividers, equations."""

from __future__ import annotations

import json
from typing import Any

from ..base import ConversionContext, Shell, TypeConverter, color_class, payload
from ..escape import escape_html, escape_url
from ..rich_text import or_nbsp, plain_text


def block_attrs(attrs: dict[str, Any]) -> str:
    """Serialise block attributes for a delimiter comment (``""`` when empty).

    Characters that could close the comment or open markup are written as
    JSON unicode escapes.
    """
    if not attrs:
        return ""
    encoded = json.dumps(attrs, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _ATTR_ESCAPES:
        encoded = encoded.replace(char, escaped)
    return " " + encoded


_ATTR_ESCAPES: tuple[tuple[str, str], ...] = (
    ("--", "\\u002d\\u002d"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
)


class ParagraphConverter(TypeConverter):
    block_types = frozenset({"paragraph"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        text = or_nbsp(ctx.rich_text(payload(block).get("rich_text")))
        return f"<!-- wp:paragraph -->\n<p>{text}</p>\n<!-- /wp:paragraph -->\n\n"


class HeadingConverter(TypeConverter):
    """``heading_1`` to ``heading_3``; toggleable headings keep their children below."""

    block_types = frozenset({"heading_1", "heading_2", "heading_3"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        level = int(block["type"][-1])
        text = or_nbsp(ctx.rich_text(payload(block).get("rich_text")))
        return (
            f"<!-- wp:heading{block_attrs({'level': level})} -->\n"
            f"<h{level}>{text}</h{level}>\n"
            "<!-- /wp:heading -->\n\n"
        )


class QuoteConverter(TypeConverter):
    block_types = frozenset({"quote"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> Shell:
        text = or_nbsp(ctx.rich_text(payload(block).get("rich_text")))
        return Shell(
            opening=f'<!-- wp:quote -->\n<blockquote class="wp-block-quote"><p>{text}</p>',
            closing="</blockquote>\n<!-- /wp:quote -->\n\n",
        )


def icon_markup(icon: dict[str, Any] | None, css_class: str) -> str:
    """Render an emoji, external or hosted icon."""
    if not icon:
        return ""
    kind = icon.get("type")
    if kind == "emoji" and icon.get("emoji"):
        return f'<span class="{css_class}">{escape_html(icon["emoji"])}</span>'
    if kind in ("external", "file"):
        src = escape_url((icon.get(kind) or {}).get("url", ""))
        if src:
            return f'<img class="{css_class}" src="{src}" alt="" />'
    return ""


class CalloutConverter(TypeConverter):
    """Callouts become a coloured box; children render inside it."""

    block_types = frozenset({"callout"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> Shell:
        data = payload(block)
        text = or_nbsp(ctx.rich_text(data.get("rich_text")))
        css = color_class("notion-callout", data.get("color"))
        icon = icon_markup(data.get("icon"), "notion-callout-icon")
        return Shell(
            opening=(
                f'<!-- wp:html -->\n<div class="notion-callout {css}">\n'
                f'\t{icon}<div class="notion-callout-text">{text}'
            ),
            closing="</div>\n</div>\n<!-- /wp:html -->\n\n",
        )


# Source language names to highlighter identifiers; unknown names render
# as plain text.
CODE_LANGUAGES: dict[str, str] = {
    "bash": "bash", "c": "c", "c#": "csharp", "c++": "cpp", "clojure": "clojure",
    "css": "css", "dart": "dart", "diff": "diff", "docker": "docker",
    "elixir": "elixir", "erlang": "erlang", "f#": "fsharp", "go": "go",
    "graphql": "graphql", "haskell": "haskell", "html": "markup", "java": "java",
    "java/c/c++/c#": "clike", "javascript": "javascript", "json": "json",
    "julia": "julia", "kotlin": "kotlin", "latex": "latex", "lua": "lua",
    "makefile": "makefile", "markdown": "markdown", "markup": "markup",
    "matlab": "matlab", "mermaid": "mermaid", "nix": "nix",
    "objective-c": "objectivec", "ocaml": "ocaml", "perl": "perl", "php": "php",
    "plain text": "plaintext", "powershell": "powershell", "protobuf": "protobuf",
    "python": "python", "r": "r", "ruby": "ruby", "rust": "rust", "sass": "sass",
    "scala": "scala", "scss": "scss", "shell": "shell", "sql": "sql",
    "swift": "swift", "typescript": "typescript", "vb.net": "vbnet",
    "visual basic": "vbnet", "webassembly": "wasm", "xml": "markup", "yaml": "yaml",
}


class CodeConverter(TypeConverter):
    """Code blocks are emitted verbatim (escaped, never annotated)."""

    block_types = frozenset({"code"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        data = payload(block)
        code = plain_text(data.get("rich_text"))
        language = CODE_LANGUAGES.get(str(data.get("language", "")).lower(), "plaintext")
        attrs = {} if language == "plaintext" else {"language": language}
        css = "" if language == "plaintext" else f' class="language-{language}"'
        out = (
            f"<!-- wp:code{block_attrs(attrs)} -->\n"
            f'<pre class="wp-block-code"><code{css}>{escape_html(code)}</code></pre>\n'
            "<!-- /wp:code -->\n\n"
        )
        caption = ctx.rich_text(data.get("caption"))
        if caption:
            out += (
                "<!-- wp:paragraph -->\n"
                f'<p class="code-caption"><em>{caption}</em></p>\n'
                "<!-- /wp:paragraph -->\n\n"
            )
        return out


class DividerConverter(TypeConverter):
    block_types = frozenset({"divider"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        return (
            "<!-- wp:separator -->\n"
            '<hr class="wp-block-separator has-alpha-channel-opacity"/>\n'
            "<!-- /wp:separator -->\n\n"
        )


class EquationConverter(TypeConverter):
    block_types = frozenset({"equation"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        expression = escape_html(payload(block).get("expression", "")) or "&nbsp;"
        return (
            "<!-- wp:preformatted -->\n"
            f'<pre class="wp-block-preformatted notion-equation">{expression}</pre>\n'
            "<!-- /wp:preformatted -->\n\n"
        )
