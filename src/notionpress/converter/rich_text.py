"""Rich text spans to inline markup.

Each span contributes its content (text, mention display text or
equation source), HTML-escaped, wrapped in annotation tags from the
innermost outwards::

    code -> strikethrough -> underline -> italic -> bold -> link

so ``bold + italic + code`` always renders as
``<strong><em><code>x</code></em></strong>``.  Links go through an
optional resolver; internal links carry ``data-notion-id`` so the repair
pass can find them again after their ``href`` changed.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .escape import escape_attr, escape_html, escape_url

if TYPE_CHECKING:
    from notionpress.links.resolver import ResolvedLink

LinkResolve = Callable[[str], "ResolvedLink"]

NBSP = "&nbsp;"

# (annotation key, opening tag, closing tag), innermost first.
ANNOTATION_ORDER: tuple[tuple[str, str, str], ...] = (
    ("code", "<code>", "</code>"),
    ("strikethrough", "<s>", "</s>"),
    ("underline", "<u>", "</u>"),
    ("italic", "<em>", "</em>"),
    ("bold", "<strong>", "</strong>"),
)


def span_content(span: dict[str, Any]) -> str:
    """Return the raw (unescaped) text of one span."""
    kind = span.get("type", "text")
    if kind == "text":
        text = span.get("text") or {}
        content = text.get("content")
        if content is not None:
            return content
    elif kind == "equation":
        expression = (span.get("equation") or {}).get("expression")
        if expression is not None:
            return expression
    return span.get("plain_text", "") or ""


def span_link(span: dict[str, Any]) -> str | None:
    """Return the span's link URL from ``text.link.url`` or ``href``."""
    link = ((span.get("text") or {}).get("link") or {}).get("url")
    return link or span.get("href") or None


def apply_annotations(content: str, annotations: dict[str, Any]) -> str:
    """Wrap already-escaped *content* in the tags of every set annotation."""
    for key, open_tag, close_tag in ANNOTATION_ORDER:
        if annotations.get(key):
            content = f"{open_tag}{content}{close_tag}"
    return content


def render_link(content: str, url: str, resolve: LinkResolve | None = None) -> str:
    """Wrap *content* in an anchor, resolving internal links first."""
    source_id: str | None = None
    if resolve is not None:
        resolved = resolve(url)
        url, source_id = resolved.url, resolved.source_id
    href = escape_url(url)
    if not href:
        return content
    if source_id:
        return f'<a href="{href}" data-notion-id="{escape_attr(source_id)}">{content}</a>'
    return f'<a href="{href}">{content}</a>'


def render_span(span: dict[str, Any], resolve: LinkResolve | None = None) -> str:
    content = escape_html(span_content(span))
    if span.get("type") == "equation":
        content = f'<span class="notion-equation">{content}</span>'
    content = apply_annotations(content, span.get("annotations") or {})
    url = span_link(span)
    if url:
        content = render_link(content, url, resolve)
    return content


def render_rich_text(
    spans: list[dict[str, Any]] | None,
    resolve: LinkResolve | None = None,
) -> str:
    """Render a rich text array to inline markup.

    Parameters
    ----------
    spans:
        Rich text objects as returned by the source API.
    resolve:
        Optional callable mapping a URL to a
        :class:`~notionpress.links.resolver.ResolvedLink`.

    Returns
    -------
    str
        The markup, ``""`` for an empty array.
    """
    if not spans:
        return ""
    return "".join(render_span(span, resolve) for span in spans)


def plain_text(spans: list[dict[str, Any]] | None) -> str:
    """Concatenate the unformatted text of *spans*."""
    return "".join(span_content(span) for span in spans or [])


def or_nbsp(markup: str) -> str:
    """Return *markup*, or a non-breaking space when it is blank."""
    return markup if markup.strip() else NBSP
