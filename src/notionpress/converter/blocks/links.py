"""Blocks that reference other source documents.

Each reference goes through the Link Resolver, which registers the
referent in the Link Registry on first sight; the emitted anchor carries
``data-notion-id`` so the repair pass can update it once the referent
syncs.
"""

from __future__ import annotations

from typing import Any

from notionpress.models import LinkKind
from notionpress.utils.ids import normalize_id

from ..base import ConversionContext, TypeConverter, payload
from ..escape import escape_attr, escape_html, escape_url


def document_link(
    ctx: ConversionContext,
    source_id: str,
    label: str,
    kind: LinkKind,
    title: str | None = None,
    css_class: str = "notion-link",
) -> str:
    """Return a paragraph holding an annotated link to *source_id*."""
    key = normalize_id(source_id)
    href = escape_url(ctx.document_url(key, title=title, kind=kind))
    return (
        "<!-- wp:paragraph -->\n"
        f'<p class="{css_class}"><a href="{href}" data-notion-id="{escape_attr(key)}">'
        f"{escape_html(label)}</a></p>\n"
        "<!-- /wp:paragraph -->\n\n"
    )


def bold_title(label: str) -> str:
    return f"<!-- wp:paragraph -->\n<p><strong>{escape_html(label)}</strong></p>\n<!-- /wp:paragraph -->\n\n"


class ChildPageConverter(TypeConverter):
    block_types = frozenset({"child_page"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        title = (payload(block).get("title") or "").strip()
        if not block.get("id"):
            return bold_title(title or "Untitled Page")
        return document_link(
            ctx, block["id"], title or "Untitled Page", LinkKind.PAGE,
            title=title or None, css_class="notion-child-page",
        )


class ChildDatabaseConverter(TypeConverter):
    block_types = frozenset({"child_database"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        title = (payload(block).get("title") or "").strip()
        if not block.get("id"):
            return bold_title(f"Database: {title or 'Untitled Database'}")
        return document_link(
            ctx, block["id"], title or "Untitled Database", LinkKind.DATABASE,
            title=title or None, css_class="notion-child-database",
        )


class LinkToPageConverter(TypeConverter):
    """``link_to_page`` only carries the referent's id; the label uses the
    registered title when one is known.
    """

    block_types = frozenset({"link_to_page"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        data = payload(block)
        if data.get("page_id"):
            target, kind = data["page_id"], LinkKind.PAGE
        elif data.get("database_id"):
            target, kind = data["database_id"], LinkKind.DATABASE
        else:
            return bold_title("Linked page")

        label = "View linked page"
        if ctx.resolver is not None:
            entry = ctx.resolver.registry.find(target)
            if entry is not None and entry.title != entry.source_id:
                label = entry.title
        return document_link(ctx, target, label, kind, css_class="notion-link-to-page")
