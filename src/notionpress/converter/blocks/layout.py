"""Container blocks whose only job is to wrap their children."""

from __future__ import annotations

from typing import Any

from ..base import ConversionContext, Shell, TypeConverter, color_class, payload
from ..rich_text import or_nbsp


class ToggleConverter(TypeConverter):
    block_types = frozenset({"toggle"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> Shell:
        data = payload(block)
        summary = or_nbsp(ctx.rich_text(data.get("rich_text")))
        css = color_class("notion-toggle", data.get("color"))
        return Shell(
            opening=(
                f'<!-- wp:html -->\n<details class="notion-toggle {css}">\n'
                f"\t<summary>{summary}</summary>\n"
                '\t<div class="notion-toggle-content">\n'
            ),
            closing="\t</div>\n</details>\n<!-- /wp:html -->\n\n",
        )


class ColumnConverter(TypeConverter):
    """``column_list`` wraps ``column`` children, which wrap their content."""

    block_types = frozenset({"column_list", "column"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> Shell:
        if block.get("type") == "column_list":
            return Shell(
                opening='<!-- wp:html -->\n<div class="notion-columns">\n',
                closing="</div>\n<!-- /wp:html -->\n\n",
            )
        return Shell(opening='<div class="notion-column">\n', closing="</div>\n")


class PassthroughConverter(TypeConverter):
    """Synced blocks and templates render their children without a wrapper."""

    block_types = frozenset({"synced_block", "template"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> Shell:
        return Shell(opening=f"<!-- notion:{block['type']} -->\n", closing="")


class OmittedConverter(TypeConverter):
    """Navigation aids that have no counterpart on the target."""

    block_types = frozenset({"breadcrumb", "table_of_contents"})

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        return f"<!-- Omitted Notion block: {block['type']} -->\n\n"
