"""List items: bulleted, numbered and to-do.

Each item is a :class:`~notionpress.converter.base.Shell` so nested
children land inside its ``<li>``.  The list container itself comes from
:meth:`ListItemConverter.group_shell`, which the engine applies once per
run of adjacent same-type items (or once per item when
``merge_list_items`` is off).
"""

from __future__ import annotations

from typing import Any

from ..base import ConversionContext, Shell, TypeConverter, payload
from ..rich_text import or_nbsp
from .text import block_attrs


class ListItemConverter(TypeConverter):
    block_types = frozenset({"bulleted_list_item", "numbered_list_item", "to_do"})

    def group_key(self, block: dict[str, Any]) -> str:
        return str(block.get("type"))

    def group_shell(self, block: dict[str, Any]) -> Shell:
        kind = block.get("type")
        if kind == "numbered_list_item":
            return Shell(
                opening=f"<!-- wp:list{block_attrs({'ordered': True})} -->\n<ol>",
                closing="</ol>\n<!-- /wp:list -->\n\n",
            )
        if kind == "to_do":
            return Shell(
                opening=(
                    f"<!-- wp:list{block_attrs({'className': 'notion-todo-list'})} -->\n"
                    '<ul class="notion-todo-list">'
                ),
                closing="</ul>\n<!-- /wp:list -->\n\n",
            )
        return Shell(opening="<!-- wp:list -->\n<ul>", closing="</ul>\n<!-- /wp:list -->\n\n")

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> Shell:
        data = payload(block)
        text = or_nbsp(ctx.rich_text(data.get("rich_text")))
        if block.get("type") == "to_do":
            checked = " checked" if data.get("checked") else ""
            li = f'<li class="notion-todo"><input type="checkbox" disabled{checked} /> {text}'
        else:
            li = f"<li>{text}"
        return Shell(
            opening=f"<!-- wp:list-item -->\n{li}",
            closing="</li>\n<!-- /wp:list-item -->\n",
        )
