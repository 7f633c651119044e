"""Simple tables.  Rows arrive as ``table_row`` children and are rendered here."""

from __future__ import annotations

from typing import Any

from ..base import ConversionContext, TypeConverter, block_children, payload

EMPTY_TABLE = (
    "<!-- wp:paragraph -->\n<p><em>[Table with no content]</em></p>\n<!-- /wp:paragraph -->\n\n"
)


class TableConverter(TypeConverter):
    """Render a table with optional column and row headers.

    The first row becomes ``<thead>`` when ``has_column_header`` is set;
    the first cell of every row becomes ``<th>`` when ``has_row_header``
    is set.  Short rows are padded to ``table_width``.
    """

    block_types = frozenset({"table"})
    consumes_children = True

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        data = payload(block)
        width = int(data.get("table_width") or 0)
        column_header = bool(data.get("has_column_header"))
        row_header = bool(data.get("has_row_header"))

        rows = [
            (row.get("table_row") or {}).get("cells") or []
            for row in block_children(block)
            if row.get("type") == "table_row"
        ]
        rows = [cells for cells in rows if cells]
        if not rows:
            return EMPTY_TABLE

        head = ""
        body_rows: list[str] = []
        for index, cells in enumerate(rows):
            is_header = column_header and index == 0
            rendered = [ctx.rich_text(cell) for cell in cells]
            rendered += [""] * (width - len(rendered))
            cols = []
            for col, content in enumerate(rendered):
                tag = "th" if is_header or (row_header and col == 0) else "td"
                cols.append(f"<{tag}>{content}</{tag}>")
            tr = "<tr>" + "".join(cols) + "</tr>"
            if is_header:
                head = f"<thead>{tr}</thead>"
            else:
                body_rows.append(tr)

        body = f"<tbody>{''.join(body_rows)}</tbody>" if body_rows else ""
        return (
            "<!-- wp:table -->\n"
            f'<figure class="wp-block-table"><table>{head}{body}</table></figure>\n'
            "<!-- /wp:table -->\n\n"
        )
