"""Catch-all converter for block types nothing else handles."""

from __future__ import annotations

from typing import Any

from notionpress.observability import get_logger, resolve_metrics

from ..base import ConversionContext, payload
from ..escape import escape_html
from ..rich_text import plain_text

log = get_logger("notionpress.converter.fallback")


def extract_text(block: dict[str, Any]) -> str:
    """Return any text-like content found in the block's payload.

    Looked up in order: ``rich_text``, ``title``, ``caption``, ``text``,
    then ``url`` (as ``"Link: <url>"``).
    """
    data = payload(block)
    for key in ("rich_text", "title", "caption"):
        value = data.get(key)
        if isinstance(value, list):
            return plain_text(value)
    text = data.get("text")
    if isinstance(text, str):
        return text
    url = data.get("url")
    if isinstance(url, str) and url:
        return f"Link: {url}"
    return ""


class FallbackConverter:
    """Matches every block and emits a visible diagnostic.

    With ``unsupported_block_policy="comment"`` the discovered text is
    wrapped in begin/end comment markers (or a single comment naming the
    type and id when there is no text).  ``"paragraph"`` always emits a
    visible paragraph.
    """

    def supports(self, block: dict[str, Any]) -> bool:
        return True

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        block_type = str(block.get("type") or "unknown")
        block_id = str(block.get("id") or "unknown")
        text = extract_text(block)

        log.warning(
            "Unsupported block type",
            extra={
                "extra_fields": {
                    "block_type": block_type,
                    "block_id": block_id,
                    "source_id": ctx.source_id,
                }
            },
        )
        resolve_metrics(ctx.config.metrics).increment(
            "notionpress.unsupported_blocks_total", tags={"block_type": block_type},
        )
        ctx.warn(
            "UNSUPPORTED_BLOCK",
            f"Unsupported block type: {block_type}",
            block_type=block_type,
            block_id=block_id,
        )

        safe_type = escape_html(block_type)
        if ctx.config.unsupported_block_policy == "paragraph":
            label = f"[Unsupported block: {safe_type}]"
            body = f"{label} {escape_html(text)}" if text else label
            return (
                "<!-- wp:paragraph -->\n"
                f'<p class="notion-unsupported-block">{body}</p>\n'
                "<!-- /wp:paragraph -->\n\n"
            )

        if text:
            return (
                f"<!-- Unsupported Notion block type: {safe_type} -->\n"
                "<!-- wp:paragraph -->\n"
                f'<p class="notion-unsupported-block">{escape_html(text)}</p>\n'
                "<!-- /wp:paragraph -->\n"
                f"<!-- End unsupported block: {safe_type} -->\n\n"
            )
        return (
            f"<!-- Unsupported Notion block type: {safe_type} "
            f"(Block ID: {escape_html(block_id)}) -->\n\n"
        )
