"""Assemble complete documents from paginated source responses.

The source API returns block children one page at a time and never
inlines grandchildren.  :class:`ContentFetcher` loops the cursor until
``has_more`` is false (bounded by ``max_pagination_batches``), then walks
the result attaching children under ``block["children"]`` for every block
flagged ``has_children``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from notionpress.config import NotionpressConfig
from notionpress.errors import NotionpressError, NotionpressFetchError
from notionpress.models import DocumentProperties
from notionpress.observability import get_logger
from notionpress.utils.ids import normalize_id

from .client import SourceClient

log = get_logger("notionpress.fetcher")

# Blocks whose children are separate documents, synced on their own.
_DOCUMENT_BLOCK_TYPES: frozenset[str] = frozenset({"child_page", "child_database"})


def extract_title(properties: dict[str, Any]) -> str:
    """Return the plain text of the first ``title``-typed property."""
    for prop in properties.values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return "".join(
                span.get("plain_text", "") for span in prop.get("title", []) or []
            )
    return ""


def collect_pages(
    fetch_page: Callable[[str | None], dict[str, Any]],
    items_key: str,
    max_batches: int,
    what: str,
) -> list[dict[str, Any]]:
    """Drain a cursor-paginated endpoint.

    Parameters
    ----------
    fetch_page:
        Called with the current cursor (``None`` first).
    items_key:
        Key holding the page's items (``"blocks"`` or ``"results"``).
    max_batches:
        Maximum pages fetched; a warning is logged when the cap cuts the
        listing short.
    what:
        Label used in log records.
    """
    items: list[dict[str, Any]] = []
    cursor: str | None = None
    for batch in range(max_batches):
        page = fetch_page(cursor)
        items.extend(page.get(items_key, []))
        cursor = page.get("next_cursor")
        if not page.get("has_more") or not cursor:
            return items
        if batch + 1 == max_batches:
            log.warning(
                "Pagination safety limit reached",
                extra={
                    "extra_fields": {
                        "what": what,
                        "max_batches": max_batches,
                        "items": len(items),
                    }
                },
            )
    return items


class ContentFetcher:
    """Fetch page metadata, full block trees and collection listings.

    Parameters
    ----------
    source:
        Anything satisfying :class:`SourceClient`.
    config:
        Supplies the pagination cap and maximum nesting depth.
    """

    def __init__(self, source: SourceClient, config: NotionpressConfig) -> None:
        self._source = source
        self._config = config

    def fetch_properties(self, source_id: str) -> DocumentProperties:
        """Fetch and normalise page metadata.

        Raises
        ------
        NotionpressFetchError
            When the request fails or returns an empty object.
        """
        try:
            page = self._source.fetch_document_properties(source_id)
        except NotionpressError as exc:
            raise NotionpressFetchError(
                message=f"Failed to fetch page properties: {exc.message}",
                context={"source_id": source_id},
                cause=exc,
            ) from exc
        if not page:
            raise NotionpressFetchError(
                message="Failed to fetch page properties: empty response",
                context={"source_id": source_id},
            )

        props = page.get("properties") or {}
        return DocumentProperties(
            id=page.get("id", source_id),
            title=extract_title(props),
            created_time=page.get("created_time"),
            last_edited_time=page.get("last_edited_time"),
            url=page.get("url"),
            properties=props,
            parent=page.get("parent") or {},
            icon=page.get("icon"),
            cover=page.get("cover"),
        )

    def fetch_blocks(self, block_id: str) -> list[dict[str, Any]]:
        """Return every direct child of *block_id* (no recursion)."""
        return collect_pages(
            lambda cursor: self._source.fetch_document_blocks(block_id, cursor),
            "blocks",
            self._config.max_pagination_batches,
            f"blocks:{block_id}",
        )

    def fetch_block_tree(self, source_id: str) -> list[dict[str, Any]]:
        """Return the document's blocks with children attached recursively.

        Raises
        ------
        NotionpressFetchError
            When the top-level listing fails.  Failures while fetching the
            children of a nested block are logged and leave that block with
            no children.
        """
        try:
            blocks = self.fetch_blocks(source_id)
        except NotionpressError as exc:
            raise NotionpressFetchError(
                message=f"Failed to fetch blocks: {exc.message}",
                context={"source_id": source_id},
                cause=exc,
            ) from exc
        visited = {normalize_id(source_id)}
        self._attach_children(blocks, depth=1, visited=visited)
        return blocks

    def load_children(self, block_id: str) -> list[dict[str, Any]]:
        """Fetch one block's children on demand, for the conversion engine."""
        blocks = self.fetch_blocks(block_id)
        self._attach_children(blocks, depth=1, visited={normalize_id(block_id)})
        return blocks

    def _attach_children(
        self,
        blocks: list[dict[str, Any]],
        depth: int,
        visited: set[str],
    ) -> None:
        for block in blocks:
            if not block.get("has_children") or "children" in block:
                continue
            if block.get("type") in _DOCUMENT_BLOCK_TYPES:
                continue
            block_id = block.get("id")
            if not block_id:
                continue
            key = normalize_id(block_id)
            if key in visited or depth > self._config.max_block_depth:
                block["children"] = []
                continue
            visited.add(key)
            try:
                children = self.fetch_blocks(block_id)
            except NotionpressError as exc:
                log.warning(
                    "Failed to fetch block children",
                    extra={
                        "extra_fields": {
                            "block_id": block_id,
                            "block_type": block.get("type"),
                            "error": exc.message,
                        }
                    },
                )
                children = []
            block["children"] = children
            self._attach_children(children, depth + 1, visited)

    def query_collection_ids(
        self,
        collection_id: str,
        filters: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
    ) -> list[str]:
        """Return the page ids of every row matching the query."""
        rows = collect_pages(
            lambda cursor: self._source.query_collection(collection_id, filters, sorts, cursor),
            "results",
            self._config.max_pagination_batches,
            f"collection:{collection_id}",
        )
        return [row["id"] for row in rows if row.get("id")]
