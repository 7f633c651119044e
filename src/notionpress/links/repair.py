"""Rewrite internal links in already-persisted documents.

Runs after every successful sync.  A document converted while it linked
to an unsynced referent carries a placeholder URL; once the referent
syncs, the link is rewritten to its permalink without reconverting the
linking document from source.

Two link shapes are repaired:

* annotated anchors, ``<a ... href="..." ... data-notion-id="<32 hex>" ...>``,
  which are found again whatever their ``href`` currently holds;
* legacy raw links, ``href="/<32 hex>"`` or ``href="https://notion.so/<id>"``,
  which are rewritten and gain a ``data-notion-id`` annotation.

Every mapped document is scanned on each pass.
"""

from __future__ import annotations

import re

from notionpress.converter.escape import escape_attr, escape_url
from notionpress.models import DocumentMapping, RepairResult
from notionpress.observability import get_logger, resolve_metrics
from notionpress.storage import MAPPINGS, Store
from notionpress.target import TargetPlatform

from .resolver import LinkResolver, extract_source_id

log = get_logger("notionpress.links.repair")

_ANNOTATED_RE = re.compile(
    r'<a([^>]*?)href="([^"]*)"([^>]*?)data-notion-id="([a-f0-9]{32})"([^>]*)>',
    re.IGNORECASE,
)
_LEGACY_RE = re.compile(
    r'href="(/[a-f0-9]{32}(?:[?#][^"]*)?'
    r'|https://(?:www\.)?notion\.so/[a-f0-9]{32}(?:-[a-f0-9]{12})?(?:[?#][^"]*)?)"'
    r'(?!\s*data-notion-id=)',
    re.IGNORECASE,
)


class LinkRepairer:
    """Corpus-wide link repair over every document with a mapping.

    Parameters
    ----------
    store:
        Source of the Document Mappings to scan.
    resolver:
        Computes the current URL for each referenced id.
    target:
        Reads and rewrites document markup.
    metrics:
        Optional :class:`~notionpress.observability.MetricsHook`.
    """

    def __init__(
        self,
        store: Store,
        resolver: LinkResolver,
        target: TargetPlatform,
        metrics: object | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._target = target
        self._metrics = resolve_metrics(metrics)

    def rewrite_links(self, content: str) -> tuple[str, int]:
        """Return *content* with internal links rewritten, plus the number of
        links whose URL actually changed.
        """
        rewritten = 0

        def annotated(match: re.Match[str]) -> str:
            nonlocal rewritten
            before, current, between, source_id, after = match.groups()
            new_url = escape_url(self._resolver.current_url(source_id.lower()))
            if new_url != current:
                rewritten += 1
            return (
                f'<a{before}href="{new_url}"{between}'
                f'data-notion-id="{escape_attr(source_id.lower())}"{after}>'
            )

        def legacy(match: re.Match[str]) -> str:
            nonlocal rewritten
            original = match.group(1)
            source_id = extract_source_id(original)
            if source_id is None:
                return match.group(0)
            new_url = self._resolver.url_for(source_id)
            if new_url == original:
                return match.group(0)
            rewritten += 1
            return f'href="{escape_url(new_url)}" data-notion-id="{source_id}"'

        content = _ANNOTATED_RE.sub(annotated, content)
        content = _LEGACY_RE.sub(legacy, content)
        return content, rewritten

    def repair_document(self, target_ref: str) -> int:
        """Repair one document.  Returns the number of links rewritten.

        The document is written back only when at least one link changed.
        """
        content = self._target.get_document_content(target_ref)
        if not content:
            return 0
        updated, rewritten = self.rewrite_links(content)
        if not rewritten or updated == content:
            return 0
        self._target.update_document_content(target_ref, updated)
        return rewritten

    def repair_all(self) -> RepairResult:
        """Repair every mapped document."""
        result = RepairResult()
        for _key, record in self._store.scan(MAPPINGS):
            mapping = DocumentMapping.from_dict(record)
            result.documents_checked += 1
            rewritten = self.repair_document(mapping.target_ref)
            if rewritten:
                result.documents_updated += 1
                result.links_rewritten += rewritten

        if result.links_rewritten:
            self._metrics.increment("notionpress.links_rewritten_total", result.links_rewritten)
        log.info(
            "Link repair pass complete",
            extra={
                "extra_fields": {
                    "documents_checked": result.documents_checked,
                    "documents_updated": result.documents_updated,
                    "links_rewritten": result.links_rewritten,
                }
            },
        )
        return result
