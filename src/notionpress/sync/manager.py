"""Sync Manager: one source document to one target document.

Per-document sequence::

    validate id -> fetch properties -> fetch block tree -> find mapping
      -> convert body and properties -> create or update -> upsert mapping
      -> mark the link registry entry synced -> repair links everywhere

Document-level failures (invalid id, fetch, conversion, persistence) come
back as a failed :class:`~notionpress.models.SyncResult`.  Infrastructure
failures are raised.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from notionpress.config import NotionpressConfig
from notionpress.converter import BlockConversionEngine, ConversionContext
from notionpress.converter.properties import (
    format_properties,
    is_collection_row,
    render_properties_block,
)
from notionpress.errors import (
    NotionpressError,
    NotionpressInfrastructureError,
    NotionpressValidationError,
)
from notionpress.links import LinkRegistry, LinkRepairer, LinkResolver
from notionpress.media import MediaAcquisitionPipeline, count_media_blocks
from notionpress.models import DocumentMapping, LinkKind, SyncResult, utcnow
from notionpress.notion_api.fetcher import ContentFetcher
from notionpress.observability import get_logger, resolve_metrics
from notionpress.storage import MAPPINGS, Store
from notionpress.target import TargetPlatform
from notionpress.utils.ids import is_valid_source_id, normalize_id

log = get_logger("notionpress.sync")


def validate_source_id(source_id: str, max_length: int = 50) -> None:
    """Check a source id's format.

    Raises
    ------
    NotionpressValidationError
        If the id is empty, longer than *max_length*, or contains anything
        other than ASCII letters, digits and dashes.
    """
    if not source_id:
        raise NotionpressValidationError("Source document id cannot be empty.")
    if len(source_id) > max_length:
        raise NotionpressValidationError(
            f"Source document id exceeds maximum length of {max_length} characters.",
            context={"length": len(source_id)},
        )
    if not is_valid_source_id(source_id, max_length):
        raise NotionpressValidationError(
            "Source document id contains invalid characters. "
            "Only alphanumeric characters and hyphens are allowed.",
        )


class SyncManager:
    """Synchronise single documents from the source to the target.

    Parameters
    ----------
    fetcher:
        Loads properties and block trees from the source.
    target:
        Persists documents and assets.
    store:
        Holds Document Mappings and the link registry.
    config:
        Shared configuration.
    engine:
        Conversion engine.  Defaults to the built-in converters with
        ``fetcher.load_children`` as children loader.
    link_registry / resolver / repairer:
        Link components; built from *store*, *target* and *config* when
        omitted.
    media:
        Media pipeline.  Without one, media blocks render their source
        URLs directly.
    metrics:
        Optional :class:`~notionpress.observability.MetricsHook`.
    clock:
        Zero-argument callable returning "now".
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        target: TargetPlatform,
        store: Store,
        config: NotionpressConfig,
        *,
        engine: BlockConversionEngine | None = None,
        link_registry: LinkRegistry | None = None,
        resolver: LinkResolver | None = None,
        repairer: LinkRepairer | None = None,
        media: MediaAcquisitionPipeline | None = None,
        metrics: object | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._target = target
        self._store = store
        self._config = config
        self._metrics = resolve_metrics(metrics if metrics is not None else config.metrics)
        self._clock = clock
        self._engine = engine or BlockConversionEngine(
            config=config, children_loader=fetcher.load_children, metrics=self._metrics,
        )
        self._links = link_registry or (resolver.registry if resolver else LinkRegistry(store, clock))
        self._resolver = resolver or LinkResolver(self._links, target, config)
        self._repairer = repairer or LinkRepairer(store, self._resolver, target, self._metrics)
        self._media = media

    @property
    def link_registry(self) -> LinkRegistry:
        return self._links

    @property
    def resolver(self) -> LinkResolver:
        return self._resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync_document(self, source_id: str, defer_media: bool | None = None) -> SyncResult:
        """Sync one document.

        Parameters
        ----------
        source_id:
            Source document id, dashed or not.
        defer_media:
            ``True`` queues media acquisition in the background, ``False``
            acquires inline.  ``None`` defers only when the document holds
            at least ``media_background_threshold`` hosted media blocks.

        Returns
        -------
        SyncResult
            ``success`` with the target reference, or the failure message.

        Raises
        ------
        NotionpressInfrastructureError
            When a required dependency (e.g. the task queue) is missing.
        """
        try:
            validate_source_id(source_id, self._config.max_source_id_length)
        except NotionpressValidationError as exc:
            log.warning(
                "Invalid source id",
                extra={"extra_fields": {"source_id": source_id, "error": exc.message}},
            )
            return SyncResult(success=False, source_id=source_id, error=exc.message)

        key = normalize_id(source_id)
        start = time.monotonic()
        try:
            result = self._sync(key, defer_media)
        except NotionpressInfrastructureError:
            raise
        except NotionpressError as exc:
            result = SyncResult(success=False, source_id=key, error=exc.message)
        except Exception as exc:
            log.error(
                "Sync raised an unexpected exception",
                exc_info=True,
                extra={"extra_fields": {"source_id": key}},
            )
            result = SyncResult(
                success=False, source_id=key, error=f"Sync failed with exception: {exc}",
            )

        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.timing("notionpress.sync_duration_ms", elapsed_ms)
        if result.success:
            self._metrics.increment("notionpress.documents_synced_total")
            log.info(
                "Document synced",
                extra={
                    "extra_fields": {
                        "source_id": key,
                        "target_ref": result.target_ref,
                        "warnings": len(result.warnings),
                        "duration_ms": round(elapsed_ms, 1),
                    }
                },
            )
        else:
            self._metrics.increment("notionpress.sync_failures_total")
            log.warning(
                "Document sync failed",
                extra={"extra_fields": {"source_id": key, "error": result.error}},
            )
        return result

    def get_sync_status(self, source_id: str) -> dict[str, Any]:
        """Return the mapping and link registry state for *source_id*."""
        key = normalize_id(source_id)
        mapping = self.find_mapping(key)
        entry = self._links.find(key)
        return {
            "source_id": key,
            "is_synced": mapping is not None,
            "target_ref": mapping.target_ref if mapping else None,
            "last_synced_at": mapping.last_synced_at if mapping else None,
            "source_last_modified_at": mapping.source_last_modified_at if mapping else None,
            "slug": entry.slug if entry else None,
        }

    def find_mapping(self, source_id: str) -> DocumentMapping | None:
        record = self._store.get(MAPPINGS, normalize_id(source_id))
        return DocumentMapping.from_dict(record) if record is not None else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _sync(self, key: str, defer_media: bool | None) -> SyncResult:
        properties = self._fetcher.fetch_properties(key)
        blocks = self._fetcher.fetch_block_tree(key)
        mapping = self.find_mapping(key)

        if defer_media is None:
            defer_media = count_media_blocks(blocks) >= self._config.media_background_threshold
        ctx = ConversionContext(
            self._config,
            resolver=self._resolver,
            media=self._media,
            source_id=key,
            defer_media=defer_media,
        )
        try:
            converted = self._engine.convert(blocks, ctx)
            formatted = format_properties(properties.properties, ctx)
        except NotionpressInfrastructureError:
            raise
        except Exception as exc:
            return SyncResult(
                success=False, source_id=key, error=f"Block conversion failed: {exc}",
            )

        content = converted.markup
        if self._config.row_properties_block and is_collection_row(properties.parent):
            content = render_properties_block(properties.properties, formatted) + content

        fields = {
            "target_ref": mapping.target_ref if mapping else None,
            "title": properties.title or "Untitled",
            "content": content,
            "properties": formatted,
            "status": self._config.document_status,
            "source_id": key,
            "last_edited_time": properties.last_edited_time,
        }
        try:
            target_ref = self._target.create_or_update_document(fields)
        except NotionpressInfrastructureError:
            raise
        except Exception as exc:
            return SyncResult(
                success=False, source_id=key, error=f"Document persistence failed: {exc}",
            )

        self._upsert_mapping(key, target_ref, properties.last_edited_time)
        self._links.mark_synced(key, target_ref, title=properties.title or None, kind=LinkKind.PAGE)
        self._repair_links(key)
        return SyncResult(
            success=True, source_id=key, target_ref=target_ref, warnings=converted.warnings,
        )

    def _upsert_mapping(self, key: str, target_ref: str, last_edited: str | None) -> None:
        now = self._clock()

        def mutate(record: dict[str, Any] | None) -> dict[str, Any]:
            mapping = DocumentMapping.from_dict(record) if record else DocumentMapping(key, target_ref)
            mapping.target_ref = target_ref
            mapping.last_synced_at = now
            mapping.source_last_modified_at = last_edited
            return mapping.to_dict()

        self._store.update(MAPPINGS, key, mutate)

    def _repair_links(self, key: str) -> None:
        try:
            self._repairer.repair_all()
        except Exception:
            log.warning(
                "Link repair failed after sync",
                exc_info=True,
                extra={"extra_fields": {"source_id": key}},
            )
