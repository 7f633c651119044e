"""notionpress: sync block documents from Notion into a block-markup CMS.

Public re-exports
-----------------

* **Sync:** :class:`SyncManager`, :class:`BatchOrchestrator`
* **Conversion:** :class:`BlockConversionEngine`, :class:`ConverterRegistry`
* **Source API:** :class:`NotionSource`, :class:`ContentFetcher`
* **Configuration:** :class:`NotionpressConfig`
* **Errors:** Every :class:`NotionpressError` subclass and :class:`ErrorCode`
* **Models:** Records, results, snapshots and enums

Usage::

    from notionpress import (
        BatchOrchestrator, ContentFetcher, MemoryStore, MemoryTaskQueue,
        NotionSource, NotionpressConfig, SyncManager,
    )

    config = NotionpressConfig(token="secret_xxx", site_url="https://blog.example")
    fetcher = ContentFetcher(NotionSource(config), config)
    store = MemoryStore()
    manager = SyncManager(fetcher, my_target, store, config)
    result = manager.sync_document("<page_id>")

    queue = MemoryTaskQueue()
    batches = BatchOrchestrator(store, manager, queue, config, fetcher=fetcher)
    batches.register_with(queue)
    batch_id = batches.schedule_batch(["<page_a>", "<page_b>"])
"""

from __future__ import annotations

# ── Configuration ───────────────────────────────────────────────────────
from notionpress.config import (
    DEFAULT_FILE_MIMES,
    DEFAULT_MEDIA_MIMES,
    DEFAULT_UNSUPPORTED_MIMES,
    NotionpressConfig,
)

# ── Conversion ──────────────────────────────────────────────────────────
from notionpress.converter import (
    BlockConversionEngine,
    ConversionContext,
    ConverterRegistry,
    FallbackConverter,
    TypeConverter,
    render_rich_text,
)

# ── Errors ──────────────────────────────────────────────────────────────
from notionpress.errors import (
    ErrorCode,
    NotionpressAuthError,
    NotionpressBatchNotFoundError,
    NotionpressConversionError,
    NotionpressError,
    NotionpressFetchError,
    NotionpressInfrastructureError,
    NotionpressMediaError,
    NotionpressMediaSizeError,
    NotionpressMediaTypeError,
    NotionpressNetworkError,
    NotionpressNotFoundError,
    NotionpressPermissionError,
    NotionpressPersistenceError,
    NotionpressRateLimitError,
    NotionpressRetryExhaustedError,
    NotionpressUnsupportedBlockError,
    NotionpressValidationError,
)

# ── Links and media ─────────────────────────────────────────────────────
from notionpress.links import LinkRegistry, LinkRepairer, LinkResolver, LinkRouter
from notionpress.media import MediaAcquisitionPipeline, MediaRegistry, render_placeholders

# ── Models ──────────────────────────────────────────────────────────────
from notionpress.models import (
    AssetKind,
    AssetRef,
    Batch,
    BatchProgress,
    BatchStatus,
    ConversionResult,
    ConversionWarning,
    DocumentMapping,
    DocumentProperties,
    ItemResult,
    ItemStatus,
    LinkEntry,
    LinkKind,
    LocalFile,
    MediaEntry,
    MediaStatus,
    RepairResult,
    SyncResult,
    SyncStatus,
)

# ── Source API ──────────────────────────────────────────────────────────
from notionpress.notion_api import ContentFetcher, NotionSource, NotionTransport

# ── Infrastructure ──────────────────────────────────────────────────────
from notionpress.storage import MemoryStore, Store
from notionpress.sync import BatchOrchestrator, BatchStateMachine, SyncManager
from notionpress.target import TargetPlatform
from notionpress.tasks import MemoryTaskQueue, TaskQueue

__version__ = "0.1.0"

__all__ = [
    # Sync
    "BatchOrchestrator",
    "BatchStateMachine",
    "SyncManager",
    # Conversion
    "BlockConversionEngine",
    "ConversionContext",
    "ConverterRegistry",
    "FallbackConverter",
    "TypeConverter",
    "render_rich_text",
    # Links and media
    "LinkRegistry",
    "LinkRepairer",
    "LinkResolver",
    "LinkRouter",
    "MediaAcquisitionPipeline",
    "MediaRegistry",
    "render_placeholders",
    # Source API
    "ContentFetcher",
    "NotionSource",
    "NotionTransport",
    # Infrastructure
    "MemoryStore",
    "MemoryTaskQueue",
    "Store",
    "TargetPlatform",
    "TaskQueue",
    # Configuration
    "DEFAULT_FILE_MIMES",
    "DEFAULT_MEDIA_MIMES",
    "DEFAULT_UNSUPPORTED_MIMES",
    "NotionpressConfig",
    # Errors
    "ErrorCode",
    "NotionpressAuthError",
    "NotionpressBatchNotFoundError",
    "NotionpressConversionError",
    "NotionpressError",
    "NotionpressFetchError",
    "NotionpressInfrastructureError",
    "NotionpressMediaError",
    "NotionpressMediaSizeError",
    "NotionpressMediaTypeError",
    "NotionpressNetworkError",
    "NotionpressNotFoundError",
    "NotionpressPermissionError",
    "NotionpressPersistenceError",
    "NotionpressRateLimitError",
    "NotionpressRetryExhaustedError",
    "NotionpressUnsupportedBlockError",
    "NotionpressValidationError",
    # Models
    "AssetKind",
    "AssetRef",
    "Batch",
    "BatchProgress",
    "BatchStatus",
    "ConversionResult",
    "ConversionWarning",
    "DocumentMapping",
    "DocumentProperties",
    "ItemResult",
    "ItemStatus",
    "LinkEntry",
    "LinkKind",
    "LocalFile",
    "MediaEntry",
    "MediaStatus",
    "RepairResult",
    "SyncResult",
    "SyncStatus",
]
