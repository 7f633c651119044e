"""Media Acquisition Pipeline.

Downloads files hosted behind the source platform's expiring URLs and
stores them in the target asset store, deduplicated per source block:

1. look the block up in the Media Registry;
2. an acquired row with a matching fingerprint is reused as is;
3. otherwise acquire inline, or (``defer=True``) claim the block as
   pending and enqueue a background task, returning a pending reference
   the renderer re-resolves against the registry;
4. a successful acquisition is written to the registry in one atomic
   update that reports the asset it displaced, which is then deleted.

A pending claim older than ``media_pending_timeout_seconds`` may be
claimed again, and a task that exhausts its attempts marks its row
failed.

Formats on the unsupported list link to the source URL instead of being
uploaded.  Download and validation failures are recorded on the registry
row and returned as a failed reference, never raised.
"""

from __future__ import annotations

import contextlib
import os
import time
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from notionpress.config import NotionpressConfig
from notionpress.errors import NotionpressError, NotionpressInfrastructureError
from notionpress.models import AssetKind, AssetRef, MediaEntry, MediaStatus, utcnow
from notionpress.observability import get_logger, resolve_metrics
from notionpress.target import TargetPlatform
from notionpress.tasks import TaskQueue
from notionpress.utils.redact import redact_url

from .detect import MediaDisposition, validate_media_file
from .registry import MediaRegistry, fingerprint
from .signed_url import is_url_expired

if TYPE_CHECKING:
    from notionpress.notion_api.client import SourceClient

log = get_logger("notionpress.media")

ACQUIRE_CALLBACK = "notionpress.media_acquire"

# Block types whose hosted files go through the pipeline.
HOSTED_MEDIA_TYPES: frozenset[str] = frozenset({"image", "file", "pdf", "audio", "video"})


def count_media_blocks(blocks: list[dict[str, Any]]) -> int:
    """Count hosted media blocks in a block tree, children included."""
    count = 0
    for block in blocks:
        kind = block.get("type")
        if kind in HOSTED_MEDIA_TYPES:
            data = block.get(kind) or {}
            if data.get("type") != "external":
                count += 1
        children = block.get("children")
        if children:
            count += count_media_blocks(children)
    return count


class MediaAcquisitionPipeline:
    """Acquire source-hosted media into the target asset store.

    Parameters
    ----------
    registry:
        The Media Registry.
    source:
        Downloads binaries (:meth:`SourceClient.acquire_binary`).
    target:
        Stores, resolves and deletes assets.
    config:
        MIME lists, size cap and signed-URL expiry buffer.
    task_queue:
        Queue used for deferred acquisitions.  Deferring without one
        raises :class:`~notionpress.errors.NotionpressInfrastructureError`.
    metrics:
        Optional :class:`~notionpress.observability.MetricsHook`; defaults
        to ``config.metrics``.
    clock:
        Zero-argument callable returning "now".
    """

    def __init__(
        self,
        registry: MediaRegistry,
        source: SourceClient,
        target: TargetPlatform,
        config: NotionpressConfig,
        task_queue: TaskQueue | None = None,
        metrics: object | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registry = registry
        self._source = source
        self._target = target
        self._config = config
        self._queue = task_queue
        self._metrics = resolve_metrics(metrics if metrics is not None else config.metrics)
        self._clock = clock

    @property
    def registry(self) -> MediaRegistry:
        return self._registry

    def register_with(self, queue: Any) -> None:
        """Bind the acquisition callback and the dead-task handler on *queue*."""
        queue.register(ACQUIRE_CALLBACK, self.run_acquisition)
        queue.on_dead_task(self.handle_dead_task)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def acquire(
        self,
        source_block_id: str,
        source_url: str,
        metadata: dict[str, Any] | None = None,
        defer: bool = False,
    ) -> AssetRef:
        """Return a reference to the asset for *source_block_id*.

        Parameters
        ----------
        source_block_id:
            Id of the media block; the dedup key.
        source_url:
            Current (signed) source URL.
        metadata:
            Passed to :meth:`TargetPlatform.store_asset`; ``media_type``
            selects the MIME list.
        defer:
            Queue the download instead of running it inline.

        Returns
        -------
        AssetRef
            ``STORED``, ``EXTERNAL``, ``PENDING`` or ``FAILED``.

        Raises
        ------
        NotionpressInfrastructureError
            If *defer* is set and no task queue is configured.
        """
        metadata = dict(metadata or {})
        reused = self._reuse(source_block_id, source_url)
        if reused is not None:
            return reused

        if defer:
            return self._defer(source_block_id, source_url, metadata)
        return self._acquire_now(source_block_id, source_url, metadata)

    def run_acquisition(self, args: dict[str, Any]) -> None:
        """Task callback for deferred acquisitions.

        Safe to run more than once: a block that already holds an asset
        for the same fingerprint is skipped.
        """
        source_block_id = args["source_block_id"]
        source_url = args["source_url"]
        entry = self._registry.find(source_block_id)
        if (
            entry is not None
            and entry.status in (MediaStatus.ACQUIRED, MediaStatus.UNSUPPORTED)
            and entry.fingerprint == fingerprint(source_url)
        ):
            log.debug(
                "Media already acquired, skipping task",
                extra={"extra_fields": {"source_block_id": source_block_id}},
            )
            return
        if is_url_expired(
            source_url,
            now=self._clock(),
            buffer_seconds=self._config.media_url_expiry_buffer_seconds,
        ):
            self._fail(source_block_id, source_url, "Source URL expired before acquisition")
            return
        self._acquire_now(source_block_id, source_url, dict(args.get("metadata") or {}))

    def handle_dead_task(self, callback_name: str, args: dict[str, Any], exc: BaseException) -> None:
        """Record an acquisition task that exhausted its attempts as failed.

        The row leaves ``pending``, so renders show the failure placeholder
        and the next sync acquires the block again.
        """
        if callback_name != ACQUIRE_CALLBACK:
            return
        self._fail(args["source_block_id"], args["source_url"], f"Acquisition task failed: {exc}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reuse(self, source_block_id: str, source_url: str) -> AssetRef | None:
        entry = self._registry.find(source_block_id)
        if entry is None:
            return None
        if entry.fingerprint != fingerprint(source_url):
            log.info(
                "Media changed upstream, re-acquiring",
                extra={"extra_fields": {"source_block_id": source_block_id}},
            )
            return None

        if entry.status == MediaStatus.ACQUIRED and entry.target_asset_ref:
            url = self._target.asset_url(entry.target_asset_ref) or entry.asset_url
            if url:
                return AssetRef(
                    kind=AssetKind.STORED,
                    source_block_id=source_block_id,
                    url=url,
                    asset_id=entry.target_asset_ref,
                )
            return None
        if entry.status == MediaStatus.UNSUPPORTED:
            return AssetRef(kind=AssetKind.EXTERNAL, source_block_id=source_block_id, url=source_url)
        if entry.status == MediaStatus.PENDING and not self._pending_is_stale(entry):
            return AssetRef(kind=AssetKind.PENDING, source_block_id=source_block_id)
        return None

    def _pending_timeout(self) -> timedelta:
        return timedelta(seconds=self._config.media_pending_timeout_seconds)

    def _pending_is_stale(self, entry: MediaEntry) -> bool:
        return entry.updated_at is not None and self._clock() - entry.updated_at > self._pending_timeout()

    def _defer(self, source_block_id: str, source_url: str, metadata: dict[str, Any]) -> AssetRef:
        if self._queue is None:
            raise NotionpressInfrastructureError(
                message="Deferred media acquisition requires a task queue",
                context={"source_block_id": source_block_id},
            )
        if self._registry.mark_pending(source_block_id, source_url, stale_after=self._pending_timeout()):
            self._queue.enqueue_async_task(
                ACQUIRE_CALLBACK,
                {
                    "source_block_id": source_block_id,
                    "source_url": source_url,
                    "metadata": metadata,
                },
                run_at=self._clock(),
            )
            self._metrics.increment("notionpress.media_deferred_total")
            log.debug(
                "Media acquisition deferred",
                extra={"extra_fields": {"source_block_id": source_block_id}},
            )
        return AssetRef(kind=AssetKind.PENDING, source_block_id=source_block_id)

    def _acquire_now(
        self,
        source_block_id: str,
        source_url: str,
        metadata: dict[str, Any],
    ) -> AssetRef:
        media_type = str(metadata.get("media_type") or "image")
        start = time.monotonic()

        try:
            local = self._source.acquire_binary(source_url)
        except NotionpressError as exc:
            return self._fail(source_block_id, source_url, exc.message)

        try:
            disposition = validate_media_file(local, self._config, media_type)
            if disposition is MediaDisposition.LINK:
                self._discard(
                    source_block_id,
                    self._registry.swap_asset(source_block_id, source_url, MediaStatus.UNSUPPORTED),
                    None,
                )
                log.info(
                    "Unsupported media format, linking to source",
                    extra={
                        "extra_fields": {
                            "source_block_id": source_block_id,
                            "mime_type": local.mime_type,
                        }
                    },
                )
                return AssetRef(
                    kind=AssetKind.EXTERNAL, source_block_id=source_block_id, url=source_url,
                )
            asset_ref = self._target.store_asset(local, {**metadata, "source_block_id": source_block_id})
        except NotionpressError as exc:
            return self._fail(source_block_id, source_url, exc.message)
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(local.path)

        asset_url = self._target.asset_url(asset_ref)
        displaced = self._registry.swap_asset(
            source_block_id, source_url, MediaStatus.ACQUIRED,
            target_asset_ref=asset_ref, asset_url=asset_url,
        )
        self._discard(source_block_id, displaced, asset_ref)

        self._metrics.increment("notionpress.media_acquired_total", tags={"media_type": media_type})
        log.info(
            "Media acquired",
            extra={
                "extra_fields": {
                    "source_block_id": source_block_id,
                    "asset_ref": asset_ref,
                    "size": local.size,
                    "mime_type": local.mime_type,
                    "duration_ms": round((time.monotonic() - start) * 1000, 1),
                }
            },
        )
        return AssetRef(
            kind=AssetKind.STORED,
            source_block_id=source_block_id,
            url=asset_url,
            asset_id=asset_ref,
        )

    def _discard(self, source_block_id: str, displaced: str | None, asset_ref: str | None) -> None:
        if displaced is None:
            return
        self._target.delete_asset(displaced)
        log.info(
            "Replaced superseded media asset",
            extra={
                "extra_fields": {
                    "source_block_id": source_block_id,
                    "old_asset": displaced,
                    "new_asset": asset_ref,
                }
            },
        )

    def _fail(self, source_block_id: str, source_url: str, error: str) -> AssetRef:
        entry = self._registry.mark_failed(source_block_id, source_url, error)
        self._metrics.increment("notionpress.media_failed_total")
        log.warning(
            "Media acquisition failed",
            extra={
                "extra_fields": {
                    "source_block_id": source_block_id,
                    "source_url": redact_url(source_url),
                    "error": error,
                    "error_count": entry.error_count,
                }
            },
        )
        return AssetRef(kind=AssetKind.FAILED, source_block_id=source_block_id, error=error)
