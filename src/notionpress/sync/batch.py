"""Batch Synchronization Orchestrator.

Schedules many document syncs as independent queue tasks and tracks them
in a persisted :class:`~notionpress.models.Batch` record:

* :meth:`BatchOrchestrator.schedule_batch`: one task per document, start
  times staggered by ``item_stagger_seconds``;
* :meth:`BatchOrchestrator.schedule_collection`: every row of a collection,
  in tasks of ``batch_chunk_size`` documents staggered by
  ``chunk_stagger_seconds``.

Task callbacks and the dead-task handler are the only writers of progress
fields, and every write is an atomic :meth:`Store.update`.  Callbacks are
idempotent: an item already in a terminal state is never processed or
counted twice, so redelivered tasks are harmless.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from notionpress.config import NotionpressConfig
from notionpress.errors import (
    NotionpressBatchNotFoundError,
    NotionpressError,
    NotionpressFetchError,
    NotionpressInfrastructureError,
    NotionpressValidationError,
)
from notionpress.models import (
    TERMINAL_ITEM_STATUSES,
    Batch,
    BatchProgress,
    BatchStatus,
    ItemResult,
    ItemStatus,
    utcnow,
)
from notionpress.notion_api.fetcher import ContentFetcher
from notionpress.observability import get_logger, resolve_metrics
from notionpress.storage import BATCHES, Store
from notionpress.tasks import TaskQueue
from notionpress.utils.chunk import chunk_items
from notionpress.utils.ids import normalize_id

from .manager import SyncManager

log = get_logger("notionpress.batch")

SYNC_ITEM_CALLBACK = "notionpress.sync_item"
SYNC_CHUNK_CALLBACK = "notionpress.sync_chunk"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class BatchStateMachine:
    """Valid batch status transitions.

    ::

        QUEUED     -> PROCESSING | CANCELLED
        PROCESSING -> COMPLETED | CANCELLED
        COMPLETED  -> (terminal)
        CANCELLED  -> (terminal)
    """

    VALID_TRANSITIONS: dict[BatchStatus, set[BatchStatus]] = {
        BatchStatus.QUEUED: {BatchStatus.PROCESSING, BatchStatus.CANCELLED},
        BatchStatus.PROCESSING: {BatchStatus.COMPLETED, BatchStatus.CANCELLED},
        BatchStatus.COMPLETED: set(),
        BatchStatus.CANCELLED: set(),
    }

    @classmethod
    def can_transition(cls, current: BatchStatus, new: BatchStatus) -> bool:
        return new in cls.VALID_TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, batch: Batch, new: BatchStatus) -> None:
        """Move *batch* to *new*.

        Raises
        ------
        ValueError
            If the transition is not allowed.
        """
        if not cls.can_transition(batch.status, new):
            allowed = cls.VALID_TRANSITIONS.get(batch.status, set())
            raise ValueError(
                f"Invalid batch transition: {batch.status.value} -> {new.value} "
                f"for batch {batch.batch_id}. "
                f"Allowed transitions from {batch.status.value}: "
                f"{{{', '.join(s.value for s in allowed)}}}"
            )
        batch.status = new


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class BatchOrchestrator:
    """Schedule, execute and track batches of document syncs.

    Parameters
    ----------
    store:
        Holds the Batch records.
    sync_manager:
        Performs each document sync.
    task_queue:
        Durable queue that runs the callbacks.
    config:
        Chunk size and stagger intervals.
    fetcher:
        Needed by :meth:`schedule_collection` to list collection rows.
    metrics:
        Optional :class:`~notionpress.observability.MetricsHook`.
    clock:
        Zero-argument callable returning "now".
    """

    def __init__(
        self,
        store: Store,
        sync_manager: SyncManager,
        task_queue: TaskQueue,
        config: NotionpressConfig,
        fetcher: ContentFetcher | None = None,
        metrics: object | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._sync = sync_manager
        self._queue = task_queue
        self._config = config
        self._fetcher = fetcher
        self._metrics = resolve_metrics(metrics if metrics is not None else config.metrics)
        self._clock = clock

    def register_with(self, queue: Any) -> None:
        """Bind the task callbacks and the dead-task handler on *queue*."""
        queue.register(SYNC_ITEM_CALLBACK, self.run_item)
        queue.register(SYNC_CHUNK_CALLBACK, self.run_chunk)
        queue.on_dead_task(self.handle_dead_task)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule_batch(self, source_ids: list[str]) -> str:
        """Schedule one sync task per document.

        Duplicate ids are scheduled once; blank ids are dropped.

        Returns
        -------
        str
            The new ``batch_id``.

        Raises
        ------
        NotionpressValidationError
            If *source_ids* is empty.
        """
        item_ids = _unique_ids(source_ids)
        if not item_ids:
            raise NotionpressValidationError("No source document ids given")

        batch = self._create_batch(item_ids)
        now = self._clock()
        stagger = self._config.item_stagger_seconds
        task_ids = [
            self._queue.enqueue_async_task(
                SYNC_ITEM_CALLBACK,
                {"batch_id": batch.batch_id, "item_id": item_id},
                run_at=now + timedelta(seconds=index * stagger),
            )
            for index, item_id in enumerate(item_ids)
        ]
        self._attach_tasks(batch.batch_id, task_ids)
        log.info(
            "Batch scheduled",
            extra={"extra_fields": {"batch_id": batch.batch_id, "total": batch.total, "tasks": len(task_ids)}},
        )
        return batch.batch_id

    def schedule_collection(
        self,
        collection_id: str,
        filters: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
    ) -> str:
        """Schedule every row of a collection in fixed-size chunks.

        A collection without rows yields a batch that is already completed.

        Raises
        ------
        NotionpressInfrastructureError
            If the orchestrator has no fetcher.
        NotionpressFetchError
            If the collection cannot be queried.
        """
        if self._fetcher is None:
            raise NotionpressInfrastructureError(
                message="Scheduling a collection requires a content fetcher",
                context={"collection_id": collection_id},
            )
        try:
            rows = self._fetcher.query_collection_ids(collection_id, filters, sorts)
        except NotionpressError as exc:
            raise NotionpressFetchError(
                message=f"Failed to query collection: {exc.message}",
                context={"collection_id": collection_id},
                cause=exc,
            ) from exc

        item_ids = _unique_ids(rows)
        batch = self._create_batch(item_ids, collection_id=normalize_id(collection_id))
        if not item_ids:
            log.info(
                "Collection is empty, nothing to schedule",
                extra={"extra_fields": {"batch_id": batch.batch_id, "collection_id": collection_id}},
            )
            return batch.batch_id

        now = self._clock()
        stagger = self._config.chunk_stagger_seconds
        chunks = chunk_items(item_ids, self._config.batch_chunk_size)
        task_ids = [
            self._queue.enqueue_async_task(
                SYNC_CHUNK_CALLBACK,
                {"batch_id": batch.batch_id, "item_ids": chunk},
                run_at=now + timedelta(seconds=index * stagger),
            )
            for index, chunk in enumerate(chunks)
        ]
        self._attach_tasks(batch.batch_id, task_ids)
        log.info(
            "Collection batch scheduled",
            extra={
                "extra_fields": {
                    "batch_id": batch.batch_id,
                    "collection_id": collection_id,
                    "total": batch.total,
                    "chunks": len(chunks),
                }
            },
        )
        return batch.batch_id

    # ------------------------------------------------------------------
    # Task callbacks
    # ------------------------------------------------------------------

    def run_item(self, args: dict[str, Any]) -> None:
        """Callback for :data:`SYNC_ITEM_CALLBACK`."""
        self._process_item(args["batch_id"], args["item_id"])

    def run_chunk(self, args: dict[str, Any]) -> None:
        """Callback for :data:`SYNC_CHUNK_CALLBACK`.

        Stops early once the batch is cancelled.
        """
        for item_id in args["item_ids"]:
            if not self._process_item(args["batch_id"], item_id):
                batch = self._load(args["batch_id"])
                if batch is None or batch.status == BatchStatus.CANCELLED:
                    return

    def handle_dead_task(self, callback_name: str, args: dict[str, Any], exc: BaseException) -> None:
        """Mark the items of a task that will never succeed as failed.

        Items already in a terminal state are left alone, so the batch
        still reaches ``processed == total``.
        """
        if callback_name == SYNC_ITEM_CALLBACK:
            item_ids = [args["item_id"]]
        elif callback_name == SYNC_CHUNK_CALLBACK:
            item_ids = list(args["item_ids"])
        else:
            return
        batch_id = args["batch_id"]
        log.error(
            "Batch task abandoned",
            extra={
                "extra_fields": {
                    "batch_id": batch_id,
                    "callback": callback_name,
                    "items": len(item_ids),
                    "error": str(exc),
                }
            },
        )
        for item_id in item_ids:
            self._record(batch_id, item_id, ItemResult(success=False, error=f"Task failed: {exc}"))

    # ------------------------------------------------------------------
    # Reads and lifecycle
    # ------------------------------------------------------------------

    def batch_progress(self, batch_id: str) -> BatchProgress:
        """Return a snapshot of the persisted batch.  Never mutates state.

        Raises
        ------
        NotionpressBatchNotFoundError
            If the batch does not exist.
        """
        batch = self._require(batch_id)
        percentage = round(batch.processed / batch.total * 100) if batch.total else 100
        return BatchProgress(
            batch_id=batch.batch_id,
            status=batch.status,
            total=batch.total,
            processed=batch.processed,
            succeeded=batch.succeeded,
            failed=batch.failed,
            percentage=percentage,
            current_item_id=batch.current_item_id,
            started_at=batch.started_at,
            completed_at=batch.completed_at,
            per_item_status=dict(batch.per_item_status),
            per_item_result=dict(batch.per_item_result),
        )

    def cancel_batch(self, batch_id: str) -> bool:
        """Cancel a batch and unschedule its tasks that have not started.

        Tasks already running finish and still record their results.

        Returns
        -------
        bool
            ``False`` when the batch was already completed or cancelled.

        Raises
        ------
        NotionpressBatchNotFoundError
            If the batch does not exist.
        """
        self._require(batch_id)
        now = self._clock()
        cancelled = False

        def mutate(record: dict[str, Any] | None) -> dict[str, Any] | None:
            nonlocal cancelled
            if record is None:
                return None
            batch = Batch.from_dict(record)
            if batch.is_terminal:
                return None
            BatchStateMachine.transition(batch, BatchStatus.CANCELLED)
            batch.completed_at = now
            cancelled = True
            return batch.to_dict()

        stored = self._store.update(BATCHES, batch_id, mutate)
        if not cancelled or stored is None:
            return False

        removed = sum(1 for task_id in stored.get("task_ids", []) if self._queue.unschedule(task_id))
        log.info(
            "Batch cancelled",
            extra={"extra_fields": {"batch_id": batch_id, "tasks_unscheduled": removed}},
        )
        return True

    def active_batch_id(self) -> str | None:
        """Return the most recently created batch that is not terminal."""
        active = [Batch.from_dict(record) for _key, record in self._store.scan(BATCHES)]
        active = [batch for batch in active if not batch.is_terminal]
        if not active:
            return None
        return max(active, key=lambda batch: batch.created_at or _EPOCH).batch_id

    def cleanup_batch(self, batch_id: str) -> bool:
        """Delete a terminal batch record.  Returns ``False`` if it is still
        running or does not exist.
        """
        batch = self._load(batch_id)
        if batch is None or not batch.is_terminal:
            return False
        return self._store.delete(BATCHES, batch_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create_batch(self, item_ids: list[str], collection_id: str | None = None) -> Batch:
        now = self._clock()
        batch = Batch(
            batch_id=f"batch_{uuid.uuid4().hex[:12]}",
            item_ids=item_ids,
            total=len(item_ids),
            per_item_status={item_id: ItemStatus.QUEUED.value for item_id in item_ids},
            collection_id=collection_id,
            created_at=now,
        )
        if not item_ids:
            BatchStateMachine.transition(batch, BatchStatus.PROCESSING)
            BatchStateMachine.transition(batch, BatchStatus.COMPLETED)
            batch.started_at = batch.completed_at = now
        self._store.put(BATCHES, batch.batch_id, batch.to_dict())
        return batch

    def _attach_tasks(self, batch_id: str, task_ids: list[str]) -> None:
        def mutate(record: dict[str, Any] | None) -> dict[str, Any] | None:
            if record is None:
                return None
            record["task_ids"] = list(record.get("task_ids", [])) + task_ids
            return record

        self._store.update(BATCHES, batch_id, mutate)

    def _load(self, batch_id: str) -> Batch | None:
        record = self._store.get(BATCHES, batch_id)
        return Batch.from_dict(record) if record is not None else None

    def _require(self, batch_id: str) -> Batch:
        batch = self._load(batch_id)
        if batch is None:
            raise NotionpressBatchNotFoundError(
                message=f"Batch {batch_id} not found",
                context={"batch_id": batch_id},
            )
        return batch

    def _process_item(self, batch_id: str, item_id: str) -> bool:
        """Sync one item of a batch.  Returns ``False`` when it was skipped."""
        if not self._claim(batch_id, item_id):
            return False

        start = time.monotonic()
        result = self._sync.sync_document(item_id, defer_media=True)
        item = ItemResult(
            success=result.success,
            target_ref=result.target_ref,
            error=result.error,
            duration_seconds=round(time.monotonic() - start, 3),
        )
        self._record(batch_id, item_id, item)
        return True

    def _claim(self, batch_id: str, item_id: str) -> bool:
        now = self._clock()
        claimed = False

        def mutate(record: dict[str, Any] | None) -> dict[str, Any] | None:
            nonlocal claimed
            if record is None:
                return None
            batch = Batch.from_dict(record)
            if batch.status == BatchStatus.CANCELLED or batch.status == BatchStatus.COMPLETED:
                return None
            if item_id not in batch.per_item_status:
                return None
            if ItemStatus(batch.per_item_status[item_id]) in TERMINAL_ITEM_STATUSES:
                return None
            if batch.status == BatchStatus.QUEUED:
                BatchStateMachine.transition(batch, BatchStatus.PROCESSING)
                batch.started_at = now
            batch.per_item_status[item_id] = ItemStatus.PROCESSING.value
            batch.current_item_id = item_id
            claimed = True
            return batch.to_dict()

        stored = self._store.update(BATCHES, batch_id, mutate)
        if stored is None:
            log.warning(
                "Batch task for unknown batch",
                extra={"extra_fields": {"batch_id": batch_id, "item_id": item_id}},
            )
        elif not claimed:
            log.info(
                "Batch item skipped",
                extra={
                    "extra_fields": {
                        "batch_id": batch_id,
                        "item_id": item_id,
                        "batch_status": stored.get("status"),
                        "item_status": stored.get("per_item_status", {}).get(item_id),
                    }
                },
            )
        return claimed

    def _record(self, batch_id: str, item_id: str, result: ItemResult) -> None:
        now = self._clock()
        recorded = False

        def mutate(record: dict[str, Any] | None) -> dict[str, Any] | None:
            nonlocal recorded
            if record is None:
                return None
            batch = Batch.from_dict(record)
            if item_id not in batch.per_item_status:
                return None
            if ItemStatus(batch.per_item_status[item_id]) in TERMINAL_ITEM_STATUSES:
                return None
            status = ItemStatus.COMPLETED if result.success else ItemStatus.FAILED
            batch.per_item_status[item_id] = status.value
            batch.per_item_result[item_id] = result.to_dict()
            batch.processed += 1
            if result.success:
                batch.succeeded += 1
            else:
                batch.failed += 1
            if batch.current_item_id == item_id:
                batch.current_item_id = None
            if batch.status == BatchStatus.QUEUED:
                BatchStateMachine.transition(batch, BatchStatus.PROCESSING)
                batch.started_at = now
            if batch.processed >= batch.total and batch.status == BatchStatus.PROCESSING:
                BatchStateMachine.transition(batch, BatchStatus.COMPLETED)
                batch.completed_at = now
            recorded = True
            return batch.to_dict()

        stored = self._store.update(BATCHES, batch_id, mutate)
        if not recorded:
            return
        self._metrics.increment(
            "notionpress.batch_items_total",
            tags={"status": "succeeded" if result.success else "failed"},
        )
        if stored is not None and stored.get("status") == BatchStatus.COMPLETED.value:
            log.info(
                "Batch completed",
                extra={
                    "extra_fields": {
                        "batch_id": batch_id,
                        "total": stored["total"],
                        "succeeded": stored["succeeded"],
                        "failed": stored["failed"],
                    }
                },
            )


def _unique_ids(source_ids: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for source_id in source_ids:
        if source_id and source_id.strip():
            seen.setdefault(source_id.strip(), None)
    return list(seen)
