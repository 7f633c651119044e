"""Public data models for notionpress.

Every persisted record (batch, link registry row, media registry row,
document mapping) is a plain dataclass that round-trips through
``to_dict`` / ``from_dict`` so any :class:`~notionpress.storage.Store`
backend only ever holds JSON-compatible dicts.  Result and snapshot types
returned from public operations are plain dataclasses without persistence
helpers.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class BatchStatus(str, Enum):
    """Lifecycle states of a batch."""

    QUEUED = "queued"
    """Scheduled; no task has started yet."""

    PROCESSING = "processing"
    """At least one task has started."""

    COMPLETED = "completed"
    """Every item reached a terminal state (``processed == total``)."""

    CANCELLED = "cancelled"
    """Cancelled by a caller; pending tasks were unscheduled."""


class ItemStatus(str, Enum):
    """Per-item states inside a batch."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_ITEM_STATUSES: frozenset[ItemStatus] = frozenset({
    ItemStatus.COMPLETED,
    ItemStatus.FAILED,
})


class LinkKind(str, Enum):
    """Kind of source document a link registry entry points at."""

    PAGE = "page"
    DATABASE = "database"


class SyncStatus(str, Enum):
    """Whether a referenced source document exists on the target yet."""

    UNSYNCED = "unsynced"
    SYNCED = "synced"


class MediaStatus(str, Enum):
    """State of a media registry row."""

    PENDING = "pending"
    """Acquisition task enqueued, asset not stored yet."""

    ACQUIRED = "acquired"
    """Asset stored on the target platform."""

    UNSUPPORTED = "unsupported"
    """Format is not uploadable; rendered as a direct link."""

    FAILED = "failed"
    """Last acquisition attempt failed."""


class AssetKind(str, Enum):
    """What an :class:`AssetRef` returned by the media pipeline points to."""

    STORED = "stored"
    PENDING = "pending"
    EXTERNAL = "external"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------

def _dump_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _dump_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_dump_value(v) for v in value]
    return value


def _load_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class _Record:
    """Mixin providing dict round-tripping for persisted dataclasses."""

    _datetime_fields: ClassVar[tuple[str, ...]] = ()
    _enum_fields: ClassVar[dict[str, type[Enum]]] = {}

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: _dump_value(getattr(self, f.name))
            for f in dataclasses.fields(self)  # type: ignore[arg-type]
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Any:
        names = {f.name for f in dataclasses.fields(cls)}  # type: ignore[arg-type]
        kwargs = {k: v for k, v in data.items() if k in names}
        for name in cls._datetime_fields:
            if name in kwargs:
                kwargs[name] = _load_datetime(kwargs[name])
        for name, enum_type in cls._enum_fields.items():
            if kwargs.get(name) is not None:
                kwargs[name] = enum_type(kwargs[name])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

@dataclass
class ConversionWarning:
    """A non-fatal issue encountered while converting a block tree.

    Attributes
    ----------
    code:
        A machine-readable warning code (e.g. ``"UNSUPPORTED_BLOCK"``).
    message:
        A human-readable description of the issue.
    context:
        Arbitrary structured data for diagnostics.
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)


@dataclass
class ConversionResult:
    """Markup produced for one block tree plus the warnings raised on the way."""

    markup: str
    warnings: list[ConversionWarning] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Source documents
# ---------------------------------------------------------------------------

@dataclass
class DocumentProperties:
    """Normalised page metadata fetched from the source platform.

    Attributes
    ----------
    id:
        Source page id as returned by the API.
    title:
        Plain text of the first ``title``-typed property, or ``""``.
    created_time / last_edited_time:
        ISO-8601 timestamps from the source.
    url:
        Canonical source URL of the page.
    properties / parent / icon / cover:
        Raw payloads, passed through untouched.
    """

    id: str
    title: str = ""
    created_time: str | None = None
    last_edited_time: str | None = None
    url: str | None = None
    properties: dict = field(default_factory=dict)
    parent: dict = field(default_factory=dict)
    icon: dict | None = None
    cover: dict | None = None


@dataclass
class LocalFile:
    """A binary downloaded from the source platform to local disk."""

    path: str
    mime_type: str
    size: int
    filename: str


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------

@dataclass
class DocumentMapping(_Record):
    """Links one synced source document to its target document.

    Created on first successful sync, updated on every later sync, never
    deleted automatically.
    """

    source_id: str
    target_ref: str
    last_synced_at: datetime | None = None
    source_last_modified_at: str | None = None

    _datetime_fields: ClassVar[tuple[str, ...]] = ("last_synced_at",)


@dataclass
class LinkEntry(_Record):
    """A Link Registry row for one referenced source document.

    Attributes
    ----------
    source_id:
        Normalised (dash-stripped, lowercase) source id.
    title:
        Display title; equals ``source_id`` until the real title is known.
    kind:
        :class:`LinkKind` of the referent.
    slug:
        Placeholder route segment.  Unique across the registry.
    sync_status:
        :class:`SyncStatus` of the referent.
    target_ref:
        Target document reference once synced.
    """

    source_id: str
    title: str
    slug: str
    kind: LinkKind = LinkKind.PAGE
    sync_status: SyncStatus = SyncStatus.UNSYNCED
    target_ref: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _datetime_fields: ClassVar[tuple[str, ...]] = ("created_at", "updated_at")
    _enum_fields: ClassVar[dict[str, type[Enum]]] = {
        "kind": LinkKind,
        "sync_status": SyncStatus,
    }

    @property
    def is_synced(self) -> bool:
        return self.sync_status == SyncStatus.SYNCED and self.target_ref is not None


@dataclass
class MediaEntry(_Record):
    """A Media Registry row: one target asset per source block."""

    source_block_id: str
    fingerprint: str
    source_url: str
    status: MediaStatus = MediaStatus.PENDING
    target_asset_ref: str | None = None
    asset_url: str | None = None
    error_count: int = 0
    last_error: str | None = None
    registered_at: datetime | None = None
    updated_at: datetime | None = None

    _datetime_fields: ClassVar[tuple[str, ...]] = ("registered_at", "updated_at")
    _enum_fields: ClassVar[dict[str, type[Enum]]] = {"status": MediaStatus}


@dataclass
class ItemResult(_Record):
    """Outcome of syncing one batch item."""

    success: bool
    target_ref: str | None = None
    error: str | None = None
    duration_seconds: float = 0.0


@dataclass
class Batch(_Record):
    """A scheduled, trackable group of synchronization work items.

    Mutated only through atomic store updates issued by task callbacks,
    the dead-task handler and cancellation.  ``processed`` never decreases
    and ``succeeded + failed == processed`` holds after every update.
    """

    batch_id: str
    item_ids: list[str]
    total: int
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    status: BatchStatus = BatchStatus.QUEUED
    per_item_status: dict[str, str] = field(default_factory=dict)
    per_item_result: dict[str, dict] = field(default_factory=dict)
    task_ids: list[str] = field(default_factory=list)
    current_item_id: str | None = None
    collection_id: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    _datetime_fields: ClassVar[tuple[str, ...]] = ("created_at", "started_at", "completed_at")
    _enum_fields: ClassVar[dict[str, type[Enum]]] = {"status": BatchStatus}

    @property
    def is_terminal(self) -> bool:
        return self.status in (BatchStatus.COMPLETED, BatchStatus.CANCELLED)


# ---------------------------------------------------------------------------
# Results and snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AssetRef:
    """Reference handed back by the media pipeline.

    Attributes
    ----------
    kind:
        :class:`AssetKind` of the reference.
    source_block_id:
        The source block the asset belongs to.
    url:
        URL to render (stored asset, external source, or ``None`` while
        pending or failed).
    asset_id:
        Target asset reference for stored assets.
    error:
        Diagnostic message for failed acquisitions.
    """

    kind: AssetKind
    source_block_id: str
    url: str | None = None
    asset_id: str | None = None
    error: str | None = None


@dataclass
class SyncResult:
    """Result of :meth:`SyncManager.sync_document`.

    Attributes
    ----------
    success:
        ``True`` when the document was persisted.
    source_id:
        Normalised source id (or the raw input when validation failed).
    target_ref:
        Target document reference, ``None`` on failure.
    error:
        Failure message, ``None`` on success.
    warnings:
        Non-fatal conversion issues.
    """

    success: bool
    source_id: str
    target_ref: str | None = None
    error: str | None = None
    warnings: list[ConversionWarning] = field(default_factory=list)


@dataclass
class RepairResult:
    """Counters reported by a link repair pass."""

    documents_checked: int = 0
    documents_updated: int = 0
    links_rewritten: int = 0


@dataclass
class BatchProgress:
    """Read-only snapshot of a :class:`Batch` for polling callers."""

    batch_id: str
    status: BatchStatus
    total: int
    processed: int
    succeeded: int
    failed: int
    percentage: int
    current_item_id: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    per_item_status: dict[str, str] = field(default_factory=dict)
    per_item_result: dict[str, dict] = field(default_factory=dict)
