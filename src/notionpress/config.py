"""Configuration for notionpress.

:class:`NotionpressConfig` captures every tuneable knob: source API access,
pagination safety caps, batch partitioning and staggering, conversion
options, placeholder routing, and media limits.  A single instance is
shared by the source client, the conversion engine, the sync manager and
the batch orchestrator.

Three module-level constants define the default MIME lists:

* :data:`DEFAULT_MEDIA_MIMES`: accepted for acquisition into the target
  asset store.
* :data:`DEFAULT_UNSUPPORTED_MIMES`: recognised but never uploaded; blocks
  carrying them degrade to a direct link.
* :data:`DEFAULT_FILE_MIMES`: accepted for file, PDF, audio and video
  blocks.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Literal

# ---------------------------------------------------------------------------
# MIME constants
# ---------------------------------------------------------------------------

DEFAULT_MEDIA_MIMES: list[str] = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    "image/bmp",
]
"""MIME types the media pipeline stores in the target asset store."""

DEFAULT_UNSUPPORTED_MIMES: list[str] = [
    "image/tiff",
    "image/tif",
]
"""MIME types linked to their source URL instead of being uploaded."""

DEFAULT_FILE_MIMES: list[str] = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
    "text/markdown",
    "application/zip",
    "application/json",
    "application/xml",
    "text/xml",
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "video/mp4",
    "video/webm",
    "video/quicktime",
]
"""MIME types accepted for file, PDF, audio and video blocks."""


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class NotionpressConfig:
    """Complete configuration for a notionpress deployment.

    Every parameter has a sensible default; only ``token`` is needed to talk
    to the source API.

    Parameters
    ----------
    token:
        Source integration token.  Never logged.
    notion_version:
        Value of the ``Notion-Version`` header sent with every request.
    base_url:
        Source API root URL.  Must be HTTPS unless it targets localhost.
    retry_max_attempts:
        Maximum attempts per request for retryable HTTP errors.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on computed backoff delay.
    retry_jitter:
        Scale each backoff delay randomly between 50 % and 100 %.
    rate_limit_rps:
        Client-side request pacing for one worker (token bucket).
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    page_size:
        ``page_size`` sent with every paginated request (API maximum 100).
    max_pagination_batches:
        Safety cap on the number of pages fetched for one block list or
        collection query.
    max_block_depth:
        Maximum nesting depth followed when attaching children.
    max_source_id_length:
        Longest accepted source document identifier.
    batch_chunk_size:
        Items per task when a whole collection is scheduled.
    item_stagger_seconds:
        Delay between consecutive per-item tasks of a multi-page batch.
    chunk_stagger_seconds:
        Delay between consecutive chunk tasks of a collection batch.
    merge_list_items:
        Merge adjacent list items of the same kind into a single list
        container.  When ``False`` each item gets its own container.
    unsupported_block_policy:
        Markup used by the fallback converter when it found text.

        * ``"comment"``: paragraph framed by diagnostic comments.
        * ``"paragraph"``: bare marked paragraph without the comments.
    row_properties_block:
        Prepend a block listing the formatted properties of collection
        rows to their body.  The formatted values are passed to the
        target as the ``properties`` field either way.
    site_url:
        Base URL of the target site, prefixed to placeholder routes.
    placeholder_route_prefix:
        Route under which links to unsynced documents are emitted.
    document_status:
        Publication status passed to the target platform on persist.
    media_allowed_mimes:
        MIME types uploaded to the target asset store.
    media_unsupported_mimes:
        MIME types linked externally instead of uploaded.
    media_file_mimes:
        MIME types uploaded for non-image media blocks.
    media_max_size_bytes:
        Largest file the pipeline downloads.  Default is 10 MiB.
    media_background_threshold:
        A document with at least this many media blocks acquires its media
        through background tasks instead of inline.
    media_url_expiry_buffer_seconds:
        Signed source URLs are treated as expired this many seconds early.
    media_pending_timeout_seconds:
        A pending claim older than this is treated as abandoned and may be
        claimed again by the next sync.
    metrics:
        A :class:`~notionpress.observability.MetricsHook`; ``None`` uses
        the no-op hook.
    debug_dump_payload:
        Write the (redacted) request/response pairs to *stderr*.
    """

    # ── Source API ──────────────────────────────────────────────────────
    token: str = ""

    notion_version: str = "2022-06-28"

    base_url: str = "https://api.notion.com/v1"

    retry_max_attempts: int = 5

    retry_base_delay: float = 1.0

    retry_max_delay: float = 60.0

    retry_jitter: bool = True

    rate_limit_rps: float = 3.0

    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Fetching ────────────────────────────────────────────────────────
    page_size: int = 100

    max_pagination_batches: int = 50

    max_block_depth: int = 10

    max_source_id_length: int = 50

    # ── Batches ─────────────────────────────────────────────────────────
    batch_chunk_size: int = 20

    item_stagger_seconds: float = 1.0

    chunk_stagger_seconds: float = 3.0

    # ── Conversion ──────────────────────────────────────────────────────
    merge_list_items: bool = True

    unsupported_block_policy: Literal["comment", "paragraph"] = "comment"

    row_properties_block: bool = True

    # ── Links ───────────────────────────────────────────────────────────
    site_url: str = ""

    placeholder_route_prefix: str = "/notion/"

    # ── Target ──────────────────────────────────────────────────────────
    document_status: str = "publish"

    # ── Media ───────────────────────────────────────────────────────────
    media_allowed_mimes: list[str] = field(
        default_factory=lambda: list(DEFAULT_MEDIA_MIMES),
    )

    media_unsupported_mimes: list[str] = field(
        default_factory=lambda: list(DEFAULT_UNSUPPORTED_MIMES),
    )

    media_file_mimes: list[str] = field(
        default_factory=lambda: list(DEFAULT_FILE_MIMES),
    )

    media_max_size_bytes: int = 10 * 1024 * 1024  # 10 MiB

    media_background_threshold: int = 10

    media_url_expiry_buffer_seconds: int = 300

    media_pending_timeout_seconds: int = 3600

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API token, or target localhost for testing."
            )

        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if not 1 <= self.page_size <= 100:
            raise ValueError(f"page_size must be between 1 and 100, got {self.page_size}")
        if self.max_pagination_batches < 1:
            raise ValueError(
                f"max_pagination_batches must be >= 1, got {self.max_pagination_batches}"
            )
        if self.max_block_depth < 0:
            raise ValueError(f"max_block_depth must be >= 0, got {self.max_block_depth}")
        if self.max_source_id_length < 1:
            raise ValueError(
                f"max_source_id_length must be >= 1, got {self.max_source_id_length}"
            )
        if self.batch_chunk_size < 1:
            raise ValueError(f"batch_chunk_size must be >= 1, got {self.batch_chunk_size}")
        if self.item_stagger_seconds < 0:
            raise ValueError(
                f"item_stagger_seconds must be >= 0, got {self.item_stagger_seconds}"
            )
        if self.chunk_stagger_seconds < 0:
            raise ValueError(
                f"chunk_stagger_seconds must be >= 0, got {self.chunk_stagger_seconds}"
            )
        if not self.placeholder_route_prefix.startswith("/"):
            raise ValueError(
                "placeholder_route_prefix must start with '/', "
                f"got {self.placeholder_route_prefix!r}"
            )
        if self.media_max_size_bytes <= 0:
            raise ValueError(f"media_max_size_bytes must be > 0, got {self.media_max_size_bytes}")
        if self.media_background_threshold < 1:
            raise ValueError(
                f"media_background_threshold must be >= 1, got {self.media_background_threshold}"
            )
        if self.media_pending_timeout_seconds <= 0:
            raise ValueError(
                "media_pending_timeout_seconds must be > 0, "
                f"got {self.media_pending_timeout_seconds}"
            )

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"NotionpressConfig({', '.join(parts)})"
