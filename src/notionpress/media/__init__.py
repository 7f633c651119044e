"""Media acquisition: registry, pipeline, detection and render helpers."""

from __future__ import annotations

from .detect import MediaDisposition, classify_mime, sniff_mime, validate_media_file
from .pipeline import (
    ACQUIRE_CALLBACK,
    MediaAcquisitionPipeline,
    count_media_blocks,
)
from .registry import MediaRegistry, fingerprint
from .render import render_media_placeholder, render_placeholders
from .signed_url import is_url_expired, strip_query, url_expires_at

__all__ = [
    "ACQUIRE_CALLBACK",
    "MediaAcquisitionPipeline",
    "MediaDisposition",
    "MediaRegistry",
    "classify_mime",
    "count_media_blocks",
    "fingerprint",
    "is_url_expired",
    "render_media_placeholder",
    "render_placeholders",
    "sniff_mime",
    "strip_query",
    "url_expires_at",
    "validate_media_file",
]
