"""MIME detection and validation for downloaded media.

Decides whether a downloaded file is uploaded to the target asset store,
linked to its source URL (recognised but unsupported formats such as
TIFF), or rejected.
"""

from __future__ import annotations

from enum import Enum

from notionpress.config import NotionpressConfig
from notionpress.errors import NotionpressMediaSizeError, NotionpressMediaTypeError
from notionpress.models import LocalFile

# Map of magic bytes to MIME types for sniffing.
_MAGIC_BYTES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"RIFF", "image/webp"),  # RIFF....WEBP
    (b"<svg", "image/svg+xml"),
    (b"<?xml", "image/svg+xml"),
    (b"BM", "image/bmp"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"%PDF", "application/pdf"),
]


class MediaDisposition(str, Enum):
    """What the pipeline does with a file of a given MIME type."""

    UPLOAD = "upload"
    LINK = "link"
    REJECT = "reject"


def sniff_mime(data: bytes) -> str | None:
    """Detect a MIME type from the first bytes of a file."""
    for magic, mime in _MAGIC_BYTES:
        if data[:len(magic)] == magic:
            if magic == b"RIFF" and data[8:12] != b"WEBP":
                continue
            return mime
    return None


def classify_mime(
    mime_type: str,
    config: NotionpressConfig,
    media_type: str = "image",
) -> MediaDisposition:
    """Map *mime_type* onto a :class:`MediaDisposition` using *config*'s lists.

    Image blocks are checked against ``media_allowed_mimes``; every other
    media block type against ``media_file_mimes``.
    """
    mime = mime_type.split(";", 1)[0].strip().lower()
    if mime in config.media_unsupported_mimes:
        return MediaDisposition.LINK
    allowed = config.media_allowed_mimes if media_type == "image" else config.media_file_mimes
    if mime in allowed:
        return MediaDisposition.UPLOAD
    return MediaDisposition.REJECT


def validate_media_file(
    file: LocalFile,
    config: NotionpressConfig,
    media_type: str = "image",
) -> MediaDisposition:
    """Check a downloaded file against the size cap and MIME lists.

    Returns
    -------
    MediaDisposition
        ``UPLOAD`` or ``LINK``.

    Raises
    ------
    NotionpressMediaSizeError
        If the file exceeds ``media_max_size_bytes``.
    NotionpressMediaTypeError
        If the MIME type is on neither list.
    """
    if file.size > config.media_max_size_bytes:
        raise NotionpressMediaSizeError(
            message=(
                f"File size {file.size} bytes exceeds "
                f"maximum {config.media_max_size_bytes} bytes"
            ),
            context={"size_bytes": file.size, "max_bytes": config.media_max_size_bytes},
        )
    disposition = classify_mime(file.mime_type, config, media_type)
    if disposition is MediaDisposition.REJECT:
        raise NotionpressMediaTypeError(
            message=f"Media MIME type {file.mime_type!r} is not allowed",
            context={
                "mime_type": file.mime_type,
                "media_type": media_type,
            },
        )
    return disposition
