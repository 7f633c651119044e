"""Source platform client.

:class:`SourceClient` is the capability set the rest of notionpress
consumes; :class:`NotionSource` implements it over
:class:`~notionpress.notion_api.transport.NotionTransport`.

Binary downloads go through a separate :class:`httpx.Client` without the
integration's ``Authorization`` header: media lives behind pre-signed
storage URLs that must never receive the API token.
"""

from __future__ import annotations

import mimetypes
import os
import tempfile
from pathlib import PurePosixPath
from typing import Any, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import httpx

from notionpress.config import NotionpressConfig
from notionpress.errors import (
    NotionpressMediaError,
    NotionpressMediaSizeError,
    NotionpressNetworkError,
)
from notionpress.media.detect import sniff_mime
from notionpress.models import LocalFile
from notionpress.observability import get_logger
from notionpress.utils.ids import format_uuid
from notionpress.utils.redact import redact_url

from .transport import NotionTransport

log = get_logger("notionpress.source")

_CHUNK_BYTES = 64 * 1024


@runtime_checkable
class SourceClient(Protocol):
    """Capabilities consumed from the source platform."""

    def fetch_document_properties(self, source_id: str) -> dict[str, Any]:
        """Return the raw page object."""
        ...

    def fetch_document_blocks(
        self,
        block_id: str,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        """Return ``{"blocks": [...], "has_more": bool, "next_cursor": str | None}``."""
        ...

    def query_collection(
        self,
        collection_id: str,
        filters: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        """Return ``{"results": [...], "has_more": bool, "next_cursor": str | None}``."""
        ...

    def acquire_binary(self, url: str) -> LocalFile:
        """Download *url* to a local temporary file."""
        ...


def _filename_from_url(url: str) -> str:
    name = PurePosixPath(unquote(urlparse(url).path)).name
    return name or "download"


class NotionSource:
    """:class:`SourceClient` backed by the source platform's REST API.

    Parameters
    ----------
    config:
        Shared configuration.
    transport:
        Optional pre-built transport (tests inject a mocked one).
    download_client:
        Optional :class:`httpx.Client` used for binary downloads.
    """

    def __init__(
        self,
        config: NotionpressConfig,
        transport: NotionTransport | None = None,
        download_client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._transport = transport or NotionTransport(config)
        self._downloads = download_client or httpx.Client(
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
            follow_redirects=True,
        )

    # -- documents ---------------------------------------------------------

    def fetch_document_properties(self, source_id: str) -> dict[str, Any]:
        return self._transport.request("GET", f"/pages/{format_uuid(source_id)}")

    def fetch_document_blocks(
        self,
        block_id: str,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page_size": self._config.page_size}
        if cursor is not None:
            params["start_cursor"] = cursor
        data = self._transport.request(
            "GET", f"/blocks/{format_uuid(block_id)}/children", params=params,
        )
        return {
            "blocks": data.get("results", []),
            "has_more": bool(data.get("has_more", False)),
            "next_cursor": data.get("next_cursor"),
        }

    def query_collection(
        self,
        collection_id: str,
        filters: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"page_size": self._config.page_size}
        if filters:
            body["filter"] = filters
        if sorts:
            body["sorts"] = sorts
        if cursor is not None:
            body["start_cursor"] = cursor
        data = self._transport.request(
            "POST", f"/databases/{format_uuid(collection_id)}/query", json=body,
        )
        return {
            "results": data.get("results", []),
            "has_more": bool(data.get("has_more", False)),
            "next_cursor": data.get("next_cursor"),
        }

    # -- binaries ----------------------------------------------------------

    def acquire_binary(self, url: str) -> LocalFile:
        """Stream *url* into a temporary file.

        The MIME type comes from the ``Content-Type`` header, then from the
        leading bytes, then from the URL's extension.

        Raises
        ------
        NotionpressMediaSizeError
            If the body exceeds ``media_max_size_bytes``.
        NotionpressMediaError
            If the server answers with a non-2xx status.
        NotionpressNetworkError
            On transport-level failures.
        """
        max_bytes = self._config.media_max_size_bytes
        safe_url = redact_url(url)
        fd, path = tempfile.mkstemp(prefix="notionpress-")
        size = 0
        head = b""
        try:
            with os.fdopen(fd, "wb") as fh, self._downloads.stream("GET", url) as response:
                if not 200 <= response.status_code < 300:
                    raise NotionpressMediaError(
                        message=f"Download failed with HTTP {response.status_code}",
                        context={"source_url": safe_url, "status_code": response.status_code},
                    )
                declared = response.headers.get("content-length")
                if declared is not None and declared.isdigit() and int(declared) > max_bytes:
                    raise NotionpressMediaSizeError(
                        message=f"File size {declared} bytes exceeds maximum {max_bytes} bytes",
                        context={"source_url": safe_url, "size_bytes": int(declared),
                                 "max_bytes": max_bytes},
                    )
                for chunk in response.iter_bytes(_CHUNK_BYTES):
                    size += len(chunk)
                    if size > max_bytes:
                        raise NotionpressMediaSizeError(
                            message=f"File exceeds maximum {max_bytes} bytes",
                            context={"source_url": safe_url, "max_bytes": max_bytes},
                        )
                    if len(head) < 16:
                        head += chunk[:16]
                    fh.write(chunk)
                content_type = response.headers.get("content-type", "")
        except httpx.HTTPError as exc:
            os.unlink(path)
            raise NotionpressNetworkError(
                message=f"Download failed: {exc}",
                context={"url": safe_url},
                cause=exc,
            ) from exc
        except NotionpressMediaError:
            os.unlink(path)
            raise

        filename = _filename_from_url(url)
        mime_type = (
            content_type.split(";", 1)[0].strip().lower()
            or sniff_mime(head)
            or mimetypes.guess_type(filename)[0]
            or "application/octet-stream"
        )
        if mime_type == "application/octet-stream":
            mime_type = sniff_mime(head) or mimetypes.guess_type(filename)[0] or mime_type
        log.debug(
            "Binary downloaded",
            extra={"extra_fields": {"url": safe_url, "size": size, "mime_type": mime_type}},
        )
        return LocalFile(path=path, mime_type=mime_type, size=size, filename=filename)

    def close(self) -> None:
        """Close both HTTP clients."""
        self._transport.close()
        self._downloads.close()

    def __enter__(self) -> NotionSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
