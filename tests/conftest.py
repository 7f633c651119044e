"""Shared test fixtures for the notionpress test suite."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from notionpress.config import NotionpressConfig
from notionpress.models import LocalFile
from notionpress.storage import MemoryStore
from notionpress.tasks import MemoryTaskQueue
from notionpress.utils.ids import normalize_id

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeTarget:
    """In-memory target platform recording every call."""

    def __init__(self, site: str = "https://blog.example") -> None:
        self.site = site
        self.documents: dict[str, dict[str, Any]] = {}
        self.assets: dict[str, dict[str, Any]] = {}
        self.deleted_assets: list[str] = []
        self.content_updates: list[str] = []
        self.fail_for: set[str] = set()
        self.persist_calls = 0
        self._next_doc = 100
        self._next_asset = 500

    def create_or_update_document(self, fields: dict[str, Any]) -> str:
        self.persist_calls += 1
        if fields.get("source_id") in self.fail_for:
            raise RuntimeError("database is locked")
        ref = fields.get("target_ref")
        if ref is None or ref not in self.documents:
            ref = str(self._next_doc)
            self._next_doc += 1
        self.documents[ref] = dict(fields, target_ref=ref)
        return ref

    def get_document_content(self, target_ref: str) -> str | None:
        doc = self.documents.get(target_ref)
        return doc["content"] if doc else None

    def update_document_content(self, target_ref: str, content: str) -> None:
        self.documents[target_ref]["content"] = content
        self.content_updates.append(target_ref)

    def resolve_permalink(self, target_ref: str) -> str | None:
        if target_ref not in self.documents:
            return None
        return f"{self.site}/posts/{target_ref}/"

    def store_asset(self, file: LocalFile, metadata: dict[str, Any]) -> str:
        ref = str(self._next_asset)
        self._next_asset += 1
        with open(file.path, "rb") as fh:
            data = fh.read()
        self.assets[ref] = {"metadata": dict(metadata), "mime_type": file.mime_type, "size": len(data)}
        return ref

    def asset_url(self, asset_ref: str) -> str | None:
        if asset_ref not in self.assets:
            return None
        return f"{self.site}/uploads/{asset_ref}.png"

    def delete_asset(self, asset_ref: str) -> None:
        self.assets.pop(asset_ref, None)
        self.deleted_assets.append(asset_ref)


class FakeSource:
    """In-memory source client.

    ``pages`` maps a normalised id to the page object, ``children`` maps a
    normalised block/page id to its child blocks, ``collections`` maps a
    collection id to row ids.  ``page_size`` splits listings into pages.
    """

    def __init__(self, page_size: int = 100) -> None:
        self.pages: dict[str, dict[str, Any]] = {}
        self.children: dict[str, list[dict[str, Any]]] = {}
        self.collections: dict[str, list[str]] = {}
        self.binaries: dict[str, tuple[bytes, str]] = {}
        self.page_size = page_size
        self.downloads: list[str] = []
        self.block_calls: list[str] = []

    # -- test setup --------------------------------------------------------

    def add_page(self, page_id: str, title: str, blocks: list[dict[str, Any]] | None = None,
                 last_edited: str = "2026-01-01T00:00:00.000Z") -> None:
        key = normalize_id(page_id)
        self.pages[key] = {
            "object": "page",
            "id": page_id,
            "created_time": "2025-12-31T00:00:00.000Z",
            "last_edited_time": last_edited,
            "url": f"https://www.notion.so/{key}",
            "parent": {"type": "workspace", "workspace": True},
            "properties": {
                "Name": {
                    "type": "title",
                    "title": [{"type": "text", "plain_text": title, "text": {"content": title}}]
                    if title else [],
                }
            },
        }
        self.children[key] = list(blocks or [])

    # -- SourceClient ------------------------------------------------------

    def fetch_document_properties(self, source_id: str) -> dict[str, Any]:
        from notionpress.errors import NotionpressNotFoundError

        page = self.pages.get(normalize_id(source_id))
        if page is None:
            raise NotionpressNotFoundError(
                message=f"Resource not found on GET /pages/{source_id}: missing",
                context={"path": f"/pages/{source_id}"},
            )
        return page

    def fetch_document_blocks(self, block_id: str, cursor: str | None = None) -> dict[str, Any]:
        key = normalize_id(block_id)
        self.block_calls.append(key)
        blocks = self.children.get(key, [])
        start = int(cursor or 0)
        end = start + self.page_size
        has_more = end < len(blocks)
        return {
            "blocks": [dict(b) for b in blocks[start:end]],
            "has_more": has_more,
            "next_cursor": str(end) if has_more else None,
        }

    def query_collection(self, collection_id: str, filters=None, sorts=None,
                         cursor: str | None = None) -> dict[str, Any]:
        rows = [{"object": "page", "id": row} for row in self.collections.get(collection_id, [])]
        start = int(cursor or 0)
        end = start + self.page_size
        has_more = end < len(rows)
        return {"results": rows[start:end], "has_more": has_more,
                "next_cursor": str(end) if has_more else None}

    def acquire_binary(self, url: str) -> LocalFile:
        from notionpress.errors import NotionpressMediaError

        self.downloads.append(url)
        base = url.split("?", 1)[0]
        if base not in self.binaries:
            raise NotionpressMediaError(
                message="Download failed with HTTP 404", context={"source_url": base},
            )
        data, mime = self.binaries[base]
        fd, path = tempfile.mkstemp(prefix="notionpress-test-")
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        return LocalFile(path=path, mime_type=mime, size=len(data), filename=base.rsplit("/", 1)[-1])


class FrozenClock:
    """Callable clock advanced manually."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def config() -> NotionpressConfig:
    """Default test configuration with a dummy token and no waiting."""
    return NotionpressConfig(
        token="test_token_1234",
        site_url="https://blog.example",
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
        rate_limit_rps=10_000.0,
        item_stagger_seconds=1.0,
        chunk_stagger_seconds=3.0,
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def queue(clock: FrozenClock) -> MemoryTaskQueue:
    return MemoryTaskQueue(max_attempts=3, clock=clock)


@pytest.fixture
def target() -> FakeTarget:
    return FakeTarget()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()
