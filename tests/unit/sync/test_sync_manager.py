"""Tests for SyncManager: the per-document pipeline and its failure modes."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from notionpress.errors import NotionpressInfrastructureError, NotionpressValidationError
from notionpress.media import MediaAcquisitionPipeline, MediaRegistry
from notionpress.models import SyncStatus
from notionpress.notion_api.fetcher import ContentFetcher
from notionpress.storage import MAPPINGS
from notionpress.sync import SyncManager, validate_source_id

from conftest import PNG_BYTES

A = "a" * 32
B = "b" * 32
A_DASHED = f"{A[:8]}-{A[8:12]}-{A[12:16]}-{A[16:20]}-{A[20:]}".upper()
S3 = "https://prod-files.s3.us-west-2.amazonaws.com/space/img-{n}.png"


class RecordingMetricsHook:
    def __init__(self) -> None:
        self.increments: list[str] = []
        self.timings: list[str] = []

    def increment(self, name, value=1, tags=None):
        self.increments.append(name)

    def timing(self, name, ms, tags=None):
        self.timings.append(name)

    def gauge(self, name, value, tags=None):
        pass


def paragraph(text: str, block_id: str = "p1") -> dict:
    return {
        "type": "paragraph",
        "id": block_id,
        "paragraph": {"rich_text": [{"type": "text", "text": {"content": text}, "plain_text": text}]},
    }


def link_to(page_id: str) -> dict:
    return {"type": "link_to_page", "id": "l1", "link_to_page": {"type": "page_id", "page_id": page_id}}


def images(count: int) -> list[dict]:
    return [
        {"type": "image", "id": f"img-{n}", "image": {"type": "file", "file": {"url": S3.format(n=n)}}}
        for n in range(count)
    ]


@pytest.fixture
def metrics():
    return RecordingMetricsHook()


@pytest.fixture
def fetcher(source, config):
    return ContentFetcher(source, config)


@pytest.fixture
def manager(fetcher, target, store, config, metrics, clock):
    return SyncManager(fetcher, target, store, config, metrics=metrics, clock=clock)


class TestValidateSourceId:
    def test_dashed_uuid_accepted(self):
        validate_source_id(A_DASHED)

    @pytest.mark.parametrize(
        ("source_id", "message"),
        [
            ("", "Source document id cannot be empty."),
            ("a" * 51, "Source document id exceeds maximum length of 50 characters."),
            ("abc/../etc", "Source document id contains invalid characters."),
        ],
    )
    def test_rejections(self, source_id, message):
        with pytest.raises(NotionpressValidationError) as exc_info:
            validate_source_id(source_id)
        assert exc_info.value.message.startswith(message)


class TestSyncDocument:
    def test_success_creates_document_and_mapping(self, manager, source, target, clock, metrics):
        source.add_page(A, "Hello World", [paragraph("Hello")], last_edited="2026-02-01T00:00:00.000Z")
        result = manager.sync_document(A_DASHED)

        assert result.success is True
        assert result.source_id == A
        assert result.target_ref == "100"
        assert result.error is None
        doc = target.documents["100"]
        assert doc["title"] == "Hello World"
        assert doc["status"] == "publish"
        assert doc["source_id"] == A
        assert "<p>Hello</p>" in doc["content"]

        mapping = manager.find_mapping(A)
        assert mapping.target_ref == "100"
        assert mapping.last_synced_at == clock.now
        assert mapping.source_last_modified_at == "2026-02-01T00:00:00.000Z"

        entry = manager.link_registry.find(A)
        assert entry.sync_status == SyncStatus.SYNCED
        assert entry.target_ref == "100"
        assert entry.title == "Hello World"

        assert "notionpress.documents_synced_total" in metrics.increments
        assert "notionpress.sync_duration_ms" in metrics.timings

    def test_resync_updates_same_document(self, manager, source, target, store):
        source.add_page(A, "First", [paragraph("v1")])
        first = manager.sync_document(A)
        source.add_page(A, "Second", [paragraph("v2")])
        second = manager.sync_document(A)

        assert first.target_ref == second.target_ref == "100"
        assert list(target.documents) == ["100"]
        assert target.documents["100"]["target_ref"] == "100"
        assert "<p>v2</p>" in target.documents["100"]["content"]
        assert len(list(store.scan(MAPPINGS))) == 1

    def test_missing_title_becomes_untitled(self, manager, source, target):
        source.add_page(A, "", [])
        manager.sync_document(A)
        assert target.documents["100"]["title"] == "Untitled"

    def test_forward_reference_repaired_when_target_synced(self, manager, source, target):
        source.add_page(A, "Alpha", [link_to(B)])
        source.add_page(B, "Beta", [paragraph("b")])

        manager.sync_document(A)
        before = target.documents["100"]["content"]
        assert f'data-notion-id="{B}"' in before
        assert "https://blog.example/notion/" in before

        b_result = manager.sync_document(B)
        after = target.documents["100"]["content"]
        assert b_result.target_ref == "101"
        assert 'href="https://blog.example/posts/101/"' in after
        assert "100" in target.content_updates

    def test_repair_failure_does_not_fail_sync(self, fetcher, target, store, config, source):
        repairer = MagicMock()
        repairer.repair_all.side_effect = RuntimeError("boom")
        manager = SyncManager(fetcher, target, store, config, repairer=repairer)
        source.add_page(A, "Alpha", [])
        assert manager.sync_document(A).success is True


class TestSyncFailures:
    @pytest.mark.parametrize("source_id", ["", "x" * 51, "drop table;"])
    def test_invalid_id_fails_without_fetching(self, manager, source, source_id):
        result = manager.sync_document(source_id)
        assert result.success is False
        assert result.source_id == source_id
        assert result.error
        assert source.block_calls == []

    def test_missing_page(self, manager, metrics, store):
        result = manager.sync_document(A)
        assert result.success is False
        assert result.error.startswith("Failed to fetch page properties:")
        assert manager.find_mapping(A) is None
        assert "notionpress.sync_failures_total" in metrics.increments

    def test_persistence_failure(self, manager, source, target):
        source.add_page(A, "Alpha", [paragraph("x")])
        target.fail_for.add(A)
        result = manager.sync_document(A)
        assert result.success is False
        assert result.error == "Document persistence failed: database is locked"
        assert result.target_ref is None
        assert manager.find_mapping(A) is None

    def test_conversion_failure(self, fetcher, target, store, config, source):
        engine = MagicMock()
        engine.convert.side_effect = RuntimeError("bad tree")
        manager = SyncManager(fetcher, target, store, config, engine=engine)
        source.add_page(A, "Alpha", [])
        result = manager.sync_document(A)
        assert result.success is False
        assert result.error == "Block conversion failed: bad tree"
        assert target.persist_calls == 0

    def test_unexpected_exception_reported(self, target, store, config):
        fetcher = MagicMock()
        fetcher.fetch_properties.side_effect = RuntimeError("socket closed")
        manager = SyncManager(fetcher, target, store, config)
        result = manager.sync_document(A)
        assert result.success is False
        assert result.error == "Sync failed with exception: socket closed"

    def test_infrastructure_error_raised(self, target, store, config):
        fetcher = MagicMock()
        fetcher.fetch_properties.side_effect = NotionpressInfrastructureError("store offline")
        manager = SyncManager(fetcher, target, store, config)
        with pytest.raises(NotionpressInfrastructureError):
            manager.sync_document(A)


class TestRowProperties:
    @pytest.fixture
    def row(self, source):
        source.add_page(A, "Launch", [paragraph("Body")])
        page = source.pages[A]
        page["parent"] = {"type": "database_id", "database_id": B}
        page["properties"].update({
            "Status": {"type": "status", "status": {"name": "Done", "color": "green"}},
            "Published": {"type": "checkbox", "checkbox": True},
            "Tags": {"type": "multi_select", "multi_select": []},
        })
        return page

    def test_row_gets_properties_block_and_field(self, manager, row, target):
        assert manager.sync_document(A).success is True
        doc = target.documents["100"]
        assert doc["properties"] == {
            "Name": "<strong>Launch</strong>",
            "Status": '<span class="notion-status notion-green">Done</span>',
            "Published": True,
        }
        assert doc["content"].startswith(
            "<!-- wp:html -->\n"
            '<dl class="notion-properties">\n'
            '<dt>Status</dt><dd><span class="notion-status notion-green">Done</span></dd>\n'
            "<dt>Published</dt><dd>✓</dd>\n"
            "</dl>\n<!-- /wp:html -->\n\n"
        )
        assert "<p>Body</p>" in doc["content"]

    def test_block_can_be_disabled(self, fetcher, target, store, config, row):
        manager = SyncManager(fetcher, target, store, replace(config, row_properties_block=False))
        manager.sync_document(A)
        doc = target.documents["100"]
        assert "notion-properties" not in doc["content"]
        assert doc["properties"]["Published"] is True

    def test_standalone_page_has_no_block(self, manager, source, target):
        source.add_page(A, "Notes", [paragraph("Body")])
        manager.sync_document(A)
        doc = target.documents["100"]
        assert doc["properties"] == {"Name": "<strong>Notes</strong>"}
        assert "notion-properties" not in doc["content"]

    def test_related_row_link_repaired_after_sync(self, manager, source, target, row):
        row["properties"]["Blocked by"] = {"type": "relation", "relation": [{"id": B}]}
        manager.sync_document(A)
        assert f'href="https://blog.example/notion/{B}"' in target.documents["100"]["content"]

        source.add_page(B, "Design", [])
        manager.sync_document(B)
        content = target.documents["100"]["content"]
        assert f'href="https://blog.example/posts/101/" data-notion-id="{B}"' in content


class TestMediaDeferral:
    @pytest.fixture
    def media_manager(self, fetcher, target, store, config, source, queue, clock):
        for n in range(12):
            source.binaries[S3.format(n=n)] = (PNG_BYTES, "image/png")
        pipeline = MediaAcquisitionPipeline(
            MediaRegistry(store, clock), source, target, config, task_queue=queue, clock=clock,
        )
        pipeline.register_with(queue)
        return SyncManager(fetcher, target, store, config, media=pipeline, clock=clock)

    def test_below_threshold_acquires_inline(self, media_manager, source, queue, target):
        source.add_page(A, "Gallery", images(9))
        assert media_manager.sync_document(A).success is True
        assert len(source.downloads) == 9
        assert len(queue) == 0
        assert "wp:notionpress/media" not in target.documents["100"]["content"]

    def test_threshold_defers_to_queue(self, media_manager, source, queue, target):
        source.add_page(A, "Gallery", images(10))
        assert media_manager.sync_document(A).success is True
        assert source.downloads == []
        assert len(queue) == 10
        assert target.documents["100"]["content"].count("wp:notionpress/media") == 10

        queue.run_all()
        assert len(source.downloads) == 10

    def test_explicit_defer_overrides_count(self, media_manager, source, queue):
        source.add_page(A, "One", images(1))
        media_manager.sync_document(A, defer_media=True)
        assert len(queue) == 1
        assert source.downloads == []

    def test_deferral_without_queue_raises(self, fetcher, target, store, config, source, clock):
        pipeline = MediaAcquisitionPipeline(MediaRegistry(store, clock), source, target, config)
        manager = SyncManager(fetcher, target, store, config, media=pipeline)
        source.add_page(A, "One", images(1))
        with pytest.raises(NotionpressInfrastructureError):
            manager.sync_document(A, defer_media=True)


class TestSyncStatus:
    def test_unsynced(self, manager):
        status = manager.get_sync_status(A)
        assert status == {
            "source_id": A,
            "is_synced": False,
            "target_ref": None,
            "last_synced_at": None,
            "source_last_modified_at": None,
            "slug": None,
        }

    def test_synced(self, manager, source, clock):
        source.add_page(A, "Alpha", [])
        manager.sync_document(A)
        status = manager.get_sync_status(A_DASHED)
        assert status["is_synced"] is True
        assert status["target_ref"] == "100"
        assert status["last_synced_at"] == clock.now
        assert status["slug"]
