"""Integration tests against the live source API.

These tests require a real integration token and a test page.
Set NOTION_TOKEN and NOTION_TEST_PAGE_ID environment variables to run them.

Usage:
    NOTION_TOKEN=ntn_xxx NOTION_TEST_PAGE_ID=xxx pytest tests/integration/ -v
"""
import os

import pytest

from conftest import FakeTarget

# Skip entire module if no token is configured
pytestmark = pytest.mark.skipif(
    not os.environ.get("NOTION_TOKEN"),
    reason="NOTION_TOKEN not set; skipping integration tests",
)


@pytest.fixture
def live_config():
    from notionpress.config import NotionpressConfig

    return NotionpressConfig(token=os.environ["NOTION_TOKEN"], site_url="https://blog.example")


@pytest.fixture
def page_id():
    pid = os.environ.get("NOTION_TEST_PAGE_ID")
    if not pid:
        pytest.skip("NOTION_TEST_PAGE_ID not set")
    return pid


@pytest.fixture
def live_source(live_config):
    from notionpress.notion_api import NotionSource

    with NotionSource(live_config) as source:
        yield source


class TestFetch:
    """Read-only calls against the test page."""

    def test_fetch_properties(self, live_source, live_config, page_id):
        from notionpress.notion_api.fetcher import ContentFetcher

        props = ContentFetcher(live_source, live_config).fetch_properties(page_id)
        assert props.id
        assert props.last_edited_time

    def test_fetch_block_tree(self, live_source, live_config, page_id):
        from notionpress.notion_api.fetcher import ContentFetcher

        blocks = ContentFetcher(live_source, live_config).fetch_block_tree(page_id)
        assert isinstance(blocks, list)
        assert all("type" in block for block in blocks)


class TestSync:
    """Full single-document sync into an in-memory target."""

    def test_sync_page(self, live_source, live_config, page_id):
        from notionpress.notion_api.fetcher import ContentFetcher
        from notionpress.storage import MemoryStore
        from notionpress.sync import SyncManager

        target = FakeTarget()
        manager = SyncManager(ContentFetcher(live_source, live_config), target, MemoryStore(), live_config)
        result = manager.sync_document(page_id)
        assert result.success, result.error
        assert target.documents[result.target_ref]["content"] is not None


class TestErrorHandling:
    """Typed errors from the live API."""

    def test_missing_page_is_a_failed_result(self, live_source, live_config):
        from notionpress.notion_api.fetcher import ContentFetcher
        from notionpress.storage import MemoryStore
        from notionpress.sync import SyncManager

        manager = SyncManager(ContentFetcher(live_source, live_config), FakeTarget(),
                              MemoryStore(), live_config)
        result = manager.sync_document("0" * 32)
        assert result.success is False
        assert result.error.startswith("Failed to fetch page properties:")
