"""Tests for the placeholder route."""

from __future__ import annotations

import pytest

from notionpress.links import LinkRegistry, LinkResolver, LinkRouter

KEY = "feedfacefeedfacefeedfacefeedface"


@pytest.fixture
def registry(store):
    return LinkRegistry(store)


@pytest.fixture
def router(registry, target, config):
    return LinkRouter(registry, LinkResolver(registry, target, config))


class TestResolveRoute:
    def test_unknown_slug(self, router):
        assert router.resolve_route("missing") is None

    def test_unsynced_redirects_to_source(self, router, registry):
        registry.register(KEY, title="Guide")
        assert router.resolve_route("guide") == f"https://notion.so/{KEY}"

    def test_synced_redirects_to_permalink(self, router, registry, target):
        ref = target.create_or_update_document({"source_id": KEY})
        registry.mark_synced(KEY, ref, title="Guide")
        assert router.resolve_route("/guide/") == f"https://blog.example/posts/{ref}/"

    def test_placeholder_slug_emitted_before_title_known(self, router, registry, target):
        registry.register(KEY)
        ref = target.create_or_update_document({"source_id": KEY})
        registry.mark_synced(KEY, ref, title="Guide")
        assert router.resolve_route(KEY) == f"https://blog.example/posts/{ref}/"
