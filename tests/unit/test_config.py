"""Tests for NotionpressConfig validation and representation."""

from __future__ import annotations

import pytest

from notionpress.config import (
    DEFAULT_FILE_MIMES,
    DEFAULT_MEDIA_MIMES,
    DEFAULT_UNSUPPORTED_MIMES,
    NotionpressConfig,
)


class TestDefaults:
    def test_source_api_defaults(self):
        cfg = NotionpressConfig()
        assert cfg.base_url == "https://api.notion.com/v1"
        assert cfg.notion_version == "2022-06-28"
        assert cfg.retry_max_attempts == 5

    def test_batch_defaults(self):
        cfg = NotionpressConfig()
        assert cfg.batch_chunk_size == 20
        assert cfg.item_stagger_seconds == 1.0
        assert cfg.chunk_stagger_seconds == 3.0

    def test_media_defaults(self):
        cfg = NotionpressConfig()
        assert cfg.media_max_size_bytes == 10 * 1024 * 1024
        assert cfg.media_background_threshold == 10
        assert cfg.media_allowed_mimes == DEFAULT_MEDIA_MIMES
        assert cfg.media_unsupported_mimes == DEFAULT_UNSUPPORTED_MIMES
        assert cfg.media_file_mimes == DEFAULT_FILE_MIMES
        assert cfg.media_pending_timeout_seconds == 3600

    def test_mime_lists_are_independent_copies(self):
        a = NotionpressConfig()
        b = NotionpressConfig()
        a.media_allowed_mimes.append("image/avif")
        assert "image/avif" not in b.media_allowed_mimes
        assert "image/avif" not in DEFAULT_MEDIA_MIMES

    def test_lists_are_merged_by_default(self):
        assert NotionpressConfig().merge_list_items is True

    def test_row_properties_block_on_by_default(self):
        assert NotionpressConfig().row_properties_block is True

    def test_max_source_id_length(self):
        assert NotionpressConfig().max_source_id_length == 50


class TestValidation:
    def test_insecure_remote_base_url_rejected(self):
        with pytest.raises(ValueError, match="insecure HTTP"):
            NotionpressConfig(base_url="http://api.example.com/v1")

    @pytest.mark.parametrize("host", ["localhost", "127.0.0.1"])
    def test_http_localhost_allowed(self, host):
        cfg = NotionpressConfig(base_url=f"http://{host}:8080/v1")
        assert cfg.base_url.startswith("http://")

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("retry_max_attempts", 0),
            ("retry_base_delay", -1),
            ("retry_max_delay", -1),
            ("rate_limit_rps", 0),
            ("timeout_seconds", 0),
            ("page_size", 0),
            ("page_size", 101),
            ("max_pagination_batches", 0),
            ("max_block_depth", -1),
            ("max_source_id_length", 0),
            ("batch_chunk_size", 0),
            ("item_stagger_seconds", -0.5),
            ("chunk_stagger_seconds", -0.5),
            ("media_max_size_bytes", 0),
            ("media_background_threshold", 0),
            ("media_pending_timeout_seconds", 0),
        ],
    )
    def test_invalid_values_raise(self, field, value):
        with pytest.raises(ValueError, match=field):
            NotionpressConfig(**{field: value})

    def test_route_prefix_must_be_absolute(self):
        with pytest.raises(ValueError, match="placeholder_route_prefix"):
            NotionpressConfig(placeholder_route_prefix="notion/")


class TestRepr:
    def test_token_is_masked(self):
        cfg = NotionpressConfig(token="secret_abcdefgh1234")
        text = repr(cfg)
        assert "secret_abcdefgh1234" not in text
        assert "token='...1234'" in text

    def test_short_token_fully_masked(self):
        assert "token='****'" in repr(NotionpressConfig(token="ab"))

    def test_other_fields_visible(self):
        assert "batch_chunk_size=20" in repr(NotionpressConfig(token="x" * 10))
