"""Security-focused tests for notionpress.

Covers markup injection through source content, unsafe URL schemes in
links, embeds and media, and token leakage through error contexts and
debug dumps.
"""

from __future__ import annotations

import httpx
import pytest

from notionpress.config import NotionpressConfig
from notionpress.converter import BlockConversionEngine, ConversionContext
from notionpress.errors import NotionpressError
from notionpress.notion_api.transport import NotionTransport

SCRIPT = '<script>alert("x")</script>'
PAYLOADS = [SCRIPT, '"><img src=x onerror=alert(1)>', "</p><!-- /wp:paragraph -->"]


def _span(text: str, href: str | None = None) -> dict:
    span = {"type": "text", "text": {"content": text}, "plain_text": text}
    if href is not None:
        span["href"] = href
    return span


def _render(config: NotionpressConfig, *blocks: dict) -> str:
    return BlockConversionEngine(config=config).convert(list(blocks), ConversionContext(config)).markup


class TestMarkupInjection:
    @pytest.mark.parametrize("payload", PAYLOADS)
    @pytest.mark.parametrize("block_type", ["paragraph", "heading_1", "quote", "callout", "toggle"])
    def test_text_blocks_escape_content(self, config, block_type, payload):
        out = _render(config, {"type": block_type, "id": "b", block_type: {"rich_text": [_span(payload)]}})
        assert "<script" not in out
        assert "<img" not in out
        assert out.count("<!-- /wp:paragraph -->") <= 1

    def test_code_block_escaped(self, config):
        out = _render(config, {"type": "code", "id": "c",
                               "code": {"language": '"><b>', "rich_text": [_span(SCRIPT)]}})
        assert "<script" not in out
        assert "&lt;script&gt;" in out
        assert '"><b>' not in out

    def test_equation_escaped(self, config):
        out = _render(config, {"type": "equation", "id": "e", "equation": {"expression": SCRIPT}})
        assert "<script" not in out

    def test_table_cells_escaped(self, config):
        table = {
            "type": "table", "id": "t", "table": {"has_column_header": True},
            "children": [{"type": "table_row", "id": "r", "table_row": {"cells": [[_span(SCRIPT)]]}}],
        }
        assert "<script" not in _render(config, table)

    def test_unsupported_block_type_escaped(self, config):
        block_type = "x<script>"
        out = _render(config, {"type": block_type, "id": "u", block_type: {"rich_text": [_span("hi")]}})
        assert "<script" not in out

    def test_image_caption_escaped(self, config):
        out = _render(config, {"type": "image", "id": "i", "image": {
            "type": "external", "external": {"url": "https://cdn.example/a.png"},
            "caption": [_span(PAYLOADS[1])],
        }})
        assert "<img src=x" not in out


class TestUnsafeSchemes:
    @pytest.mark.parametrize("href", ["javascript:alert(1)", "JaVaScRiPt:alert(1)", "data:text/html;base64,AAAA",
                                      " javascript:alert(1)", "vbscript:msgbox"])
    def test_rich_text_link_dropped(self, config, href):
        out = _render(config, {"type": "paragraph", "id": "p", "paragraph": {"rich_text": [_span("click", href)]}})
        assert "script:" not in out.lower()
        assert "data:text" not in out
        assert "click" in out

    @pytest.mark.parametrize("block_type", ["embed", "bookmark", "link_preview"])
    def test_embed_url_rejected(self, config, block_type):
        out = _render(config, {"type": block_type, "id": "e", block_type: {"url": "javascript:alert(1)"}})
        assert "javascript:" not in out
        assert "Invalid embed URL" in out

    def test_external_image_scheme_rejected(self, config):
        out = _render(config, {"type": "image", "id": "i", "image": {
            "type": "external", "external": {"url": "javascript:alert(1)"}}})
        assert 'src="javascript:' not in out


class TestTokenLeakage:
    TOKEN = "secret_ABCDEF123456"

    def _transport(self, handler) -> NotionTransport:
        config = NotionpressConfig(token=self.TOKEN, retry_max_attempts=1, retry_jitter=False,
                                   retry_base_delay=0.0, debug_dump_payload=True)
        client = httpx.Client(
            base_url=config.base_url,
            headers={"Authorization": f"Bearer {self.TOKEN}"},
            transport=httpx.MockTransport(handler),
        )
        return NotionTransport(config, client=client)

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_error_context_has_no_token(self, status):
        def handler(request):
            return httpx.Response(status, json={"code": "x", "message": "nope"})

        with pytest.raises(NotionpressError) as exc_info:
            self._transport(handler).request("GET", "/pages/abc")
        err = exc_info.value
        assert self.TOKEN not in err.message
        assert self.TOKEN not in repr(err.context)

    def test_debug_dump_masks_echoed_token(self, capsys):
        def handler(request):
            return httpx.Response(200, json={"echo": request.headers["authorization"]})

        self._transport(handler).request("POST", "/search", json={"token": self.TOKEN})
        err = capsys.readouterr().err
        assert self.TOKEN not in err
        assert "<redacted" in err

    def test_config_repr(self):
        config = NotionpressConfig(token=self.TOKEN)
        assert self.TOKEN not in repr(config)
        assert self.TOKEN not in str(config)
