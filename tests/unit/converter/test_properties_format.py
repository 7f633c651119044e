"""Tests for page property formatting and the properties block."""

from __future__ import annotations

import pytest

from notionpress.converter import ConversionContext
from notionpress.converter.properties import (
    format_properties,
    format_property,
    format_timestamp,
    is_collection_row,
    render_properties_block,
)
from notionpress.links import LinkRegistry, LinkResolver

REL = "33333333333333333333333333333333"
REL_DASHED = "33333333-3333-3333-3333-333333333333"


def text(content: str) -> dict:
    return {"type": "text", "text": {"content": content}, "plain_text": content}


@pytest.fixture
def registry(store):
    return LinkRegistry(store)


@pytest.fixture
def ctx(config, registry, target):
    return ConversionContext(config, resolver=LinkResolver(registry, target, config))


def fmt(ctx, prop_type: str, value):
    return format_property({"id": "x", "type": prop_type, prop_type: value}, ctx)


class TestTextTypes:
    def test_title_is_bold(self, ctx):
        assert fmt(ctx, "title", [text("Launch")]) == "<strong>Launch</strong>"

    def test_rich_text_escaped(self, ctx):
        assert fmt(ctx, "rich_text", [text("a < b")]) == "a &lt; b"

    def test_empty_rich_text(self, ctx):
        assert fmt(ctx, "rich_text", []) is None


class TestNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, "0"),
            (1234, "1,234"),
            (1234.0, "1,234"),
            (1234.5, "1,234.50"),
            (-0.5, "-0.50"),
        ],
    )
    def test_formatting(self, ctx, value, expected):
        assert fmt(ctx, "number", value) == expected

    def test_missing(self, ctx):
        assert fmt(ctx, "number", None) is None


class TestOptions:
    def test_select(self, ctx):
        out = fmt(ctx, "select", {"name": "Done", "color": "green"})
        assert out == '<span class="notion-select notion-green">Done</span>'

    def test_select_without_color(self, ctx):
        out = fmt(ctx, "select", {"name": "R&D"})
        assert out == '<span class="notion-select notion-default">R&amp;D</span>'

    def test_multi_select_joined(self, ctx):
        out = fmt(ctx, "multi_select", [
            {"name": "python", "color": "blue"},
            {"name": "sync", "color": "red"},
        ])
        assert out == (
            '<span class="notion-select notion-blue">python</span> '
            '<span class="notion-select notion-red">sync</span>'
        )

    def test_empty_multi_select(self, ctx):
        assert fmt(ctx, "multi_select", []) is None

    def test_status(self, ctx):
        out = fmt(ctx, "status", {"name": "In progress", "color": "yellow"})
        assert out == '<span class="notion-status notion-yellow">In progress</span>'

    def test_unset_select(self, ctx):
        assert fmt(ctx, "select", None) is None


class TestCheckbox:
    @pytest.mark.parametrize("checked", [True, False])
    def test_returns_bool(self, ctx, checked):
        assert fmt(ctx, "checkbox", checked) is checked


class TestDates:
    def test_date_only(self, ctx):
        assert fmt(ctx, "date", {"start": "2025-11-05", "end": None}) == "Nov 5, 2025"

    def test_date_with_time(self, ctx):
        out = fmt(ctx, "date", {"start": "2025-11-05T15:45:00.000+00:00"})
        assert out == "Nov 5, 2025 3:45 PM"

    def test_range(self, ctx):
        out = fmt(ctx, "date", {"start": "2025-11-05", "end": "2025-11-07"})
        assert out == "Nov 5, 2025 → Nov 7, 2025"

    def test_missing_start(self, ctx):
        assert fmt(ctx, "date", {"start": None}) is None

    @pytest.mark.parametrize("prop_type", ["created_time", "last_edited_time"])
    def test_timestamps_always_show_time(self, ctx, prop_type):
        assert fmt(ctx, prop_type, "2025-12-31T00:05:00.000Z") == "Dec 31, 2025 12:05 AM"

    def test_noon(self):
        assert format_timestamp("2026-01-02T12:00:00Z") == "Jan 2, 2026 12:00 PM"

    def test_unparseable_kept(self):
        assert format_timestamp("next <week>") == "next &lt;week&gt;"


class TestPeople:
    def test_names_and_avatar(self, ctx):
        out = fmt(ctx, "people", [
            {"object": "user", "name": "Ada", "avatar_url": "https://img.example/ada.png"},
            {"object": "user", "name": "Linus"},
        ])
        assert out == (
            '<img src="https://img.example/ada.png" alt="" class="notion-avatar" '
            'width="20" height="20"> Ada, Linus'
        )

    def test_unsafe_avatar_dropped(self, ctx):
        out = fmt(ctx, "people", [{"name": "Eve", "avatar_url": "javascript:alert(1)"}])
        assert out == "Eve"

    def test_created_by_single_user(self, ctx):
        assert fmt(ctx, "created_by", {"object": "user", "name": "Ada"}) == "Ada"

    def test_users_without_names(self, ctx):
        assert fmt(ctx, "people", [{"object": "user", "id": "u1"}]) is None


class TestFiles:
    def test_hosted_and_external(self, ctx):
        out = fmt(ctx, "files", [
            {"name": "brief.pdf", "type": "file", "file": {"url": "https://files.example/brief.pdf"}},
            {"name": "", "type": "external", "external": {"url": "https://cdn.example/x"}},
        ])
        assert out == (
            '<a href="https://files.example/brief.pdf" target="_blank" '
            'rel="noopener noreferrer" class="notion-file">brief.pdf</a>, '
            '<a href="https://cdn.example/x" target="_blank" '
            'rel="noopener noreferrer" class="notion-file">File</a>'
        )

    def test_unsafe_url_skipped(self, ctx):
        out = fmt(ctx, "files", [{"name": "x", "type": "external", "external": {"url": "data:text/html,x"}}])
        assert out is None


class TestContactTypes:
    def test_url(self, ctx):
        out = fmt(ctx, "url", "https://example.com/a?b=1&c=2")
        assert out == (
            '<a href="https://example.com/a?b=1&amp;c=2" target="_blank" '
            'rel="noopener noreferrer" class="notion-url">https://example.com/a?b=1&amp;c=2</a>'
        )

    def test_unsafe_url(self, ctx):
        assert fmt(ctx, "url", "javascript:alert(1)") is None

    def test_empty_url(self, ctx):
        assert fmt(ctx, "url", "") is None

    def test_email(self, ctx):
        out = fmt(ctx, "email", "ada@example.com")
        assert out == '<a href="mailto:ada@example.com" class="notion-email">ada@example.com</a>'

    def test_phone_keeps_digits_and_plus(self, ctx):
        out = fmt(ctx, "phone_number", "+1 (555) 010-9999")
        assert out == '<a href="tel:+15550109999" class="notion-phone">+1 (555) 010-9999</a>'


class TestRelation:
    def test_unknown_page_registered_with_placeholder(self, ctx, registry):
        out = fmt(ctx, "relation", [{"id": REL_DASHED}])
        assert out == (
            f'<a href="https://blog.example/notion/{REL}" data-notion-id="{REL}" '
            'class="notion-relation">Related page</a>'
        )
        assert registry.find(REL) is not None

    def test_known_title_used_as_label(self, ctx, registry):
        registry.register(REL, title="Roadmap")
        out = fmt(ctx, "relation", [{"id": REL}])
        assert '/notion/roadmap"' in out
        assert ">Roadmap</a>" in out

    def test_without_resolver_links_source(self, config):
        out = fmt(ConversionContext(config), "relation", [{"id": REL}])
        assert f'href="https://notion.so/{REL}"' in out
        assert ">Related page</a>" in out

    def test_empty(self, ctx):
        assert fmt(ctx, "relation", []) is None


class TestComputedTypes:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ({"type": "string", "string": "<ok>"}, "&lt;ok&gt;"),
            ({"type": "number", "number": 2500}, "2,500"),
            ({"type": "boolean", "boolean": True}, "✓"),
            ({"type": "boolean", "boolean": False}, "✗"),
            ({"type": "date", "date": {"start": "2025-11-05"}}, "Nov 5, 2025"),
            ({"type": "string", "string": None}, None),
        ],
    )
    def test_formula(self, ctx, value, expected):
        assert fmt(ctx, "formula", value) == expected

    def test_rollup_array(self, ctx):
        out = fmt(ctx, "rollup", {"type": "array", "array": [
            {"type": "number", "number": 3},
            {"type": "checkbox", "checkbox": True},
            {"type": "select", "select": None},
        ]})
        assert out == "3, ✓"

    def test_rollup_number(self, ctx):
        assert fmt(ctx, "rollup", {"type": "number", "number": 7.25}) == "7.25"

    def test_unique_id(self, ctx):
        assert fmt(ctx, "unique_id", {"prefix": "TASK", "number": 12}) == "TASK-12"
        assert fmt(ctx, "unique_id", {"prefix": None, "number": 12}) == "12"


class TestFormatProperties:
    def test_drops_empty_and_unsupported(self, ctx):
        out = format_properties({
            "Name": {"type": "title", "title": [text("Launch")]},
            "Tags": {"type": "multi_select", "multi_select": []},
            "Action": {"type": "button", "button": {}},
            "Done": {"type": "checkbox", "checkbox": False},
        }, ctx)
        assert out == {"Name": "<strong>Launch</strong>", "Done": False}
        assert list(out) == ["Name", "Done"]


class TestPropertiesBlock:
    PROPS = {
        "Name": {"type": "title", "title": [text("Launch")]},
        "Status": {"type": "status", "status": {"name": "Done", "color": "green"}},
        "Q&A": {"type": "checkbox", "checkbox": True},
    }

    def test_lists_everything_but_the_title(self, ctx):
        block = render_properties_block(self.PROPS, format_properties(self.PROPS, ctx))
        assert block == (
            "<!-- wp:html -->\n"
            '<dl class="notion-properties">\n'
            '<dt>Status</dt><dd><span class="notion-status notion-green">Done</span></dd>\n'
            "<dt>Q&amp;A</dt><dd>✓</dd>\n"
            "</dl>\n<!-- /wp:html -->\n\n"
        )

    def test_title_only_renders_nothing(self, ctx):
        props = {"Name": self.PROPS["Name"]}
        assert render_properties_block(props, format_properties(props, ctx)) == ""


class TestIsCollectionRow:
    @pytest.mark.parametrize(
        ("parent", "expected"),
        [
            ({"type": "database_id", "database_id": "d"}, True),
            ({"type": "data_source_id", "data_source_id": "d"}, True),
            ({"type": "workspace", "workspace": True}, False),
            ({"type": "page_id", "page_id": "p"}, False),
            ({}, False),
        ],
    )
    def test_parent_types(self, parent, expected):
        assert is_collection_row(parent) is expected
