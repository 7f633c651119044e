"""Page property values to inline markup.

Collection rows carry typed properties (select, date, people...) next to
their block body.  :func:`format_property` renders one property payload;
:func:`format_properties` renders a whole ``properties`` map and
:func:`render_properties_block` lays the result out as a block that can
be prepended to the converted body.

Every formatter returns ``None`` for an empty value so callers can skip
the property entirely.  Checkboxes are the one non-string result: they
come back as ``bool``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime
from typing import Any

from notionpress.models import LinkKind
from notionpress.utils.ids import normalize_id

from .base import ConversionContext
from .escape import escape_attr, escape_html, escape_url

PropertyValue = str | bool | None
_Formatter = Callable[[Any, ConversionContext], PropertyValue]

_PHONE_STRIP = re.compile(r"[^\d+]")

# Property types never shown in the properties block.
_HIDDEN_TYPES: frozenset[str] = frozenset({"title"})

_COLLECTION_PARENTS: frozenset[str] = frozenset({"database_id", "data_source_id"})


def is_collection_row(parent: dict[str, Any]) -> bool:
    """Return ``True`` when *parent* is a database, i.e. the page is a row."""
    return parent.get("type") in _COLLECTION_PARENTS


def format_property(prop: dict[str, Any], ctx: ConversionContext) -> PropertyValue:
    """Render one property payload.

    Parameters
    ----------
    prop:
        A property object as returned by the source API, e.g.
        ``{"type": "select", "select": {"name": "Done", "color": "green"}}``.
    ctx:
        Conversion context; relation and rich text links go through its
        resolver.

    Returns
    -------
    str | bool | None
        Markup, a ``bool`` for checkboxes, or ``None`` when the value is
        empty or the type is not supported.
    """
    prop_type = prop.get("type")
    formatter = _FORMATTERS.get(prop_type or "")
    if formatter is None:
        return None
    value = prop.get(prop_type)
    if value is None or value == [] or value == "":
        return None
    return formatter(value, ctx)


def format_properties(
    properties: dict[str, dict[str, Any]],
    ctx: ConversionContext,
) -> dict[str, PropertyValue]:
    """Render a ``properties`` map, dropping empty and unsupported values.

    Keeps the source order.
    """
    formatted: dict[str, PropertyValue] = {}
    for name, prop in properties.items():
        if not isinstance(prop, dict):
            continue
        value = format_property(prop, ctx)
        if value is not None:
            formatted[name] = value
    return formatted


def render_properties_block(
    properties: dict[str, dict[str, Any]],
    formatted: dict[str, PropertyValue],
) -> str:
    """Lay out *formatted* values as a definition list block.

    The title property is left out because it already is the document
    title.  Returns ``""`` when nothing remains.
    """
    rows = []
    for name, value in formatted.items():
        if (properties.get(name) or {}).get("type") in _HIDDEN_TYPES:
            continue
        if isinstance(value, bool):
            value = _checkbox_mark(value)
        rows.append(f"<dt>{escape_html(name)}</dt><dd>{value}</dd>")
    if not rows:
        return ""
    return (
        "<!-- wp:html -->\n"
        '<dl class="notion-properties">\n'
        + "\n".join(rows)
        + "\n</dl>\n<!-- /wp:html -->\n\n"
    )


# ----------------------------------------------------------------------
# Per-type formatters
# ----------------------------------------------------------------------


def _title(value: list[dict[str, Any]], ctx: ConversionContext) -> PropertyValue:
    markup = ctx.rich_text(value)
    return f"<strong>{markup}</strong>" if markup else None


def _rich_text(value: list[dict[str, Any]], ctx: ConversionContext) -> PropertyValue:
    return ctx.rich_text(value) or None


def _number(value: Any, ctx: ConversionContext) -> PropertyValue:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def _badge(css_class: str, option: dict[str, Any]) -> str | None:
    name = option.get("name")
    if not name:
        return None
    color = option.get("color") or "default"
    return (
        f'<span class="{css_class} notion-{escape_attr(color)}">'
        f"{escape_html(name)}</span>"
    )


def _select(value: dict[str, Any], ctx: ConversionContext) -> PropertyValue:
    return _badge("notion-select", value)


def _multi_select(value: list[dict[str, Any]], ctx: ConversionContext) -> PropertyValue:
    badges = [b for b in (_badge("notion-select", option) for option in value) if b]
    return " ".join(badges) or None


def _status(value: dict[str, Any], ctx: ConversionContext) -> PropertyValue:
    return _badge("notion-status", value)


def _checkbox(value: Any, ctx: ConversionContext) -> PropertyValue:
    return bool(value)


def _checkbox_mark(checked: bool) -> str:
    return "✓" if checked else "✗"


def _parse_timestamp(value: str) -> datetime | None:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_timestamp(value: str, with_time: bool | None = None) -> str:
    """Render an ISO-8601 date or timestamp as ``Nov 5, 2025`` or
    ``Nov 5, 2025 3:45 PM``.

    *with_time* defaults to whether *value* carries a time part.  The
    offset in *value* is kept as is.  Unparseable values come back
    escaped but otherwise unchanged.
    """
    parsed = _parse_timestamp(value)
    if parsed is None:
        return escape_html(value)
    if with_time is None:
        with_time = "T" in value
    day = f"{parsed:%b} {parsed.day}, {parsed.year}"
    if not with_time:
        return day
    hour = parsed.hour % 12 or 12
    meridiem = "AM" if parsed.hour < 12 else "PM"
    return f"{day} {hour}:{parsed:%M} {meridiem}"


def _date(value: dict[str, Any], ctx: ConversionContext) -> PropertyValue:
    start = value.get("start")
    if not start:
        return None
    rendered = format_timestamp(start)
    end = value.get("end")
    if end:
        rendered = f"{rendered} → {format_timestamp(end)}"
    return rendered


def _timestamp(value: str, ctx: ConversionContext) -> PropertyValue:
    return format_timestamp(value, with_time=True)


def _person(user: dict[str, Any]) -> str | None:
    name = user.get("name")
    if not name:
        return None
    rendered = escape_html(name)
    avatar = escape_url(user.get("avatar_url") or "")
    if avatar:
        rendered = (
            f'<img src="{avatar}" alt="" class="notion-avatar" width="20" height="20"> '
            + rendered
        )
    return rendered


def _people(value: Any, ctx: ConversionContext) -> PropertyValue:
    users = value if isinstance(value, list) else [value]
    names = [p for p in (_person(user) for user in users if isinstance(user, dict)) if p]
    return ", ".join(names) or None


def _file_link(item: dict[str, Any]) -> str | None:
    url = (
        item.get("url")
        or (item.get("file") or {}).get("url")
        or (item.get("external") or {}).get("url")
    )
    href = escape_url(url or "")
    if not href:
        return None
    label = escape_html(item.get("name") or "File")
    return (
        f'<a href="{href}" target="_blank" rel="noopener noreferrer" '
        f'class="notion-file">{label}</a>'
    )


def _files(value: list[dict[str, Any]], ctx: ConversionContext) -> PropertyValue:
    links = [link for link in (_file_link(item) for item in value) if link]
    return ", ".join(links) or None


def _external_link(href: str, label: str, css_class: str) -> str | None:
    href = escape_url(href)
    if not href:
        return None
    return (
        f'<a href="{href}" target="_blank" rel="noopener noreferrer" '
        f'class="{css_class}">{escape_html(label)}</a>'
    )


def _url(value: str, ctx: ConversionContext) -> PropertyValue:
    return _external_link(value, value, "notion-url")


def _email(value: str, ctx: ConversionContext) -> PropertyValue:
    href = escape_url(f"mailto:{value}")
    if not href:
        return None
    return f'<a href="{href}" class="notion-email">{escape_html(value)}</a>'


def _phone_number(value: str, ctx: ConversionContext) -> PropertyValue:
    digits = _PHONE_STRIP.sub("", value)
    if not digits:
        return escape_html(value)
    return f'<a href="tel:{digits}" class="notion-phone">{escape_html(value)}</a>'


def _relation(value: list[dict[str, Any]], ctx: ConversionContext) -> PropertyValue:
    """Link each related page through the resolver, labelled with its
    registered title when one is known.
    """
    links = []
    for item in value:
        if not item.get("id"):
            continue
        key = normalize_id(item["id"])
        label = "Related page"
        if ctx.resolver is not None:
            entry = ctx.resolver.registry.find(key)
            if entry is not None and entry.title != entry.source_id:
                label = entry.title
        href = escape_url(ctx.document_url(key, kind=LinkKind.PAGE))
        links.append(
            f'<a href="{href}" data-notion-id="{escape_attr(key)}" '
            f'class="notion-relation">{escape_html(label)}</a>'
        )
    return ", ".join(links) or None


def _unique_id(value: dict[str, Any], ctx: ConversionContext) -> PropertyValue:
    number = value.get("number")
    if number is None:
        return None
    prefix = value.get("prefix")
    return escape_html(f"{prefix}-{number}" if prefix else str(number))


def _typed(value: dict[str, Any], ctx: ConversionContext) -> PropertyValue:
    """Formula and rollup results: a payload keyed by its own ``type``."""
    kind = value.get("type")
    inner = value.get(kind or "")
    if inner is None:
        return None
    if kind == "string":
        return escape_html(inner) or None
    if kind == "boolean":
        return _checkbox_mark(bool(inner))
    if kind == "array":
        parts = [format_property(item, ctx) for item in inner if isinstance(item, dict)]
        rendered = [
            _checkbox_mark(part) if isinstance(part, bool) else part
            for part in parts
            if part is not None
        ]
        return ", ".join(rendered) or None
    formatter = _FORMATTERS.get(kind or "")
    return formatter(inner, ctx) if formatter is not None else None


_FORMATTERS: dict[str, _Formatter] = {
    "title": _title,
    "rich_text": _rich_text,
    "number": _number,
    "select": _select,
    "multi_select": _multi_select,
    "status": _status,
    "checkbox": _checkbox,
    "date": _date,
    "created_time": _timestamp,
    "last_edited_time": _timestamp,
    "people": _people,
    "created_by": _people,
    "last_edited_by": _people,
    "files": _files,
    "url": _url,
    "email": _email,
    "phone_number": _phone_number,
    "relation": _relation,
    "unique_id": _unique_id,
    "formula": _typed,
    "rollup": _typed,
}
