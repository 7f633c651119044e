"""Render-time resolution of pending media placeholders.

A media block converted while its acquisition was still queued is stored
as a self-closing ``wp:notionpress/media`` block carrying the source block
id.  The target platform calls :func:`render_media_placeholder` with that
block's attributes each time the document is rendered, so the asset shows
up as soon as the background task has stored it; the persisted document
is never patched.
"""

from __future__ import annotations

import json
import re
from typing import Any

from notionpress.converter.blocks.media import PLACEHOLDER_BLOCK, failed_placeholder, render_asset
from notionpress.converter.escape import escape_html
from notionpress.models import MediaStatus
from notionpress.target import TargetPlatform

from .registry import MediaRegistry

_PLACEHOLDER_RE = re.compile(
    r"<!-- wp:" + re.escape(PLACEHOLDER_BLOCK) + r"(\s+\{.*?\})?\s*/-->",
)


def render_media_placeholder(
    attrs: dict[str, Any],
    registry: MediaRegistry,
    target: TargetPlatform,
) -> str:
    """Return the markup for a placeholder's current registry state.

    Parameters
    ----------
    attrs:
        Block attributes: ``blockId``, ``mediaType`` and optionally
        ``caption`` and ``name``.
    registry:
        The Media Registry.
    target:
        Resolves stored asset URLs.

    Returns
    -------
    str
        Final media markup once acquired, a "loading" element while the
        acquisition is pending, or a diagnostic comment after a failure.
    """
    block_id = str(attrs.get("blockId") or "")
    media_type = str(attrs.get("mediaType") or "image")
    caption = str(attrs.get("caption") or "")
    name = str(attrs.get("name") or caption)
    entry = registry.find(block_id) if block_id else None

    if entry is None:
        return failed_placeholder(f"no media registered for block {block_id or 'unknown'}")
    if entry.status == MediaStatus.ACQUIRED and entry.target_asset_ref:
        url = target.asset_url(entry.target_asset_ref) or entry.asset_url
        if url:
            return render_asset(
                media_type, url, escape_html(caption), name, asset_id=entry.target_asset_ref,
            )
    if entry.status == MediaStatus.UNSUPPORTED:
        return render_asset(media_type, entry.source_url, escape_html(caption), name, external=True)
    if entry.status == MediaStatus.FAILED:
        return failed_placeholder(entry.last_error or "unknown error")
    return (
        f'<div class="notion-media-pending" data-block-id="{escape_html(block_id)}">'
        "Media is being processed.</div>\n\n"
    )


def render_placeholders(content: str, registry: MediaRegistry, target: TargetPlatform) -> str:
    """Replace every media placeholder found in *content*."""

    def replace(match: re.Match[str]) -> str:
        raw = (match.group(1) or "{}").strip()
        try:
            attrs = json.loads(raw)
        except json.JSONDecodeError:
            return match.group(0)
        return render_media_placeholder(attrs, registry, target)

    return _PLACEHOLDER_RE.sub(replace, content)
