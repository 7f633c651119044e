"""Hosted media: images, files, PDFs, audio and video.

Files hosted by the source platform live behind expiring URLs, so they go
through the media pipeline and are rendered from the target asset store.
While an acquisition is still queued the block is emitted as a dynamic
placeholder (``wp:notionpress/media``) that the target re-resolves against
the Media Registry on every render; see
:func:`notionpress.media.render.render_media_placeholder`.
"""

from __future__ import annotations

from typing import Any

from notionpress.models import AssetKind, AssetRef

from ..base import ConversionContext, TypeConverter, payload
from ..escape import escape_attr, escape_html, escape_url
from ..rich_text import plain_text
from .text import block_attrs

MEDIA_BLOCK_TYPES: frozenset[str] = frozenset({"image", "file", "pdf", "audio", "video"})

PLACEHOLDER_BLOCK = "notionpress/media"


def media_source(data: dict[str, Any]) -> tuple[str, str]:
    """Return ``(hosting, url)`` for a media payload.

    ``hosting`` is ``"external"`` or ``"file"`` (hosted by the source
    platform, including ``file_upload``).
    """
    hosting = data.get("type") or "file"
    if hosting == "external":
        return "external", (data.get("external") or {}).get("url", "") or ""
    return "file", (data.get(hosting) or {}).get("url", "") or ""


def failed_placeholder(message: str) -> str:
    return f"<!-- Media acquisition failed: {escape_html(message).replace('--', '- -')} -->\n\n"


def _figcaption(caption_html: str) -> str:
    return f'<figcaption class="wp-element-caption">{caption_html}</figcaption>' if caption_html else ""


def render_asset(
    media_type: str,
    url: str,
    caption_html: str = "",
    name: str = "",
    asset_id: str | None = None,
    external: bool = False,
) -> str:
    """Render markup for a media block whose final URL is known.

    Parameters
    ----------
    media_type:
        One of :data:`MEDIA_BLOCK_TYPES`.
    url:
        URL of the stored asset (or of the external source).
    caption_html:
        Already-rendered caption markup.
    name:
        File name, used as link text for downloads.
    asset_id:
        Target asset reference; numeric references are written into the
        block attributes.
    external:
        ``True`` when *url* points outside the target asset store.
    """
    src = escape_url(url)
    if not src:
        return failed_placeholder("unsafe or empty media URL")
    attrs: dict[str, Any] = {}
    if asset_id is not None and str(asset_id).isdigit():
        attrs["id"] = int(asset_id)

    if media_type == "image":
        attrs["sizeSlug"] = "large"
        css = "external-image" if external else (
            f"wp-image-{attrs['id']}" if "id" in attrs else "notion-image"
        )
        alt = escape_attr(name or "")
        return (
            f"<!-- wp:image{block_attrs(attrs)} -->\n"
            f'<figure class="wp-block-image size-large"><img src="{src}" alt="{alt}" class="{css}"/>'
            f"{_figcaption(caption_html)}</figure>\n"
            "<!-- /wp:image -->\n\n"
        )
    if media_type == "audio":
        return (
            f"<!-- wp:audio{block_attrs(attrs)} -->\n"
            f'<figure class="wp-block-audio"><audio controls src="{src}"></audio>'
            f"{_figcaption(caption_html)}</figure>\n"
            "<!-- /wp:audio -->\n\n"
        )
    if media_type == "video":
        return (
            f"<!-- wp:video{block_attrs(attrs)} -->\n"
            f'<figure class="wp-block-video"><video controls src="{src}"></video>'
            f"{_figcaption(caption_html)}</figure>\n"
            "<!-- /wp:video -->\n\n"
        )

    label = escape_html(name or "file")
    attrs["href"] = url
    if media_type == "pdf":
        body = (
            f'<object class="wp-block-file__embed" data="{src}" type="application/pdf" '
            f'style="width:100%;height:600px" aria-label="{escape_attr(name or "PDF")}"></object>'
            f'<a href="{src}" class="wp-block-file__button" download>Download</a>'
        )
    else:
        body = f'<a href="{src}" class="wp-block-file__button" download>Download {label}</a>'
    return (
        f"<!-- wp:file{block_attrs(attrs)} -->\n"
        f'<div class="wp-block-file">{body}{_figcaption(caption_html)}</div>\n'
        "<!-- /wp:file -->\n\n"
    )


def render_pending(block_id: str, media_type: str, caption: str, name: str) -> str:
    """Dynamic placeholder resolved at render time."""
    attrs = {"blockId": block_id, "mediaType": media_type}
    if caption:
        attrs["caption"] = caption
    if name:
        attrs["name"] = name
    return f"<!-- wp:{PLACEHOLDER_BLOCK}{block_attrs(attrs)} /-->\n\n"


class MediaConverter(TypeConverter):
    """Images (hosted or external), hosted files, and external generic files.

    External PDFs, audio and video are handled as embeds.
    """

    block_types = MEDIA_BLOCK_TYPES

    def supports(self, block: dict[str, Any]) -> bool:
        kind = block.get("type")
        if kind not in MEDIA_BLOCK_TYPES:
            return False
        if kind in ("image", "file"):
            return True
        return media_source(payload(block))[0] != "external"

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        media_type = block["type"]
        data = payload(block)
        if not data:
            return failed_placeholder(f"{media_type} data not found")
        hosting, url = media_source(data)
        if not url:
            return failed_placeholder(f"{media_type} URL not found")

        caption_html = ctx.rich_text(data.get("caption"))
        caption = plain_text(data.get("caption")).strip()
        name = data.get("name") or caption

        if hosting == "external" or ctx.media is None or not block.get("id"):
            return render_asset(media_type, url, caption_html, name, external=True)

        ref = ctx.media.acquire(
            block["id"],
            url,
            metadata={
                "media_type": media_type,
                "caption": caption,
                "title": name,
                "source_id": ctx.source_id,
            },
            defer=ctx.defer_media,
        )
        return self.render_ref(ref, media_type, caption_html, caption, name, ctx)

    def render_ref(
        self,
        ref: AssetRef,
        media_type: str,
        caption_html: str,
        caption: str,
        name: str,
        ctx: ConversionContext,
    ) -> str:
        if ref.kind == AssetKind.STORED and ref.url:
            return render_asset(media_type, ref.url, caption_html, name, asset_id=ref.asset_id)
        if ref.kind == AssetKind.EXTERNAL and ref.url:
            return render_asset(media_type, ref.url, caption_html, name, external=True)
        if ref.kind == AssetKind.PENDING:
            return render_pending(ref.source_block_id, media_type, caption, name)
        ctx.warn(
            "MEDIA_FAILED",
            f"Media acquisition failed for block {ref.source_block_id}",
            block_id=ref.source_block_id,
            error=ref.error,
        )
        return failed_placeholder(ref.error or "unknown error")
