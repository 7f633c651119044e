"""Embeds, bookmarks, link previews and externally hosted video/audio/PDF."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from notionpress.errors import NotionpressUnsupportedBlockError

from ..base import ConversionContext, TypeConverter, payload
from ..escape import escape_html, escape_url
from .media import media_source
from .text import block_attrs

# Host suffix to provider slug.
PROVIDERS: dict[str, str] = {
    "youtube.com": "youtube",
    "youtu.be": "youtube",
    "vimeo.com": "vimeo",
    "twitter.com": "twitter",
    "x.com": "twitter",
    "instagram.com": "instagram",
    "spotify.com": "spotify",
    "soundcloud.com": "soundcloud",
}

_PROVIDER_TYPES: dict[str, str] = {
    "youtube": "video",
    "vimeo": "video",
    "twitter": "rich",
    "instagram": "rich",
    "spotify": "rich",
    "soundcloud": "rich",
}

INVALID_EMBED = (
    "<!-- wp:paragraph -->\n<p><em>Invalid embed URL (unsupported scheme)</em></p>\n"
    "<!-- /wp:paragraph -->\n\n"
)


def detect_provider(url: str) -> str | None:
    host = (urlsplit(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    for domain, provider in PROVIDERS.items():
        if host == domain or host.endswith("." + domain):
            return provider
    return None


def url_title(url: str) -> str:
    """Derive a readable title from the last path segment, else the host."""
    parts = urlsplit(url)
    segment = parts.path.strip("/").rsplit("/", 1)[-1]
    if segment:
        stem = segment.rsplit(".", 1)[0] if "." in segment else segment
        return stem.replace("-", " ").replace("_", " ").title()
    return parts.hostname or "Link"


def _is_http(url: str) -> bool:
    return urlsplit(url).scheme.lower() in ("http", "https")


class EmbedConverter(TypeConverter):
    block_types = frozenset({"embed", "bookmark", "link_preview", "video", "audio", "pdf"})

    def supports(self, block: dict[str, Any]) -> bool:
        kind = block.get("type")
        if kind in ("embed", "bookmark", "link_preview"):
            return True
        if kind in ("video", "audio", "pdf"):
            return media_source(payload(block))[0] == "external"
        return False

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> str:
        kind = block["type"]
        data = payload(block)
        url = data.get("url")
        if not url and kind in ("video", "audio", "pdf"):
            url = media_source(data)[1]
        if not url:
            raise NotionpressUnsupportedBlockError(
                message=f"{kind} block has no URL",
                context={"block_type": kind, "block_id": block.get("id")},
            )
        if not _is_http(url):
            return INVALID_EMBED

        if kind in ("bookmark", "link_preview"):
            return self.bookmark(url, ctx.rich_text(data.get("caption")))
        provider = detect_provider(url)
        if provider is not None:
            return self.provider_embed(url, provider)
        if kind == "pdf":
            return self.bookmark(url, ctx.rich_text(data.get("caption")))
        return self.iframe(url)

    def provider_embed(self, url: str, provider: str) -> str:
        embed_type = _PROVIDER_TYPES[provider]
        aspect = " wp-embed-aspect-16-9 wp-has-aspect-ratio" if embed_type == "video" else ""
        attrs: dict[str, Any] = {
            "url": url,
            "type": embed_type,
            "providerNameSlug": provider,
            "responsive": True,
        }
        if aspect:
            attrs["className"] = aspect.strip()
        return (
            f"<!-- wp:embed{block_attrs(attrs)} -->\n"
            f'<figure class="wp-block-embed is-type-{embed_type} is-provider-{provider} '
            f'wp-block-embed-{provider}{aspect}"><div class="wp-block-embed__wrapper">\n'
            f"{escape_url(url)}\n"
            "</div></figure>\n"
            "<!-- /wp:embed -->\n\n"
        )

    def bookmark(self, url: str, caption_html: str = "") -> str:
        title = caption_html or escape_html(url_title(url))
        return (
            '<!-- wp:html -->\n<div class="notion-bookmark">\n'
            f'\t<a href="{escape_url(url)}" target="_blank" rel="noopener noreferrer" '
            'class="notion-bookmark-link">\n'
            f'\t\t<div class="notion-bookmark-title">{title}</div>\n'
            f'\t\t<div class="notion-bookmark-url">{escape_html(url)}</div>\n'
            "\t</a>\n</div>\n<!-- /wp:html -->\n\n"
        )

    def iframe(self, url: str) -> str:
        return (
            '<!-- wp:html -->\n<div class="notion-embed">\n'
            f'\t<iframe src="{escape_url(url)}" width="100%" height="500" frameborder="0" '
            'allowfullscreen sandbox="allow-scripts allow-same-origin allow-presentation"></iframe>\n'
            "</div>\n<!-- /wp:html -->\n\n"
        )
