"""HTML escaping for generated block markup."""

from __future__ import annotations

import html
from urllib.parse import urlsplit

_SAFE_SCHEMES: frozenset[str] = frozenset({"http", "https", "mailto", "tel"})


def escape_html(text: str) -> str:
    """Escape ``&``, ``<`` and ``>`` for element content.

    Quotes are escaped too so the result is also safe inside attributes.
    """
    return html.escape(text, quote=True)


def escape_attr(value: str) -> str:
    """Escape an attribute value."""
    return html.escape(value, quote=True)


def is_safe_url(url: str) -> bool:
    """Return ``True`` for http(s), mailto and tel URLs and for relative
    references (``/path``, ``#fragment``, ``?query``).
    """
    url = url.strip()
    if not url:
        return False
    if url.startswith(("/", "#", "?")):
        return not url.startswith("//") or is_safe_url("https:" + url)
    scheme = urlsplit(url).scheme.lower()
    return scheme in _SAFE_SCHEMES


def escape_url(url: str) -> str:
    """Return *url* escaped for an ``href``/``src`` attribute.

    URLs with any other scheme (``javascript:``, ``data:``...) become ``""``.
    """
    url = url.strip()
    if not is_safe_url(url):
        return ""
    return html.escape(url, quote=True)
