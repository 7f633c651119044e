"""Slug generation for placeholder routes."""

from __future__ import annotations

import re
import unicodedata

# Emoji, pictographs, dingbats, flags and the joiners/selectors that glue
# multi-codepoint emoji together.
_EMOJI_RE = re.compile(
    "["
    "\U0001F000-\U0001FAFF"
    "\U00002600-\U000027BF"
    "\U0001F1E6-\U0001F1FF"
    "\U00002B00-\U00002BFF"
    "\u200d"
    "\ufe0f"
    "]+",
)
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def strip_emoji(text: str) -> str:
    """Remove emoji codepoints from *text*."""
    return _EMOJI_RE.sub("", text)


def slugify(title: str, max_length: int = 200) -> str:
    """Turn a document title into a lowercase, hyphen-separated slug.

    Emoji are dropped, accented letters are folded to ASCII, and any run of
    other characters becomes a single hyphen.  May return ``""`` for titles
    with no usable characters; callers substitute the source id.

    >>> slugify("🚀 Launch Plan: Q3 / Q4")
    'launch-plan-q3-q4'
    """
    text = strip_emoji(title)
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = _NON_SLUG_RE.sub("-", text.lower()).strip("-")
    return text[:max_length].rstrip("-")
