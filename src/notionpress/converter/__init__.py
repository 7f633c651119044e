"""Block tree to target markup conversion.

The engine walks a block tree, dispatching each block through the
converter registry; rich text is rendered by :mod:`.rich_text`.
"""

from __future__ import annotations

from .base import (
    BlockConverter,
    ConversionContext,
    Shell,
    TypeConverter,
    block_children,
    payload,
)
from .blocks import FallbackConverter, builtin_converters
from .engine import BlockConversionEngine
from .escape import escape_attr, escape_html, escape_url, is_safe_url
from .properties import format_properties, format_property, render_properties_block
from .registry import ConverterRegistry, default_registry, type_is
from .rich_text import plain_text, render_rich_text

__all__ = [
    "BlockConversionEngine",
    "BlockConverter",
    "ConversionContext",
    "ConverterRegistry",
    "FallbackConverter",
    "Shell",
    "TypeConverter",
    "block_children",
    "builtin_converters",
    "default_registry",
    "escape_attr",
    "escape_html",
    "escape_url",
    "format_properties",
    "format_property",
    "is_safe_url",
    "payload",
    "plain_text",
    "render_properties_block",
    "render_rich_text",
    "type_is",
]
