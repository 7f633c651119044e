"""Built-in block converters."""

from __future__ import annotations

from ..base import BlockConverter
from .embed import EmbedConverter
from .fallback import FallbackConverter
from .layout import ColumnConverter, OmittedConverter, PassthroughConverter, ToggleConverter
from .links import ChildDatabaseConverter, ChildPageConverter, LinkToPageConverter
from .lists import ListItemConverter
from .media import MediaConverter
from .table import TableConverter
from .text import (
    CalloutConverter,
    CodeConverter,
    DividerConverter,
    EquationConverter,
    HeadingConverter,
    ParagraphConverter,
    QuoteConverter,
)


def builtin_converters() -> list[BlockConverter]:
    """Return fresh instances of every built-in converter, in dispatch order."""
    return [
        ParagraphConverter(),
        HeadingConverter(),
        ListItemConverter(),
        QuoteConverter(),
        CalloutConverter(),
        CodeConverter(),
        DividerConverter(),
        EquationConverter(),
        TableConverter(),
        ToggleConverter(),
        ColumnConverter(),
        PassthroughConverter(),
        OmittedConverter(),
        ChildPageConverter(),
        ChildDatabaseConverter(),
        LinkToPageConverter(),
        MediaConverter(),
        EmbedConverter(),
    ]


__all__ = [
    "CalloutConverter",
    "ChildDatabaseConverter",
    "ChildPageConverter",
    "CodeConverter",
    "ColumnConverter",
    "DividerConverter",
    "EmbedConverter",
    "EquationConverter",
    "FallbackConverter",
    "HeadingConverter",
    "LinkToPageConverter",
    "ListItemConverter",
    "MediaConverter",
    "OmittedConverter",
    "ParagraphConverter",
    "PassthroughConverter",
    "QuoteConverter",
    "TableConverter",
    "ToggleConverter",
    "builtin_converters",
]
