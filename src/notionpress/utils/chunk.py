"""Partition a list of work items into fixed-size groups.

Collection batches are scheduled one task per group so a single task never
holds more than ``batch_chunk_size`` documents.
"""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


def chunk_items(items: list[T], size: int = 20) -> list[list[T]]:
    """Split *items* into consecutive sublists of at most *size* entries.

    Parameters
    ----------
    items:
        The full list to partition.  Order is preserved.
    size:
        Maximum number of entries per chunk.

    Returns
    -------
    list[list]
        The chunks.  An empty input returns an empty list (not ``[[]]``).

    Raises
    ------
    ValueError
        If *size* is less than 1.

    Examples
    --------
    >>> chunk_items(list(range(5)), 2)
    [[0, 1], [2, 3], [4]]
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    if not items:
        return []

    return [items[i : i + size] for i in range(0, len(items), size)]
