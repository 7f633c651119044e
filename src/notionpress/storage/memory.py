"""Thread-safe in-process :class:`~notionpress.storage.base.Store`."""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator
from typing import Any

from .base import Mutator


class MemoryStore:
    """Dict-backed store guarded by a re-entrant lock.

    Records are deep-copied on the way in and out so callers can never
    mutate stored state without going through :meth:`update`.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._data.get(namespace, {}).get(key)
            return copy.deepcopy(record) if record is not None else None

    def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._data.setdefault(namespace, {})[key] = copy.deepcopy(value)

    def update(self, namespace: str, key: str, mutator: Mutator) -> dict[str, Any] | None:
        with self._lock:
            bucket = self._data.setdefault(namespace, {})
            current = bucket.get(key)
            new = mutator(copy.deepcopy(current) if current is not None else None)
            if new is None:
                return copy.deepcopy(current) if current is not None else None
            bucket[key] = copy.deepcopy(new)
            return copy.deepcopy(new)

    def delete(self, namespace: str, key: str) -> bool:
        with self._lock:
            return self._data.get(namespace, {}).pop(key, None) is not None

    def scan(self, namespace: str) -> Iterator[tuple[str, dict[str, Any]]]:
        with self._lock:
            snapshot = copy.deepcopy(self._data.get(namespace, {}))
        yield from snapshot.items()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._data.values())
