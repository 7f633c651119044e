"""Tests for MemoryStore."""

from __future__ import annotations

import threading

from notionpress.storage import BATCHES, MemoryStore, Store


def test_satisfies_protocol():
    assert isinstance(MemoryStore(), Store)


def test_get_missing_returns_none():
    assert MemoryStore().get(BATCHES, "nope") is None


def test_put_and_get_copy():
    store = MemoryStore()
    record = {"items": [1]}
    store.put(BATCHES, "k", record)
    record["items"].append(2)
    fetched = store.get(BATCHES, "k")
    assert fetched == {"items": [1]}
    fetched["items"].append(3)
    assert store.get(BATCHES, "k") == {"items": [1]}


def test_update_creates_record():
    store = MemoryStore()
    result = store.update(BATCHES, "k", lambda current: {"n": 1} if current is None else None)
    assert result == {"n": 1}
    assert store.get(BATCHES, "k") == {"n": 1}


def test_update_returning_none_leaves_record_untouched():
    store = MemoryStore()
    store.put(BATCHES, "k", {"n": 1})
    result = store.update(BATCHES, "k", lambda current: None)
    assert result == {"n": 1}


def test_update_missing_and_none_returns_none():
    store = MemoryStore()
    assert store.update(BATCHES, "k", lambda current: None) is None
    assert store.get(BATCHES, "k") is None


def test_delete():
    store = MemoryStore()
    store.put(BATCHES, "k", {})
    assert store.delete(BATCHES, "k") is True
    assert store.delete(BATCHES, "k") is False


def test_scan_is_snapshot():
    store = MemoryStore()
    store.put(BATCHES, "a", {"v": 1})
    store.put(BATCHES, "b", {"v": 2})
    seen = []
    for key, _record in store.scan(BATCHES):
        store.delete(BATCHES, key)
        seen.append(key)
    assert sorted(seen) == ["a", "b"]


def test_namespaces_are_isolated():
    store = MemoryStore()
    store.put("one", "k", {"v": 1})
    assert store.get("two", "k") is None
    assert len(store) == 1


def test_concurrent_updates_do_not_lose_increments():
    store = MemoryStore()
    store.put(BATCHES, "k", {"n": 0})

    def bump():
        for _ in range(200):
            store.update(BATCHES, "k", lambda r: {"n": r["n"] + 1})

    threads = [threading.Thread(target=bump) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.get(BATCHES, "k") == {"n": 1000}
