import logging
import sqlite3
from datetime import datetime
from typing import List

import pytest
from pydantic import TypeAdapter

from freight_analytics.cache.memory_store import InMemoryStore
from freight_analytics.cache.record_cache import TIMESTAMP_SUFFIX, RecordCache
from freight_analytics.cache.sqlite_store import SQLiteStore
from freight_analytics.domain.exceptions import CacheWriteError
from freight_analytics.domain.models import RawRecord


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def cache(store, clock):
    return RecordCache(store, ttl_seconds=300, clock=clock)


def test_put_writes_payload_and_timestamp(cache, store, clock):
    cache.put("quotes|records|k", [1, 2, 3])

    assert store.get("quotes|records|k") == "[1,2,3]"
    assert float(store.get("quotes|records|k" + TIMESTAMP_SUFFIX)) == clock.now


def test_get_returns_fresh_payload(cache, clock):
    cache.put("k", {"a": 1})
    clock.advance(299)
    assert cache.get("k") == {"a": 1}


def test_entry_expires_at_exact_ttl(cache, store, clock):
    cache.put("k", [1])
    clock.advance(300)

    assert cache.get("k") is None
    assert store.get("k") is None
    assert store.get("k" + TIMESTAMP_SUFFIX) is None


def test_missing_timestamp_counts_as_absent_and_is_evicted(cache, store):
    store.put("k", "[1]")
    assert cache.get("k") is None
    assert store.get("k") is None


def test_corrupt_timestamp_is_evicted(cache, store):
    store.put("k", "[1]")
    store.put("k" + TIMESTAMP_SUFFIX, "yesterday")

    assert cache.get("k") is None
    assert list(store.keys()) == []


def test_corrupt_payload_is_evicted(cache, store, clock):
    store.put("k", "{not json")
    store.put("k" + TIMESTAMP_SUFFIX, repr(clock.now))

    assert cache.get("k") is None
    assert store.get("k") is None


def test_adapter_rebuilds_models(cache):
    records = [RawRecord(id="1", actor="A", event_date=datetime(2024, 1, 5))]
    cache.put("k", records)

    restored = cache.get("k", TypeAdapter(List[RawRecord]))
    assert restored == records


def test_adapter_mismatch_is_treated_as_corrupt(cache, store):
    cache.put("k", {"unexpected": "shape"})
    assert cache.get("k", TypeAdapter(List[RawRecord])) is None
    assert store.get("k") is None


def test_quota_failure_is_swallowed_and_logged(clock, caplog):
    store = InMemoryStore(max_bytes=16)
    cache = RecordCache(store, ttl_seconds=60, clock=clock)

    with caplog.at_level(logging.WARNING):
        cache.put("key", ["x" * 100])

    assert cache.get("key") is None
    assert list(store.keys()) == []
    assert any(record.getMessage() == "cache_write_failed" for record in caplog.records)


def test_unserializable_payload_is_skipped(cache, store):
    cache.put("k", object())
    assert list(store.keys()) == []


def test_invalidate_removes_prefix_and_counts_entries(cache, store):
    cache.put("quotes|records|a", [1])
    cache.put("quotes|pool|b", [2])
    cache.put("orders|records|a", [3])

    evicted = cache.invalidate("quotes|")

    assert evicted == 2
    assert sorted(store.keys()) == [
        "orders|records|a",
        "orders|records|a" + TIMESTAMP_SUFFIX,
    ]


def test_caches_with_different_ttls_share_a_store(store, clock):
    short = RecordCache(store, ttl_seconds=300, clock=clock)
    long = RecordCache(store, ttl_seconds=3600, clock=clock)
    short.put("short", [1])
    long.put("long", [2])

    clock.advance(600)

    assert short.get("short") is None
    assert long.get("long") == [2]


def test_ttl_must_be_positive(store):
    with pytest.raises(ValueError):
        RecordCache(store, ttl_seconds=0)


class ReadOnlyStore(InMemoryStore):
    """In-memory store that refuses writes and deletes once frozen."""

    def __init__(self) -> None:
        super().__init__()
        self.read_only = False

    def put(self, key: str, value: str) -> None:
        if self.read_only:
            raise CacheWriteError("Store is read-only")
        super().put(key, value)

    def delete(self, key: str) -> None:
        if self.read_only:
            raise CacheWriteError("Store is read-only")
        super().delete(key)


def test_refused_delete_during_write_is_logged(clock, caplog):
    store = ReadOnlyStore()
    store.read_only = True
    cache = RecordCache(store, ttl_seconds=60, clock=clock)

    with caplog.at_level(logging.WARNING):
        cache.put("k", [1])

    messages = [record.getMessage() for record in caplog.records]
    assert "cache_write_failed" in messages
    assert "cache_delete_failed" in messages


def test_refused_delete_on_expired_read_reports_absent(clock):
    store = ReadOnlyStore()
    cache = RecordCache(store, ttl_seconds=60, clock=clock)
    cache.put("k", [1])
    store.read_only = True
    clock.advance(60)

    assert cache.get("k") is None
    assert store.get("k") == "[1]"


def test_invalidate_skips_entries_the_store_refuses_to_drop(clock, caplog):
    store = ReadOnlyStore()
    cache = RecordCache(store, ttl_seconds=60, clock=clock)
    cache.put("quotes|records|a", [1])
    store.read_only = True

    with caplog.at_level(logging.WARNING):
        evicted = cache.invalidate("quotes|")

    assert evicted == 0
    assert cache.get("quotes|records|a") == [1]
    assert any(record.getMessage() == "cache_delete_failed" for record in caplog.records)


def test_locked_sqlite_store_never_breaks_the_cache(tmp_path, clock):
    path = tmp_path / "cache.db"
    cache = RecordCache(SQLiteStore(path, timeout=0.01), ttl_seconds=60, clock=clock)
    holder = sqlite3.connect(path, isolation_level=None)
    holder.execute("BEGIN EXCLUSIVE")
    try:
        cache.put("quotes|records|a", [1])
        assert cache.get("quotes|records|a") is None
        assert cache.invalidate("quotes|") == 0
    finally:
        holder.execute("ROLLBACK")
        holder.close()
