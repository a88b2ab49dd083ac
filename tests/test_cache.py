from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from clockit.cache import CacheUnavailableError, ChromaCache, CompositeCache, MemoryCache, build_cache
from clockit.config import ClockitSettings


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@dataclass
class _Record:
    document: str
    metadata: dict[str, Any]


class StubCollection:
    def __init__(self) -> None:
        self.records: dict[str, _Record] = {}

    def upsert(self, *, ids, documents, metadatas, embeddings) -> None:  # type: ignore[override]
        for record_id, document, metadata in zip(ids, documents, metadatas):
            self.records[record_id] = _Record(document=document, metadata=dict(metadata))

    def get(self, *, ids=None, where=None, limit=None):  # type: ignore[override]
        items = list(self.records.items())
        if ids is not None:
            items = [(record_id, record) for record_id, record in items if record_id in ids]
        if where:
            for key, value in where.items():
                items = [(record_id, record) for record_id, record in items if record.metadata.get(key) == value]
        return {
            "ids": [record_id for record_id, _ in items],
            "documents": [record.document for _, record in items],
            "metadatas": [record.metadata for _, record in items],
        }

    def delete(self, *, ids=None, where=None) -> None:  # type: ignore[override]
        for record_id in list(ids or []):
            self.records.pop(record_id, None)


class StubClient:
    def __init__(self) -> None:
        self.collections = defaultdict(StubCollection)

    def get_or_create_collection(self, name: str) -> StubCollection:
        return self.collections[name]


class BrokenTier:
    def get_entry(self, namespace, key):
        raise RuntimeError("disk gone")

    def get(self, namespace, key):
        raise RuntimeError("disk gone")

    def set(self, namespace, key, value, ttl_seconds=None):
        raise RuntimeError("disk gone")

    def invalidate(self, namespace, key=None):
        raise RuntimeError("disk gone")


def test_memory_cache_expires_lazily() -> None:
    clock = FakeClock()
    cache = MemoryCache(clock=clock)

    cache.set("suggest", "a", {"items": []}, ttl_seconds=10)
    assert cache.get("suggest", "a") == {"items": []}

    clock.now += 10
    assert cache.get("suggest", "a") is None
    assert cache.stats["entries"] == 0
    assert cache.stats["hits"] == 1
    assert cache.stats["misses"] == 1


def test_memory_cache_without_ttl_never_expires() -> None:
    clock = FakeClock()
    cache = MemoryCache(clock=clock)
    cache.set("ns", "k", "v")

    clock.now += 10**9
    assert cache.get("ns", "k") == "v"


def test_memory_cache_evicts_least_recently_used() -> None:
    cache = MemoryCache(max_entries=2)
    cache.set("ns", "a", 1)
    cache.set("ns", "b", 2)
    assert cache.get("ns", "a") == 1

    cache.set("ns", "c", 3)

    assert cache.get("ns", "b") is None
    assert cache.get("ns", "a") == 1
    assert cache.get("ns", "c") == 3


def test_memory_cache_invalidate_key_and_namespace() -> None:
    cache = MemoryCache()
    cache.set("suggest", "a", 1)
    cache.set("suggest", "b", 2)
    cache.set("other", "a", 3)

    assert cache.invalidate("suggest", "a") == 1
    assert cache.invalidate("suggest", "a") == 0
    assert cache.invalidate("suggest") == 1
    assert cache.get("other", "a") == 3


def test_chroma_cache_round_trip_with_expiry(tmp_path: Path) -> None:
    clock = FakeClock()
    client = StubClient()
    cache = ChromaCache(tmp_path, client_factory=lambda: client, clock=clock)

    cache.set("suggest", "jira|AB|", {"items": [{"id": "AB-1"}]}, ttl_seconds=60)
    collection = client.collections["clockit_cache"]
    record = collection.records["suggest::jira|AB|"]
    assert record.metadata["namespace"] == "suggest"
    assert record.metadata["expires_at"] == pytest.approx(1_060.0)

    assert cache.get("suggest", "jira|AB|") == {"items": [{"id": "AB-1"}]}

    clock.now += 61
    assert cache.get("suggest", "jira|AB|") is None
    assert "suggest::jira|AB|" not in collection.records


def test_chroma_cache_discards_unreadable_documents(tmp_path: Path) -> None:
    client = StubClient()
    cache = ChromaCache(tmp_path, client_factory=lambda: client)
    collection = client.collections["clockit_cache"]
    collection.records["ns::k"] = _Record(document="{not json", metadata={"namespace": "ns", "key": "k"})

    assert cache.get("ns", "k") is None
    assert collection.records == {}


def test_chroma_cache_invalidate_namespace(tmp_path: Path) -> None:
    cache = ChromaCache(tmp_path, client_factory=lambda: StubClient())
    cache.set("suggest", "a", 1)
    cache.set("suggest", "b", 2)
    cache.set("other", "c", 3)

    assert cache.invalidate("suggest") == 2
    assert cache.invalidate("other", "c") == 1
    assert cache.invalidate("other", "c") == 0


def test_composite_reads_fast_tier_first_and_backfills() -> None:
    clock = FakeClock()
    fast = MemoryCache(clock=clock)
    slow = MemoryCache(clock=clock)
    cache = CompositeCache([fast, slow], clock=clock)

    slow.set("suggest", "k", "durable", ttl_seconds=100)
    clock.now += 40

    assert cache.get("suggest", "k") == "durable"
    entry = fast.get_entry("suggest", "k")
    assert entry is not None
    assert entry.expires_at == pytest.approx(clock.now + 60)


def test_composite_writes_and_invalidates_every_tier() -> None:
    fast = MemoryCache()
    slow = MemoryCache()
    cache = CompositeCache([fast, slow])

    cache.set("suggest", "k", "v", ttl_seconds=30)
    assert fast.get("suggest", "k") == "v"
    assert slow.get("suggest", "k") == "v"

    assert cache.invalidate("suggest") == 1
    assert fast.get("suggest", "k") is None
    assert slow.get("suggest", "k") is None


def test_composite_skips_broken_tier() -> None:
    memory = MemoryCache()
    cache = CompositeCache([memory, BrokenTier()])

    cache.set("suggest", "k", "v")
    assert cache.get("suggest", "k") == "v"
    assert cache.get("suggest", "missing") is None
    assert cache.invalidate("suggest") == 1


def test_composite_requires_a_tier() -> None:
    with pytest.raises(ValueError):
        CompositeCache([])


def test_build_cache_memory_only_when_durable_disabled(tmp_path: Path) -> None:
    settings = ClockitSettings(data_dir=tmp_path, durable_cache=False)
    cache = build_cache(settings)
    assert [type(tier) for tier in cache.tiers] == [MemoryCache]


def test_build_cache_falls_back_when_chroma_unavailable(tmp_path: Path, monkeypatch) -> None:
    def unavailable(self):
        raise CacheUnavailableError("chromadb missing")

    monkeypatch.setattr(ChromaCache, "ping", unavailable)
    settings = ClockitSettings(data_dir=tmp_path, durable_cache=True)

    cache = build_cache(settings)

    assert [type(tier) for tier in cache.tiers] == [MemoryCache]
