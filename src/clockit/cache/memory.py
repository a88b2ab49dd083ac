"""Volatile in-process cache tier."""

from __future__ import annotations

import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable

from .base import CacheEntry, expiry_for


class MemoryCache:
    """TTL-based cache with LRU eviction, cleared on process restart.

    Expiry is lazy: an expired entry is purged the next time it is read.
    """

    def __init__(
        self,
        max_entries: int = 500,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.max_entries = max_entries
        self._clock = clock or time.time
        self._entries: OrderedDict[tuple[str, str], CacheEntry] = OrderedDict()
        self._lock = Lock()

        self._hits = 0
        self._misses = 0

    def get_entry(self, namespace: str, key: str) -> CacheEntry | None:
        with self._lock:
            slot = (namespace, key)
            entry = self._entries.get(slot)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._entries[slot]
                self._misses += 1
                return None

            self._entries.move_to_end(slot)
            self._hits += 1
            return entry

    def get(self, namespace: str, key: str) -> Any | None:
        entry = self.get_entry(namespace, key)
        return entry.value if entry is not None else None

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        with self._lock:
            slot = (namespace, key)
            self._entries.pop(slot, None)
            # Remove oldest entries first
            while len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
            self._entries[slot] = CacheEntry(
                value=value,
                expires_at=expiry_for(self._clock(), ttl_seconds),
            )

    def invalidate(self, namespace: str, key: str | None = None) -> int:
        with self._lock:
            if key is not None:
                return 1 if self._entries.pop((namespace, key), None) is not None else 0

            doomed = [slot for slot in self._entries if slot[0] == namespace]
            for slot in doomed:
                del self._entries[slot]
            return len(doomed)

    @property
    def stats(self) -> dict[str, Any]:
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = self._hits / total_requests if total_requests > 0 else 0.0
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
            }


__all__ = ["MemoryCache"]
