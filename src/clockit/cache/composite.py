"""Layered cache reading fast tiers before slow ones."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

from ..config import ClockitSettings
from .base import Cache, CacheEntry, CacheUnavailableError
from .chroma import ChromaCache
from .memory import MemoryCache

logger = logging.getLogger(__name__)


class CompositeCache:
    """Compose cache tiers ordered fastest first.

    Reads stop at the first tier holding a live entry and back-fill the
    faster tiers with the entry's remaining lifetime. Writes and
    invalidations go to every tier. A tier that raises is logged and skipped.
    """

    def __init__(self, tiers: Sequence[Cache], *, clock: Callable[[], float] | None = None) -> None:
        if not tiers:
            raise ValueError("CompositeCache requires at least one tier")
        self._tiers = list(tiers)
        self._clock = clock or time.time

    @property
    def tiers(self) -> list[Cache]:
        return list(self._tiers)

    def get_entry(self, namespace: str, key: str) -> CacheEntry | None:
        for index, tier in enumerate(self._tiers):
            try:
                entry = tier.get_entry(namespace, key)
            except Exception as exc:
                logger.warning(
                    "Cache tier read failed",
                    extra={"tier": type(tier).__name__, "namespace": namespace, "error": str(exc)},
                )
                continue
            if entry is None:
                continue
            if index:
                self._backfill(self._tiers[:index], namespace, key, entry)
            return entry
        return None

    def get(self, namespace: str, key: str) -> Any | None:
        entry = self.get_entry(namespace, key)
        return entry.value if entry is not None else None

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        for tier in self._tiers:
            try:
                tier.set(namespace, key, value, ttl_seconds)
            except Exception as exc:
                logger.warning(
                    "Cache tier write failed",
                    extra={"tier": type(tier).__name__, "namespace": namespace, "error": str(exc)},
                )

    def invalidate(self, namespace: str, key: str | None = None) -> int:
        removed = 0
        for tier in self._tiers:
            try:
                removed = max(removed, tier.invalidate(namespace, key))
            except Exception as exc:
                logger.warning(
                    "Cache tier invalidation failed",
                    extra={"tier": type(tier).__name__, "namespace": namespace, "error": str(exc)},
                )
        return removed

    def _backfill(self, tiers: Sequence[Cache], namespace: str, key: str, entry: CacheEntry) -> None:
        ttl = entry.remaining(self._clock())
        for tier in tiers:
            try:
                tier.set(namespace, key, entry.value, ttl)
            except Exception as exc:
                logger.debug(
                    "Cache back-fill skipped",
                    extra={"tier": type(tier).__name__, "namespace": namespace, "error": str(exc)},
                )


def build_cache(settings: ClockitSettings) -> CompositeCache:
    """Build the memory + durable cache stack described by ``settings``."""

    memory = MemoryCache(max_entries=settings.memory_cache_max_entries)
    if not settings.durable_cache:
        return CompositeCache([memory])

    durable = ChromaCache(settings.cache_path)
    try:
        durable.ping()
    except CacheUnavailableError as exc:
        logger.warning("Durable cache unavailable; using memory only", extra={"error": str(exc)})
        return CompositeCache([memory])
    return CompositeCache([memory, durable])


__all__ = ["CompositeCache", "build_cache"]
