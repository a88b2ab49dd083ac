"""Cache contract shared by every tier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


class TTL:
    """Common cache lifetimes in seconds."""

    MINUTE = 60.0
    HOUR = 60.0 * 60.0
    DAY = 24.0 * 60.0 * 60.0


class CacheUnavailableError(RuntimeError):
    """Raised when a cache tier cannot be constructed or reached."""


@dataclass(slots=True)
class CacheEntry:
    """A cached value with its absolute expiry (``None`` never expires)."""

    value: Any
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def remaining(self, now: float) -> float | None:
        if self.expires_at is None:
            return None
        return max(self.expires_at - now, 0.0)


class Cache(Protocol):
    """Namespaced key-value store with read-time TTL evaluation."""

    def get(self, namespace: str, key: str) -> Any | None:
        ...

    def get_entry(self, namespace: str, key: str) -> CacheEntry | None:
        ...

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ...

    def invalidate(self, namespace: str, key: str | None = None) -> int:
        ...


def expiry_for(now: float, ttl_seconds: float | None) -> float | None:
    if ttl_seconds is None:
        return None
    return now + max(ttl_seconds, 0.0)


__all__ = ["TTL", "Cache", "CacheEntry", "CacheUnavailableError", "expiry_for"]
