"""Paginated search results memoized per query and cursor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from .base import TTL, Cache

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SuggestionItem:
    """One selectable search result."""

    id: str
    title: str
    description: str | None = None
    raw: Any = None

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "description": self.description, "raw": self.raw}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SuggestionItem:
        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title") or payload["id"]),
            description=payload.get("description"),
            raw=payload.get("raw"),
        )


@dataclass(slots=True)
class Page:
    """A page of suggestions plus the cursor for the next page, if any."""

    items: list[SuggestionItem] = field(default_factory=list)
    next_cursor: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "items": [item.to_payload() for item in self.items],
            "next_cursor": self.next_cursor,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Page:
        return cls(
            items=[SuggestionItem.from_payload(item) for item in payload.get("items") or []],
            next_cursor=payload.get("next_cursor"),
        )


PageLoader = Callable[[str, "str | None"], Awaitable[Page]]


class CachedFetcher:
    """Return cached pages or call the loader and cache its result.

    Keys are query-exact: ``"AB"`` and ``"ABC"`` never share an entry.
    """

    def __init__(
        self,
        cache: Cache,
        namespace: str = "suggest",
        default_ttl_seconds: float = TTL.DAY,
    ) -> None:
        self._cache = cache
        self._namespace = namespace
        self._default_ttl = default_ttl_seconds

    @property
    def namespace(self) -> str:
        return self._namespace

    @staticmethod
    def cache_key(cache_key: str, query: str, cursor: str | None) -> str:
        return f"{cache_key}|{query}|{cursor or ''}"

    async def search(
        self,
        cache_key: str,
        loader: PageLoader,
        *,
        query: str,
        cursor: str | None = None,
        refresh: bool = False,
        ttl_seconds: float | None = None,
    ) -> Page:
        key = self.cache_key(cache_key, query, cursor)
        if not refresh:
            cached = self._cache.get(self._namespace, key)
            if cached is not None:
                logger.debug("Suggestion cache hit", extra={"key": key})
                return Page.from_payload(cached)

        page = await loader(query, cursor)
        self._cache.set(
            self._namespace,
            key,
            page.to_payload(),
            ttl_seconds if ttl_seconds is not None else self._default_ttl,
        )
        return page

    def invalidate(self, key: str | None = None) -> int:
        return self._cache.invalidate(self._namespace, key)


__all__ = ["CachedFetcher", "Page", "PageLoader", "SuggestionItem"]
