"""Debounced, cancellable, paginated suggestion search."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from ..cache import CachedFetcher, Page, PageLoader, SuggestionItem

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.25


@dataclass(slots=True)
class SearchSnapshot:
    query: str
    items: list[SuggestionItem] = field(default_factory=list)
    has_more: bool = False
    busy: bool = False
    error: str | None = None


class SuggestionSearch:
    """State behind one searchable picker.

    Every page request takes a new generation number. A response whose
    generation is no longer current is dropped, so the visible items always
    belong to the latest query. Typing restarts a debounce window and cancels
    whatever load is pending for the previous query.
    """

    def __init__(
        self,
        loader: PageLoader,
        *,
        fetcher: CachedFetcher | None = None,
        cache_key: str = "",
        ttl_seconds: float | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        on_update: Callable[[SearchSnapshot], None] | None = None,
    ) -> None:
        self._loader = loader
        self._fetcher = fetcher
        self._cache_key = cache_key
        self._ttl_seconds = ttl_seconds
        self._debounce = max(0.0, debounce_seconds)
        self._on_update = on_update
        self._generation = 0
        self._pending: asyncio.Task[None] | None = None
        self._cancelled: set[asyncio.Task[None]] = set()

        self.query = ""
        self.items: list[SuggestionItem] = []
        self.next_cursor: str | None = None
        self.busy = False
        self.error: str | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    def snapshot(self) -> SearchSnapshot:
        return SearchSnapshot(
            query=self.query,
            items=list(self.items),
            has_more=self.has_more,
            busy=self.busy,
            error=self.error,
        )

    async def start(self, initial_query: str = "", *, refresh: bool = False) -> None:
        """Load the first page for ``initial_query`` without debouncing."""

        self._reset(initial_query)
        generation = self._next_generation()
        self._pending = asyncio.create_task(
            self._load(generation, initial_query, None, append=False, refresh=refresh)
        )
        await self.settle()

    def update_query(self, text: str) -> None:
        """Replace the query and schedule a debounced fetch for it."""

        self._reset(text)
        generation = self._next_generation()
        self._notify()
        self._pending = asyncio.create_task(self._debounced(generation, text))

    async def load_more(self) -> bool:
        """Append the next page for the current query; False when there is none."""

        await self.settle()
        if self.next_cursor is None:
            return False
        generation = self._next_generation()
        self._pending = asyncio.create_task(
            self._load(generation, self.query, self.next_cursor, append=True)
        )
        await self.settle()
        return True

    async def settle(self) -> None:
        """Wait until no load is pending."""

        while self._pending is not None:
            task = self._pending
            await asyncio.wait({task})
            if self._pending is task:
                self._pending = None

    async def aclose(self) -> None:
        """Cancel the pending load and wait for every cancelled load to finish."""

        self._next_generation()
        self._cancel_pending()
        if self._cancelled:
            await asyncio.wait(set(self._cancelled))
        self.busy = False

    def _cancel_pending(self) -> None:
        task = self._pending
        self._pending = None
        if task is None or task.done():
            return
        task.cancel()
        self._cancelled.add(task)
        task.add_done_callback(self._cancelled.discard)

    def _reset(self, query: str) -> None:
        self._cancel_pending()
        self.query = query
        self.items = []
        self.next_cursor = None
        self.error = None

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def _debounced(self, generation: int, query: str) -> None:
        await asyncio.sleep(self._debounce)
        await self._load(generation, query, None, append=False)

    async def _fetch(self, query: str, cursor: str | None, refresh: bool) -> Page:
        if self._fetcher is None:
            return await self._loader(query, cursor)
        return await self._fetcher.search(
            self._cache_key,
            self._loader,
            query=query,
            cursor=cursor,
            refresh=refresh,
            ttl_seconds=self._ttl_seconds,
        )

    async def _load(
        self,
        generation: int,
        query: str,
        cursor: str | None,
        *,
        append: bool,
        refresh: bool = False,
    ) -> None:
        self.busy = True
        self._notify()
        try:
            page = await self._fetch(query, cursor, refresh)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if generation != self._generation:
                return
            logger.debug("Suggestion fetch failed", extra={"query": query, "error": str(exc)})
            self.error = str(exc) or type(exc).__name__
            self.busy = False
            self._notify()
            return

        if generation != self._generation:
            logger.debug(
                "Discarding stale suggestion page",
                extra={"query": query, "generation": generation, "current": self._generation},
            )
            return

        self.items = [*self.items, *page.items] if append else list(page.items)
        self.next_cursor = page.next_cursor
        self.busy = False
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.snapshot())


__all__ = ["DEFAULT_DEBOUNCE_SECONDS", "SearchSnapshot", "SuggestionSearch"]
