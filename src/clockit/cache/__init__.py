"""Layered suggestion cache."""

from .base import TTL, Cache, CacheEntry, CacheUnavailableError
from .chroma import ChromaCache
from .composite import CompositeCache, build_cache
from .fetcher import CachedFetcher, Page, PageLoader, SuggestionItem
from .memory import MemoryCache

__all__ = [
    "TTL",
    "Cache",
    "CacheEntry",
    "CacheUnavailableError",
    "CachedFetcher",
    "ChromaCache",
    "CompositeCache",
    "MemoryCache",
    "Page",
    "PageLoader",
    "SuggestionItem",
    "build_cache",
]
