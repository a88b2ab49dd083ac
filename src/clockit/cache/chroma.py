"""Chroma-backed durable cache tier."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from .base import CacheEntry, CacheUnavailableError, expiry_for

logger = logging.getLogger(__name__)

# Entries are looked up by id only; a constant vector keeps Chroma from
# loading its default embedding model.
_PLACEHOLDER_EMBEDDING = [0.0]


class CollectionProtocol(Protocol):
    """Protocol for the minimal Chroma collection API used by the cache."""

    def upsert(
        self,
        *,
        ids: Iterable[str],
        documents: Iterable[str],
        metadatas: Iterable[dict[str, Any]],
        embeddings: Iterable[list[float]],
    ) -> None:
        ...

    def get(
        self,
        *,
        ids: Iterable[str] | None = None,
        where: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> dict[str, list[Any]]:
        ...

    def delete(
        self,
        *,
        ids: Iterable[str] | None = None,
        where: dict[str, Any] | None = None,
    ) -> None:
        ...


class ClientProtocol(Protocol):
    """Protocol for the minimal Chroma client API used by the cache."""

    def get_or_create_collection(self, name: str) -> CollectionProtocol:
        ...


class ChromaCache:
    """Durable cache tier that survives restarts, scoped to one installation."""

    def __init__(
        self,
        path: Path,
        *,
        collection_name: str = "clockit_cache",
        client_factory: Callable[[], ClientProtocol] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._path = Path(path)
        self._collection_name = collection_name
        self._client_factory = client_factory or self._default_client_factory
        self._clock = clock or time.time
        self._client: ClientProtocol | None = None
        self._collection: CollectionProtocol | None = None

    def _default_client_factory(self) -> ClientProtocol:
        try:
            import chromadb
        except ImportError as exc:  # pragma: no cover - depends on environment
            raise CacheUnavailableError(
                "chromadb package is not installed; the durable cache tier is unavailable"
            ) from exc

        self._path.mkdir(parents=True, exist_ok=True)
        return chromadb.PersistentClient(path=str(self._path))

    def _ensure_collection(self) -> CollectionProtocol:
        if self._collection is None:
            client = self._client or self._client_factory()
            self._client = client
            self._collection = client.get_or_create_collection(self._collection_name)
        return self._collection

    @staticmethod
    def _entry_id(namespace: str, key: str) -> str:
        return f"{namespace}::{key}"

    def ping(self) -> bool:
        """Verify that the underlying collection can be obtained."""

        self._ensure_collection()
        return True

    def get_entry(self, namespace: str, key: str) -> CacheEntry | None:
        collection = self._ensure_collection()
        entry_id = self._entry_id(namespace, key)
        result = collection.get(ids=[entry_id])
        documents = result.get("documents") or []
        metadatas = result.get("metadatas") or []
        if not documents:
            return None

        metadata = metadatas[0] or {}
        expires_at = metadata.get("expires_at")
        entry = CacheEntry(
            value=None,
            expires_at=float(expires_at) if expires_at is not None else None,
        )
        if entry.is_expired(self._clock()):
            collection.delete(ids=[entry_id])
            return None

        try:
            entry.value = json.loads(documents[0])
        except (TypeError, ValueError):
            logger.warning(
                "Discarding unreadable cache entry",
                extra={"namespace": namespace, "key": key},
            )
            collection.delete(ids=[entry_id])
            return None
        return entry

    def get(self, namespace: str, key: str) -> Any | None:
        entry = self.get_entry(namespace, key)
        return entry.value if entry is not None else None

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        collection = self._ensure_collection()
        metadata: dict[str, Any] = {"namespace": namespace, "key": key}
        expires_at = expiry_for(self._clock(), ttl_seconds)
        if expires_at is not None:
            metadata["expires_at"] = expires_at

        collection.upsert(
            ids=[self._entry_id(namespace, key)],
            documents=[json.dumps(value, default=str)],
            metadatas=[metadata],
            embeddings=[_PLACEHOLDER_EMBEDDING],
        )

    def invalidate(self, namespace: str, key: str | None = None) -> int:
        collection = self._ensure_collection()
        if key is not None:
            entry_id = self._entry_id(namespace, key)
            existing = collection.get(ids=[entry_id])
            if not existing.get("ids"):
                return 0
            collection.delete(ids=[entry_id])
            return 1

        existing = collection.get(where={"namespace": namespace})
        ids = list(existing.get("ids") or [])
        if ids:
            collection.delete(ids=ids)
        return len(ids)


__all__ = ["ChromaCache", "ClientProtocol", "CollectionProtocol"]
