"""Persisted credentials."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Protocol

from .settings import StoreError


class SecretStore(Protocol):
    """String secrets keyed by destination-namespaced names."""

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def keys(self) -> list[str]:
        ...


class MemorySecretStore:
    """Secrets kept for the lifetime of the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self.values)


class FileSecretStore:
    """JSON file of secrets readable only by the current user."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            document = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except ValueError as exc:
            raise StoreError(f"Failed to parse secrets in {self._path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StoreError(f"Secrets file {self._path} must contain a JSON object")
        return {str(key): str(value) for key, value in document.items()}

    def _write(self, values: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(values, handle, indent=2, sort_keys=True)
        os.replace(tmp_path, self._path)

    async def get(self, key: str) -> str | None:
        return self._load().get(key)

    async def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self._write(values)

    async def delete(self, key: str) -> None:
        values = self._load()
        if values.pop(key, None) is not None:
            self._write(values)

    async def keys(self) -> list[str]:
        return sorted(self._load())


async def clear_prefix(store: SecretStore, prefix: str) -> list[str]:
    """Delete every secret whose key starts with ``prefix``; return the removed keys."""

    removed: list[str] = []
    for key in await store.keys():
        if key.startswith(prefix):
            await store.delete(key)
            removed.append(key)
    return removed


__all__ = ["FileSecretStore", "MemorySecretStore", "SecretStore", "clear_prefix"]
