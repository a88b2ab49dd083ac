"""Persisted non-secret settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Protocol

import yaml


class StoreError(RuntimeError):
    """Raised when a persisted store cannot be read or written."""


class SettingsStore(Protocol):
    """Key-value settings persisted across sessions."""

    async def get(self, setting_key: str) -> Any | None:
        ...

    async def update(self, setting_key: str, value: Any | None) -> None:
        ...

    async def keys(self) -> list[str]:
        ...


class MemorySettingsStore:
    """Settings kept for the lifetime of the process."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(initial or {})

    async def get(self, setting_key: str) -> Any | None:
        return self.values.get(setting_key)

    async def update(self, setting_key: str, value: Any | None) -> None:
        if value is None:
            self.values.pop(setting_key, None)
        else:
            self.values[setting_key] = value

    async def keys(self) -> list[str]:
        return sorted(self.values)


class YamlSettingsStore:
    """Flat ``setting_key: value`` mapping stored in a YAML file.

    ``update(key, None)`` removes the key. Writes replace the file atomically.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            document = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise StoreError(f"Failed to parse settings in {self._path}: {exc}") from exc
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise StoreError(f"Settings file {self._path} must contain a mapping")
        return document

    def _write(self, values: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(
            yaml.safe_dump(values, sort_keys=True, allow_unicode=True),
            encoding="utf-8",
        )
        os.replace(tmp_path, self._path)

    async def get(self, setting_key: str) -> Any | None:
        return self._load().get(setting_key)

    async def update(self, setting_key: str, value: Any | None) -> None:
        values = self._load()
        if value is None:
            if setting_key not in values:
                return
            values.pop(setting_key)
        else:
            values[setting_key] = value
        self._write(values)

    async def keys(self) -> list[str]:
        return sorted(self._load())


__all__ = ["MemorySettingsStore", "SettingsStore", "StoreError", "YamlSettingsStore"]
