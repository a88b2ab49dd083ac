"""Persisted settings and secret stores."""

from .secrets import FileSecretStore, MemorySecretStore, SecretStore, clear_prefix
from .settings import MemorySettingsStore, SettingsStore, StoreError, YamlSettingsStore

__all__ = [
    "FileSecretStore",
    "MemorySecretStore",
    "MemorySettingsStore",
    "SecretStore",
    "SettingsStore",
    "StoreError",
    "YamlSettingsStore",
    "clear_prefix",
]
