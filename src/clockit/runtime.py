"""Wiring of stores, cache and destinations shared by the server and CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import httpx

from .cache import Cache, CachedFetcher, build_cache
from .config import ClockitSettings
from .credentials import CredentialManager
from .models import SinkConfig
from .orchestrator import ExportOrchestrator
from .prompts import PromptSurface
from .resolver import FieldResolver
from .sinks import SinkRegistry, default_registry, default_sink_configs, load_sink_configs
from .storage import FileSecretStore, SecretStore, SettingsStore, YamlSettingsStore

logger = logging.getLogger(__name__)

SUGGESTION_NAMESPACE = "suggest"


@dataclass(slots=True)
class ClockitRuntime:
    settings: ClockitSettings
    secrets: SecretStore
    settings_store: SettingsStore
    cache: Cache
    fetcher: CachedFetcher
    registry: SinkRegistry

    def sink_configs(self, kinds: Iterable[str] | None = None) -> list[SinkConfig]:
        """Configured destinations, optionally narrowed to ``kinds``.

        Falls back to ``enabled_sinks`` when no configuration file exists.
        """

        if self.settings.sinks_config_path.exists():
            configs = load_sink_configs(self.settings.sinks_config_path)
        else:
            configs = default_sink_configs(self.settings.enabled_sinks)

        if kinds is None:
            return configs
        wanted = {kind.strip().lower() for kind in kinds if kind.strip()}
        selected = [config for config in configs if config.kind in wanted]
        known = {config.kind for config in configs}
        selected.extend(SinkConfig(kind=kind) for kind in sorted(wanted - known))
        return selected

    def resolver(self, prompts: PromptSurface) -> FieldResolver:
        return FieldResolver(
            secrets=self.secrets,
            settings=self.settings_store,
            prompts=prompts,
            fetcher=self.fetcher,
            debounce_seconds=self.settings.search_debounce_seconds,
        )

    def orchestrator(self, prompts: PromptSurface, kinds: Iterable[str] | None = None) -> ExportOrchestrator:
        sinks = self.registry.create(self.sink_configs(kinds))
        return ExportOrchestrator(sinks, self.resolver(prompts))

    def credentials(self, prompts: PromptSurface) -> CredentialManager:
        return CredentialManager(self.registry, self.resolver(prompts), self.secrets)


def build_runtime(
    settings: ClockitSettings,
    *,
    secrets: SecretStore | None = None,
    settings_store: SettingsStore | None = None,
    cache: Cache | None = None,
    registry: SinkRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ClockitRuntime:
    """Build the default runtime, letting callers swap any collaborator."""

    cache = cache if cache is not None else build_cache(settings)
    runtime = ClockitRuntime(
        settings=settings,
        secrets=secrets if secrets is not None else FileSecretStore(settings.secrets_path),
        settings_store=(
            settings_store if settings_store is not None else YamlSettingsStore(settings.settings_path)
        ),
        cache=cache,
        fetcher=CachedFetcher(
            cache,
            namespace=SUGGESTION_NAMESPACE,
            default_ttl_seconds=settings.suggestion_ttl_seconds,
        ),
        registry=(
            registry
            if registry is not None
            else default_registry(http_client, timeout=settings.http_timeout_seconds)
        ),
    )
    logger.debug(
        "Runtime ready",
        extra={"data_dir": str(settings.data_dir), "sinks": runtime.registry.kinds()},
    )
    return runtime


__all__ = ["ClockitRuntime", "SUGGESTION_NAMESPACE", "build_runtime"]
