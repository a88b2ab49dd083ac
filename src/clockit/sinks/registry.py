"""Destination factory registry."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

import httpx

from ..models import SinkConfig
from .base import Sink

logger = logging.getLogger(__name__)

SinkFactory = Callable[[SinkConfig], Sink]


class SinkRegistrationError(ValueError):
    """Raised when a destination kind is registered twice."""


class SinkRegistry:
    """Map destination kinds to factories and build destinations from configs."""

    def __init__(self) -> None:
        self._factories: dict[str, SinkFactory] = {}

    def register(self, kind: str, factory: SinkFactory) -> None:
        normalized = kind.strip().lower()
        if not normalized:
            raise SinkRegistrationError("Sink kind must not be empty")
        if normalized in self._factories:
            raise SinkRegistrationError(f"Sink kind '{normalized}' is already registered")
        self._factories[normalized] = factory

    def kinds(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, kind: object) -> bool:
        return isinstance(kind, str) and kind.strip().lower() in self._factories

    def create(self, configs: Iterable[SinkConfig | dict[str, Any]]) -> list[Sink]:
        """Instantiate every enabled destination, skipping the ones that cannot be built."""

        sinks: list[Sink] = []
        for raw in configs:
            try:
                config = raw if isinstance(raw, SinkConfig) else SinkConfig.model_validate(raw)
            except ValueError as exc:
                logger.warning("Skipping invalid sink config", extra={"error": str(exc)})
                continue

            if not config.enabled:
                logger.debug("Sink disabled", extra={"sink": config.kind})
                continue

            factory = self._factories.get(config.kind)
            if factory is None:
                logger.warning("No factory registered for sink kind", extra={"sink": config.kind})
                continue

            try:
                sinks.append(factory(config))
            except Exception as exc:
                logger.warning(
                    "Failed to construct sink",
                    extra={"sink": config.kind, "error": str(exc)},
                )
        return sinks


def default_registry(
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 15.0,
) -> SinkRegistry:
    """Return a registry holding the built-in csv, jira and notion destinations."""

    from .csv_file import CsvSink
    from .jira import JiraSink
    from .notion import NotionSink

    registry = SinkRegistry()
    registry.register("csv", CsvSink)
    registry.register("jira", lambda config: JiraSink(config, client=http_client, timeout=timeout))
    registry.register("notion", lambda config: NotionSink(config, client=http_client, timeout=timeout))
    return registry


__all__ = ["SinkFactory", "SinkRegistrationError", "SinkRegistry", "default_registry"]
