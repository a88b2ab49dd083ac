"""Destination configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import yaml
from pydantic import ValidationError

from ..models import SinkConfig


class SinkConfigError(RuntimeError):
    """Raised when the destination configuration file cannot be used."""


def load_sink_configs(path: Path) -> list[SinkConfig]:
    """Load ``{sinks: [...]}`` from a YAML file.

    Every entry is validated; problems are collected and reported together.
    A missing or empty file yields an empty list.
    """

    path = Path(path)
    if not path.exists():
        return []

    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise SinkConfigError(f"Failed to parse YAML in {path}: {exc}") from exc

    if document is None:
        return []
    if not isinstance(document, dict):
        raise SinkConfigError(f"Sink config {path} must be a mapping with a 'sinks' list")

    entries = document.get("sinks") or []
    if not isinstance(entries, list):
        raise SinkConfigError(f"'sinks' in {path} must be a list")

    configs: list[SinkConfig] = []
    errors: list[str] = []
    for index, entry in enumerate(entries):
        try:
            configs.append(SinkConfig.model_validate(entry))
        except ValidationError as exc:
            errors.append(f"Sink #{index} in {path}: {exc}")

    if errors:
        raise SinkConfigError("; ".join(errors))
    return configs


def default_sink_configs(enabled_kinds: Iterable[str]) -> list[SinkConfig]:
    """One enabled config with empty options per listed kind."""

    seen: set[str] = set()
    configs: list[SinkConfig] = []
    for kind in enabled_kinds:
        config = SinkConfig(kind=kind)
        if config.kind in seen:
            continue
        seen.add(config.kind)
        configs.append(config)
    return configs


__all__ = ["SinkConfigError", "default_sink_configs", "load_sink_configs"]
