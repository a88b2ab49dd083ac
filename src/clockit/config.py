"""Configuration management for Clockit."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class ClockitSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", validation_alias="CLOCKIT_LOG_LEVEL")
    data_dir: Path = Field(default=Path("~/.clockit"), validation_alias="CLOCKIT_DATA_DIR")
    sinks_config_path: Path = Field(
        default=Path("clockit.sinks.yaml"), validation_alias="CLOCKIT_SINKS_CONFIG"
    )
    enabled_sinks: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("csv",), validation_alias="CLOCKIT_ENABLED_SINKS"
    )
    cache_persist_path: Path | None = Field(default=None, validation_alias="CLOCKIT_CACHE_PATH")
    durable_cache: bool = Field(default=True, validation_alias="CLOCKIT_DURABLE_CACHE")
    suggestion_ttl_seconds: float = Field(
        default=86400.0, validation_alias="CLOCKIT_SUGGESTION_TTL_SECONDS"
    )
    search_debounce_ms: int = Field(default=250, validation_alias="CLOCKIT_SEARCH_DEBOUNCE_MS")
    memory_cache_max_entries: int = Field(
        default=500, validation_alias="CLOCKIT_MEMORY_CACHE_MAX_ENTRIES"
    )
    http_timeout_seconds: float = Field(default=15.0, validation_alias="CLOCKIT_HTTP_TIMEOUT_SECONDS")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "CLOCKIT_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("enabled_sinks", mode="before")
    @classmethod
    def _parse_enabled_sinks(cls, value):
        if value is None or value == "":
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(str(item).strip().lower() for item in value if str(item).strip())
        if isinstance(value, str):
            return tuple(part.strip().lower() for part in value.split(",") if part.strip())
        raise TypeError("CLOCKIT_ENABLED_SINKS must be a list or a comma-separated string")

    @field_validator("suggestion_ttl_seconds", "http_timeout_seconds")
    @classmethod
    def _validate_positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Durations must be > 0 seconds")
        return value

    @field_validator("search_debounce_ms")
    @classmethod
    def _validate_debounce(cls, value: int) -> int:
        if value < 0:
            raise ValueError("CLOCKIT_SEARCH_DEBOUNCE_MS must be >= 0")
        return value

    @field_validator("memory_cache_max_entries")
    @classmethod
    def _validate_max_entries(cls, value: int) -> int:
        if value < 1:
            raise ValueError("CLOCKIT_MEMORY_CACHE_MAX_ENTRIES must be >= 1")
        return value

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.yaml"

    @property
    def secrets_path(self) -> Path:
        return self.data_dir / "secrets.json"

    @property
    def cache_path(self) -> Path:
        return self.cache_persist_path or (self.data_dir / "cache")

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> ClockitSettings:
    """Return cached settings instance."""

    settings = ClockitSettings()
    settings.data_dir = settings.data_dir.expanduser().resolve()
    settings.sinks_config_path = settings.sinks_config_path.expanduser().resolve()
    if settings.cache_persist_path is not None:
        settings.cache_persist_path = settings.cache_persist_path.expanduser().resolve()
    return settings


__all__ = ["ClockitSettings", "get_settings"]
