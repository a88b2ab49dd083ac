"""Destination contract and field requirement declarations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Literal, Protocol

from ..cache import Page
from ..models import Result, Session, SinkConfig, is_empty

DEFAULT_SECRET_PREFIX = "clockit"

Validator = Callable[[Any], "str | None"]
PersistPolicy = Literal["secret", "settings", "memory"]


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SECRET = "secret"


class FieldScope(str, Enum):
    SETUP = "setup"
    RUNTIME = "runtime"


@dataclass(slots=True)
class StaticOption:
    label: str
    value: str
    description: str | None = None


@dataclass(slots=True)
class SelectSpec:
    """How a ``select``-mode field offers choices."""

    fetch_page: Callable[[str, "str | None"], Awaitable[Page]] | None = None
    static_options: list[StaticOption] = field(default_factory=list)
    allow_arbitrary: bool = False


@dataclass(slots=True)
class FieldSpec:
    """A value a destination needs, with how to validate and persist it.

    Secrets always live in the secret store, under ``secret_key`` or
    ``clockit.<key>``. Non-secret setup fields must name a settings key
    (or opt into ``implicit_setting``) unless they are memory-only.
    ``derive`` computes a fallback current value from the session when
    neither the options nor the session carry one.
    """

    key: str
    label: str
    kind: FieldKind = FieldKind.STRING
    scope: FieldScope = FieldScope.SETUP
    required: bool = False
    placeholder: str | None = None
    description: str | None = None
    default: Any = None
    validator: Validator | None = None
    ui: Literal["input", "select"] = "input"
    select: SelectSpec | None = None
    setting_key: str | None = None
    secret_key: str | None = None
    persist: PersistPolicy | None = None
    implicit_setting: bool = False
    cache_ttl_seconds: float | None = None
    derive: Callable[[Session], Any] | None = None

    def __post_init__(self) -> None:
        self.kind = FieldKind(self.kind)
        self.scope = FieldScope(self.scope)
        if not self.key.strip():
            raise ValueError("FieldSpec key must not be empty")
        if self.ui == "select" and self.select is None:
            raise ValueError(f"Field '{self.key}' uses select UI without a SelectSpec")
        if self.kind is FieldKind.SECRET and self.persist == "settings":
            raise ValueError(f"Secret field '{self.key}' cannot be persisted to settings")
        if (
            self.scope is FieldScope.SETUP
            and self.kind is not FieldKind.SECRET
            and self.persist != "memory"
            and self.settings_key is None
        ):
            raise ValueError(
                f"Setup field '{self.key}' needs a setting_key or persist='memory'"
            )

    @property
    def is_secret(self) -> bool:
        return self.kind is FieldKind.SECRET

    @property
    def memory_only(self) -> bool:
        if self.persist == "memory":
            return True
        return not self.is_secret and self.settings_key is None

    @property
    def settings_key(self) -> str | None:
        if self.is_secret:
            return None
        if self.setting_key:
            return self.setting_key
        return self.key if self.implicit_setting else None

    def secret_store_key(self, prefix: str = DEFAULT_SECRET_PREFIX) -> str:
        return self.secret_key or f"{prefix}.{self.key}"

    def check(self, value: Any) -> str | None:
        """Return the validator's message for ``value``, or ``None`` when valid."""

        if self.validator is None:
            return None
        return self.validator(value)


@dataclass(slots=True)
class ValidationReport:
    ok: bool
    missing: list[str] = field(default_factory=list)


class Sink(Protocol):
    """What the orchestrator needs from every export destination."""

    kind: str
    options: dict[str, Any]

    def requirements(self) -> list[FieldSpec]:
        ...

    def validate(self) -> ValidationReport:
        ...

    async def export(self, session: Session) -> Result:
        ...


class BaseSink(ABC):
    """Common plumbing for destinations built from a :class:`SinkConfig`.

    Idempotency of ``export`` is the destination's responsibility.
    """

    kind: str = ""

    def __init__(self, config: SinkConfig) -> None:
        self.kind = self.kind or config.kind
        self.label = config.label or self.kind
        self.options: dict[str, Any] = dict(config.options)

    def requirements(self) -> list[FieldSpec]:
        return []

    def validate(self) -> ValidationReport:
        missing = [
            spec.key
            for spec in self.requirements()
            if spec.required and spec.scope is FieldScope.SETUP and is_empty(self.options.get(spec.key))
        ]
        return ValidationReport(ok=not missing, missing=missing)

    @abstractmethod
    async def export(self, session: Session) -> Result:
        """Push one session to the destination."""

    def option_str(self, key: str) -> str:
        value = self.options.get(key)
        return "" if value is None else str(value).strip()


__all__ = [
    "BaseSink",
    "DEFAULT_SECRET_PREFIX",
    "FieldKind",
    "FieldScope",
    "FieldSpec",
    "PersistPolicy",
    "SelectSpec",
    "Sink",
    "StaticOption",
    "ValidationReport",
    "Validator",
]
