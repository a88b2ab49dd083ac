"""Core data models shared by the export pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ISSUE_KEY_PATTERN = re.compile(r"[A-Z][A-Z0-9]+-\d+", re.IGNORECASE)

RUNTIME_SESSION_KEYS = frozenset({"issue_key", "comment", "branch", "repo_path", "workspace"})


def is_empty(value: Any) -> bool:
    """Return True for None or a string that is empty or whitespace-only."""

    return value is None or (isinstance(value, str) and value.strip() == "")


def extract_issue_key(text: str | None) -> str | None:
    """Return the first ``PROJ-123`` style key found in ``text``, upper-cased."""

    if not text:
        return None
    match = _ISSUE_KEY_PATTERN.search(str(text))
    return match.group(0).upper() if match else None


class ErrorCode(str, Enum):
    """Classification of export failures."""

    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"
    AUTH_ERROR = "auth_error"
    NETWORK_ERROR = "network_error"
    UNEXPECTED = "unexpected"


class ExportStatus(str, Enum):
    """Terminal state of one destination within an export run."""

    EXPORTED = "exported"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class Result:
    """Outcome reported by a destination, annotated by the orchestrator."""

    ok: bool
    message: str | None = None
    code: ErrorCode | None = None
    field: str | None = None
    retryable: bool = False
    hint: str | None = None
    error: BaseException | None = None
    kind: str | None = None
    status: ExportStatus | None = None

    @property
    def is_field_rejection(self) -> bool:
        return not self.ok and self.retryable and not is_empty(self.field)

    def annotate(self, *, kind: str, status: ExportStatus) -> Result:
        return replace(self, kind=kind, status=status)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "ok": self.ok}
        if self.status is not None:
            payload["status"] = self.status.value
        if self.message is not None:
            payload["message"] = self.message
        if self.code is not None:
            payload["code"] = self.code.value
        if self.field is not None:
            payload["field"] = self.field
        if self.retryable:
            payload["retryable"] = True
        if self.hint is not None:
            payload["hint"] = self.hint
        if self.error is not None:
            payload["error"] = str(self.error) or type(self.error).__name__
        return payload


class Session(BaseModel):
    """One tracked work interval handed over for export.

    The record is treated as read-only by destinations, except that runtime
    field values resolved during an export run are written back through
    :meth:`apply_runtime_value` so later destinations can reuse them.
    """

    model_config = ConfigDict(validate_assignment=True)

    started_iso: str
    ended_iso: str
    duration_seconds: int = Field(..., ge=0)
    workspace: str | None = None
    repo_path: str | None = None
    branch: str | None = None
    issue_key: str | None = None
    comment: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("comment", mode="before")
    @classmethod
    def _coerce_comment(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("started_iso", "ended_iso")
    @classmethod
    def _require_iso(cls, value: str) -> str:
        if _parse_iso(value) is None:
            raise ValueError(f"Not an ISO-8601 timestamp: {value!r}")
        return value

    @model_validator(mode="after")
    def _check_interval(self) -> Session:
        started = _parse_iso(self.started_iso)
        ended = _parse_iso(self.ended_iso)
        if started is None or ended is None:
            return self
        if (started.tzinfo is None) == (ended.tzinfo is None) and ended < started:
            raise ValueError("ended_iso must not be earlier than started_iso")
        return self

    def runtime_value(self, key: str) -> Any:
        if key in RUNTIME_SESSION_KEYS:
            return getattr(self, key)
        return self.metadata.get(key)

    def apply_runtime_value(self, key: str, value: Any) -> None:
        if key in RUNTIME_SESSION_KEYS:
            setattr(self, key, value)
        else:
            self.metadata[key] = value


class SinkConfig(BaseModel):
    """Configuration entry for one export destination."""

    kind: str = Field(..., description="Registry key of the destination, e.g. 'jira'.")
    label: str | None = Field(default=None, description="User-facing name.")
    enabled: bool = Field(default=True, description="Whether the destination is instantiated.")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Destination option bag, hydrated with resolved field values.",
    )

    @field_validator("kind")
    @classmethod
    def _normalize_kind(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("Sink kind must not be empty")
        return normalized

    @field_validator("options", mode="before")
    @classmethod
    def _ensure_options(cls, value: Any):  # type: ignore[override]
        if value is None:
            return {}
        return value


def _parse_iso(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed


__all__ = [
    "ErrorCode",
    "ExportStatus",
    "RUNTIME_SESSION_KEYS",
    "Result",
    "Session",
    "SinkConfig",
    "extract_issue_key",
    "is_empty",
]
