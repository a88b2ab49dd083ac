"""Shared plumbing for destinations that talk HTTP."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from ..models import ErrorCode, Result, SinkConfig
from .base import BaseSink


class HttpSink(BaseSink):
    """Destination using an injected ``httpx.AsyncClient`` or a per-call one."""

    service_name = "HTTP"

    def __init__(
        self,
        config: SinkConfig,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        super().__init__(config)
        self._client = client
        self._timeout = timeout

    @asynccontextmanager
    async def http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    def network_error(self, exc: Exception, stage: str | None = None) -> Result:
        suffix = f" ({stage})" if stage else ""
        return Result(
            ok=False,
            message=f"Network error calling {self.service_name}{suffix}",
            code=ErrorCode.NETWORK_ERROR,
            error=exc,
        )

    def status_error(self, response: httpx.Response, stage: str | None = None) -> Result:
        suffix = f" ({stage})" if stage else ""
        return Result(
            ok=False,
            message=f"{self.service_name} {response.status_code}{suffix}",
            code=ErrorCode.UNEXPECTED,
            error=RuntimeError(response_text(response) or f"HTTP {response.status_code}"),
        )


def response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (httpx.HTTPError, UnicodeDecodeError):
        return ""


__all__ = ["HttpSink", "response_text"]
