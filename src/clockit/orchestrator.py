"""Hydrate, validate and export a session across destinations."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .models import RUNTIME_SESSION_KEYS, ErrorCode, ExportStatus, Result, Session, is_empty
from .resolver import FieldResolver
from .sinks.base import FieldScope, FieldSpec, Sink

logger = logging.getLogger(__name__)

MAX_EXPORT_ATTEMPTS = 3
SKIPPED_PREFIX = "Skipped:"


def _status_for(result: Result) -> ExportStatus:
    if not result.ok:
        return ExportStatus.FAILED
    if result.message and result.message.startswith(SKIPPED_PREFIX):
        return ExportStatus.SKIPPED
    return ExportStatus.EXPORTED


class ExportOrchestrator:
    """Run each destination through requirements, hydration, validation and export.

    Destinations are processed one at a time in the order given. One result is
    returned per destination, in that same order, whatever happens to the
    others. An unconfigured destination is skipped with ``ok=True``.
    """

    def __init__(self, sinks: Sequence[Sink], resolver: FieldResolver) -> None:
        self._sinks = list(sinks)
        self._resolver = resolver

    @property
    def sinks(self) -> list[Sink]:
        return list(self._sinks)

    async def hydrate_and_export(self, session: Session) -> list[Result]:
        results: list[Result] = []
        for sink in self._sinks:
            kind = getattr(sink, "kind", None) or type(sink).__name__
            try:
                result = await self._run(sink, session)
            except Exception as exc:
                logger.warning(
                    "Sink failed unexpectedly",
                    extra={"sink": kind, "error": str(exc) or type(exc).__name__},
                )
                result = Result(
                    ok=False,
                    message=str(exc) or type(exc).__name__,
                    code=ErrorCode.UNEXPECTED,
                    error=exc,
                )
            results.append(result.annotate(kind=kind, status=_status_for(result)))
        return results

    async def _run(self, sink: Sink, session: Session) -> Result:
        specs = list(sink.requirements() or [])

        for spec in specs:
            current = self._current(sink, spec, session)
            value = await self._resolver.resolve(spec, current)
            if not is_empty(value):
                self._inject(sink, spec, value, session)

        missing = [
            spec.key
            for spec in specs
            if spec.required and is_empty(self._current(sink, spec, session))
        ]
        if missing:
            logger.info(
                "Skipping sink with missing fields",
                extra={"sink": sink.kind, "missing": missing},
            )
            return Result(
                ok=True,
                message=f"{SKIPPED_PREFIX} missing required fields ({', '.join(missing)})",
                code=ErrorCode.MISSING_FIELD,
            )

        report = sink.validate()
        if not report.ok:
            listed = ", ".join(report.missing)
            logger.info(
                "Skipping sink with invalid config",
                extra={"sink": sink.kind, "missing": report.missing},
            )
            return Result(
                ok=True,
                message=f"{SKIPPED_PREFIX} invalid config ({listed})",
                code=ErrorCode.MISSING_FIELD,
            )

        return await self._export_with_retries(sink, specs, session)

    async def _export_with_retries(self, sink: Sink, specs: list[FieldSpec], session: Session) -> Result:
        by_key = {spec.key: spec for spec in specs}
        attempt = 1
        result = await sink.export(session)

        while result.is_field_rejection and attempt < MAX_EXPORT_ATTEMPTS:
            spec = by_key.get(result.field or "")
            if spec is None:
                logger.warning(
                    "Sink rejected an unknown field",
                    extra={"sink": sink.kind, "field": result.field},
                )
                break

            logger.info(
                "Re-resolving rejected field",
                extra={"sink": sink.kind, "field": spec.key, "attempt": attempt, "code": result.code},
            )
            value = await self._resolver.resolve(spec, force=True)
            if is_empty(value):
                break
            self._inject(sink, spec, value, session)

            attempt += 1
            result = await sink.export(session)

        if not result.ok:
            logger.warning(
                "Sink export failed",
                extra={"sink": sink.kind, "attempts": attempt, "code": result.code, "field": result.field},
            )
        return result

    @staticmethod
    def _current(sink: Sink, spec: FieldSpec, session: Session) -> Any:
        value = sink.options.get(spec.key)
        if not is_empty(value):
            return value
        if spec.scope is FieldScope.RUNTIME or spec.key in RUNTIME_SESSION_KEYS:
            value = session.runtime_value(spec.key)
            if not is_empty(value):
                return value
        if spec.derive is not None:
            return spec.derive(session)
        return None

    @staticmethod
    def _inject(sink: Sink, spec: FieldSpec, value: Any, session: Session) -> None:
        if spec.scope is FieldScope.RUNTIME:
            session.apply_runtime_value(spec.key, value)
            if spec.key not in sink.options:
                return
        sink.options[spec.key] = value


__all__ = ["ExportOrchestrator", "MAX_EXPORT_ATTEMPTS", "SKIPPED_PREFIX"]
