"""Tool registration for the Clockit MCP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastmcp import Context, FastMCP
from pydantic import ValidationError

from ..models import ExportStatus, Session
from ..prompts import ElicitationPromptSurface, NullPromptSurface, PromptSurface
from ..runtime import SUGGESTION_NAMESPACE, ClockitRuntime

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolHandles:
    export_session: Any
    list_sinks: Any
    clear_credentials: Any
    invalidate_cache: Any
    export_history: list[dict[str, Any]]


def _prompts_for(context: Context | None) -> PromptSurface:
    if context is None:
        return NullPromptSurface()
    return ElicitationPromptSurface(context)


def register_tools(server: FastMCP, *, runtime: ClockitRuntime) -> ToolHandles:
    """Register Clockit's MCP tools on the server."""

    export_history: list[dict[str, Any]] = []

    async def _export_session(
        session: dict[str, Any],
        sinks: list[str] | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Export one completed session to the configured destinations."""

        try:
            record = Session.model_validate(session)
        except ValidationError as exc:
            raise ValueError(f"Invalid session payload: {exc}") from exc

        orchestrator = runtime.orchestrator(_prompts_for(context), kinds=sinks)
        results = await orchestrator.hydrate_and_export(record)

        counts = {status.value: 0 for status in ExportStatus}
        for result in results:
            if result.status is not None:
                counts[result.status.value] += 1

        summary = {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "ok": all(result.ok for result in results),
            "counts": counts,
            "results": [result.to_dict() for result in results],
        }
        export_history.append(summary)
        del export_history[:-20]

        _emit_log(
            context,
            "info",
            "Exported session",
            extra={"sinks": [result.kind for result in results], **counts},
        )
        return {**summary, "session": record.model_dump()}

    async def _list_sinks(context: Context | None = None) -> list[dict[str, Any]]:
        """Describe configured destinations and whether their setup values are stored."""

        resolver = runtime.resolver(NullPromptSurface())
        catalog: list[dict[str, Any]] = []
        for config in runtime.sink_configs():
            entry: dict[str, Any] = {
                "kind": config.kind,
                "label": config.label or config.kind,
                "enabled": config.enabled,
                "registered": config.kind in runtime.registry,
                "requirements": [],
            }
            built = runtime.registry.create([config.model_copy(update={"enabled": True})])
            if built:
                for spec in built[0].requirements():
                    entry["requirements"].append(
                        {
                            "key": spec.key,
                            "label": spec.label,
                            "kind": spec.kind.value,
                            "scope": spec.scope.value,
                            "required": spec.required,
                            "stored": await resolver.read_stored(spec) is not None,
                        }
                    )
            catalog.append(entry)

        _emit_log(context, "debug", "Listing sinks", extra={"count": len(catalog)})
        return catalog

    async def _clear_credentials(kind: str | None = None, context: Context | None = None) -> dict[str, Any]:
        """Forget stored credentials for one destination kind, or all of them."""

        manager = runtime.credentials(NullPromptSurface())
        removed = await manager.clear(kind)
        _emit_log(
            context,
            "warning",
            "Cleared credentials",
            extra={"sink": kind or "all", "removed": len(removed)},
        )
        return {"kind": kind or "all", "removed": removed}

    def _invalidate_cache(
        namespace: str = SUGGESTION_NAMESPACE,
        key: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Drop cached suggestion pages."""

        removed = runtime.cache.invalidate(namespace, key)
        _emit_log(
            context,
            "info",
            "Invalidated cache",
            extra={"namespace": namespace, "key": key, "removed": removed},
        )
        return {"namespace": namespace, "key": key, "removed": removed}

    tool_export = server.tool(
        name="export_session",
        description=(
            "Export a completed work session to the configured destinations, asking for "
            "missing credentials or fields through elicitation."
        ),
    )(_export_session)

    tool_list = server.tool(
        name="list_sinks",
        description="List configured export destinations and their field requirements.",
    )(_list_sinks)

    tool_clear = server.tool(
        name="clear_credentials",
        description="Remove stored credentials for one destination kind, or for all destinations.",
    )(_clear_credentials)

    tool_invalidate = server.tool(
        name="invalidate_cache",
        description="Invalidate cached suggestion pages for a namespace or a single key.",
    )(_invalidate_cache)

    return ToolHandles(
        export_session=tool_export,
        list_sinks=tool_list,
        clear_credentials=tool_clear,
        invalidate_cache=tool_invalidate,
        export_history=export_history,
    )


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)


__all__ = ["ToolHandles", "register_tools"]
