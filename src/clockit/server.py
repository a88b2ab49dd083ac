"""FastMCP server bootstrap for Clockit."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .cache import ChromaCache, CompositeCache
from .config import ClockitSettings, get_settings
from .runtime import ClockitRuntime, build_runtime
from .sinks import SinkConfigError
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the Clockit server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _cache_metadata(runtime: ClockitRuntime) -> dict:
    tiers = runtime.cache.tiers if isinstance(runtime.cache, CompositeCache) else [runtime.cache]
    return {
        "tiers": [type(tier).__name__ for tier in tiers],
        "durable": any(isinstance(tier, ChromaCache) for tier in tiers),
        "path": str(runtime.settings.cache_path),
        "suggestion_ttl_seconds": runtime.settings.suggestion_ttl_seconds,
    }


def create_server(
    settings: Optional[ClockitSettings] = None,
    runtime: ClockitRuntime | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with the export tools and a status resource."""

    settings = settings or get_settings()
    runtime = runtime or build_runtime(settings)
    cache_metadata = _cache_metadata(runtime)

    server = FastMCP(
        name="Clockit Export",
        version=__version__,
        instructions=(
            "Clockit exports completed work sessions to CSV, Jira and Notion. Missing "
            "credentials and fields are requested through elicitation and remembered "
            "for later exports."
        ),
    )

    handles = register_tools(server, runtime=runtime)

    @server.resource(
        "resource://clockit/status",
        name="clockit_status",
        title="Clockit Status",
        description="Provides the current runtime status for the Clockit export server.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing configuration and recent exports."""

        try:
            configs = runtime.sink_configs()
            sinks = [
                {
                    "kind": config.kind,
                    "enabled": config.enabled,
                    "registered": config.kind in runtime.registry,
                }
                for config in configs
            ]
            config_error: str | None = None
        except SinkConfigError as exc:
            sinks = []
            config_error = str(exc)

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "sinks": {
                "config_path": str(settings.sinks_config_path),
                "registered": runtime.registry.kinds(),
                "configured": sinks,
                "error": config_error,
            },
            "cache": cache_metadata,
            "exports": {
                "count": len(handles.export_history),
                "recent": handles.export_history[-5:],
            },
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "runtime", runtime)
    setattr(server, "cache_metadata", cache_metadata)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the Clockit MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching Clockit MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "durable_cache": getattr(server, "cache_metadata", {}).get("durable"),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
