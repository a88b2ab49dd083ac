"""Clockit operator CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from pydantic import ValidationError

from clockit.config import ClockitSettings, get_settings
from clockit.models import Session
from clockit.prompts import ConsolePromptSurface
from clockit.runtime import SUGGESTION_NAMESPACE, ClockitRuntime, build_runtime
from clockit.sinks import SinkConfigError
from clockit.storage import StoreError


def load_runtime(settings: ClockitSettings) -> ClockitRuntime:
    return build_runtime(settings)


def load_session(path: str) -> Session:
    source = Path(path)
    try:
        document = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print(f"Cannot read session from {source}: {exc}")
        raise SystemExit(1)
    try:
        return Session.model_validate(document)
    except ValidationError as exc:
        print(f"Invalid session in {source}: {exc}")
        raise SystemExit(1)


def cmd_export(args: argparse.Namespace) -> None:
    session = load_session(args.session)
    runtime = load_runtime(get_settings())
    try:
        orchestrator = runtime.orchestrator(ConsolePromptSurface(), kinds=args.sink or None)
    except SinkConfigError as exc:
        print(f"Sink config error: {exc}")
        raise SystemExit(1)

    results = asyncio.run(orchestrator.hydrate_and_export(session))
    if args.json:
        print(json.dumps([result.to_dict() for result in results], indent=2))
    else:
        for result in results:
            status = result.status.value if result.status else ("ok" if result.ok else "failed")
            print(f"{result.kind} [{status}] {result.message or ''}".rstrip())
    if not all(result.ok for result in results):
        raise SystemExit(2)


def cmd_sinks(args: argparse.Namespace) -> None:
    runtime = load_runtime(get_settings())
    try:
        configs = runtime.sink_configs()
    except SinkConfigError as exc:
        print(f"Sink config error: {exc}")
        raise SystemExit(1)
    payload = [
        {
            "kind": config.kind,
            "label": config.label or config.kind,
            "enabled": config.enabled,
            "registered": config.kind in runtime.registry,
        }
        for config in configs
    ]
    print(json.dumps({"registered": runtime.registry.kinds(), "configured": payload}, indent=2))


def cmd_credentials_edit(args: argparse.Namespace) -> None:
    runtime = load_runtime(get_settings())
    manager = runtime.credentials(ConsolePromptSurface())
    try:
        outcome = asyncio.run(manager.edit(args.kind))
    except ValueError as exc:
        print(str(exc))
        raise SystemExit(1)
    if outcome.cancelled:
        print(f"Edit cancelled; saved: {', '.join(outcome.saved) or 'nothing'}")
        raise SystemExit(1)
    print(f"Saved credentials for {args.kind}: {', '.join(outcome.saved)}")


def cmd_credentials_clear(args: argparse.Namespace) -> None:
    runtime = load_runtime(get_settings())
    manager = runtime.credentials(ConsolePromptSurface())
    try:
        removed = asyncio.run(manager.clear(args.kind))
    except (ValueError, StoreError) as exc:
        print(str(exc))
        raise SystemExit(1)
    print(json.dumps({"kind": args.kind or "all", "removed": removed}, indent=2))


def cmd_cache_clear(args: argparse.Namespace) -> None:
    runtime = load_runtime(get_settings())
    removed = runtime.cache.invalidate(args.namespace)
    print(json.dumps({"namespace": args.namespace, "removed": removed}, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clockit export tools")
    sub = parser.add_subparsers(dest="cmd")

    p_export = sub.add_parser("export", help="Export a session JSON file")
    p_export.add_argument("session", help="Path to a session JSON document")
    p_export.add_argument(
        "--sink", action="append", help="Only export to this sink kind (repeatable)"
    )
    p_export.add_argument("--json", action="store_true", help="Output JSON")
    p_export.set_defaults(func=cmd_export)

    p_sinks = sub.add_parser("sinks", help="List configured sinks")
    p_sinks.set_defaults(func=cmd_sinks)

    p_credentials = sub.add_parser("credentials", help="Edit or clear stored credentials")
    credentials_sub = p_credentials.add_subparsers(dest="credentials_cmd")
    p_edit = credentials_sub.add_parser("edit", help="Re-enter setup values for a sink kind")
    p_edit.add_argument("kind")
    p_edit.set_defaults(func=cmd_credentials_edit)
    p_clear = credentials_sub.add_parser("clear", help="Forget stored setup values")
    p_clear.add_argument("kind", nargs="?", help="Sink kind; all sinks when omitted")
    p_clear.set_defaults(func=cmd_credentials_clear)

    p_cache = sub.add_parser("cache", help="Suggestion cache maintenance")
    cache_sub = p_cache.add_subparsers(dest="cache_cmd")
    p_cache_clear = cache_sub.add_parser("clear", help="Invalidate a cache namespace")
    p_cache_clear.add_argument("--namespace", default=SUGGESTION_NAMESPACE)
    p_cache_clear.set_defaults(func=cmd_cache_clear)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
