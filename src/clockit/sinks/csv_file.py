"""Append sessions to a local CSV log."""

from __future__ import annotations

import asyncio
import csv
import io
from pathlib import Path

from ..models import ErrorCode, Result, Session
from .base import BaseSink

CSV_COLUMNS = (
    "started_iso",
    "ended_iso",
    "duration_seconds",
    "workspace",
    "repo_path",
    "branch",
    "issue_key",
    "comment",
)

DEFAULT_DIRECTORY = "~/.clockit"
DEFAULT_FILENAME = "time_log.csv"


class CsvSink(BaseSink):
    """One row per session in ``<output_directory>/<filename>``.

    Options: ``output_directory``, ``filename``, ``add_header_if_missing``
    (default true) and ``ensure_directory`` (default true).
    """

    kind = "csv"

    @property
    def path(self) -> Path:
        directory = self.option_str("output_directory") or DEFAULT_DIRECTORY
        filename = self.option_str("filename") or DEFAULT_FILENAME
        return Path(directory).expanduser() / filename

    def _flag(self, key: str) -> bool:
        value = self.options.get(key)
        if value is None:
            return True
        if isinstance(value, str):
            return value.strip().lower() not in {"0", "false", "no", "off"}
        return bool(value)

    async def export(self, session: Session) -> Result:
        path = self.path
        try:
            await asyncio.to_thread(self._append, path, session)
        except FileNotFoundError as exc:
            return Result(
                ok=False,
                message=f"CSV directory not available: {path.parent}",
                code=ErrorCode.INVALID_FIELD,
                error=exc,
            )
        except OSError as exc:
            return Result(ok=False, message=f"Failed to write {path}", error=exc)
        return Result(ok=True, message=f"CSV -> {path}")

    def _append(self, path: Path, session: Session) -> None:
        if self._flag("ensure_directory"):
            path.parent.mkdir(parents=True, exist_ok=True)
        elif not path.parent.is_dir():
            raise FileNotFoundError(str(path.parent))

        write_header = not path.exists() and self._flag("add_header_if_missing")
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        if write_header:
            writer.writerow(CSV_COLUMNS)
        row = [getattr(session, column) for column in CSV_COLUMNS]
        writer.writerow(["" if value is None else value for value in row])
        with path.open("a", encoding="utf-8", newline="") as handle:
            handle.write(buffer.getvalue())


__all__ = ["CSV_COLUMNS", "CsvSink"]
