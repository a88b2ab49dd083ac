"""Notion database or page destination."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from ..cache import TTL, Page, SuggestionItem
from ..models import ErrorCode, Result, Session
from .base import FieldKind, FieldSpec, SelectSpec
from .http import HttpSink, response_text

logger = logging.getLogger(__name__)

NOTION_API = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
SEARCH_PAGE_SIZE = 25
DEFAULT_PAGE_NOTE = "Logged by Clockit"

_OBJECT_ID = r"[0-9a-fA-F-]{32,36}"
_DESTINATION_FORMAT = re.compile(rf"^((database|page):)?{_OBJECT_ID}$")
_TYPED_DESTINATION = re.compile(r"^(database|page):(.+)$", re.IGNORECASE)


def _validate_destination(value: Any) -> str | None:
    if _DESTINATION_FORMAT.match(str(value or "").strip()):
        return None
    return "Pick a Notion database or page"


def _rich_text(content: str | None) -> list[dict[str, Any]]:
    if not content:
        return []
    return [{"type": "text", "text": {"content": content}}]


def _plain_title(fragments: list[dict[str, Any]] | None) -> str | None:
    for fragment in fragments or []:
        text = fragment.get("plain_text") or (fragment.get("text") or {}).get("content")
        if text:
            return text
    return None


def _result_title(result: dict[str, Any]) -> str:
    if result.get("object") == "database":
        return _plain_title(result.get("title")) or "Untitled Database"
    for prop in (result.get("properties") or {}).values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return _plain_title(prop.get("title")) or "Untitled"
    return "Untitled"


class NotionSink(HttpSink):
    """Create a database row or append a paragraph to a page.

    ``notion.destination`` holds ``database:<id>`` or ``page:<id>``; a bare id
    is treated as a database.
    """

    kind = "notion"
    service_name = "Notion"

    def requirements(self) -> list[FieldSpec]:
        return [
            FieldSpec(
                key="notion.api_token",
                label="Notion API Token",
                kind=FieldKind.SECRET,
                required=True,
                description="Create a Notion internal integration and paste its token.",
                secret_key="clockit.notion.api_token",
            ),
            FieldSpec(
                key="notion.destination",
                label="Notion Destination (Database or Page)",
                required=True,
                placeholder="Search your Notion workspace...",
                validator=_validate_destination,
                ui="select",
                select=SelectSpec(fetch_page=self.search_destinations, allow_arbitrary=False),
                setting_key="clockit.notion.destination",
                cache_ttl_seconds=TTL.HOUR,
            ),
        ]

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.option_str('notion.api_token')}",
            "Notion-Version": NOTION_VERSION,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def destination(self) -> tuple[str, str] | None:
        raw = self.option_str("notion.destination")
        if not raw:
            return None
        typed = _TYPED_DESTINATION.match(raw)
        if typed:
            return typed.group(1).lower(), typed.group(2)
        if re.fullmatch(_OBJECT_ID, raw):
            return "database", raw
        return None

    async def search_destinations(self, query: str, cursor: str | None) -> Page:
        """One page of ``/v1/search`` results as ``database:<id>``/``page:<id>`` items."""

        body: dict[str, Any] = {"page_size": SEARCH_PAGE_SIZE}
        if query.strip():
            body["query"] = query.strip()
        if cursor:
            body["start_cursor"] = cursor

        try:
            async with self.http() as client:
                response = await client.post(f"{NOTION_API}/search", headers=self.headers, json=body)
        except httpx.HTTPError as exc:
            logger.debug("Notion search failed", extra={"error": str(exc)})
            return Page()
        if response.status_code != 200:
            return Page()
        try:
            data = response.json()
        except ValueError:
            return Page()

        items = []
        for result in data.get("results") or []:
            kind = result.get("object")
            if kind not in ("database", "page"):
                continue
            items.append(
                SuggestionItem(
                    id=f"{kind}:{result.get('id')}",
                    title=_result_title(result),
                    description="Database" if kind == "database" else "Page",
                    raw=result,
                )
            )
        next_cursor = data.get("next_cursor") if data.get("has_more", True) else None
        return Page(items=items, next_cursor=next_cursor)

    def _rejection(self, response: httpx.Response, missing_message: str) -> Result | None:
        if response.status_code in (401, 403):
            return Result(
                ok=False,
                message=f"Notion auth failed ({response.status_code})",
                code=ErrorCode.AUTH_ERROR,
                field="notion.api_token",
                retryable=True,
                error=RuntimeError(response_text(response)),
            )
        if response.status_code == 404:
            return Result(
                ok=False,
                message=missing_message,
                code=ErrorCode.INVALID_FIELD,
                field="notion.destination",
                retryable=True,
                hint="Share the database or page with the integration.",
                error=RuntimeError(response_text(response)),
            )
        return None

    async def export(self, session: Session) -> Result:
        if not self.option_str("notion.api_token"):
            return Result(
                ok=False,
                message="Missing Notion API token",
                code=ErrorCode.MISSING_FIELD,
                field="notion.api_token",
                retryable=True,
            )
        destination = self.destination()
        if destination is None:
            return Result(
                ok=False,
                message="Missing Notion destination",
                code=ErrorCode.MISSING_FIELD,
                field="notion.destination",
                retryable=True,
            )

        kind, object_id = destination
        try:
            async with self.http() as client:
                if kind == "database":
                    return await self._create_row(client, object_id, session)
                return await self._append_to_page(client, object_id, session)
        except httpx.HTTPError as exc:
            return self.network_error(exc)

    async def _create_row(self, client: httpx.AsyncClient, database_id: str, session: Session) -> Result:
        schema = await client.get(f"{NOTION_API}/databases/{database_id}", headers=self.headers)
        rejection = self._rejection(schema, "Database not found or inaccessible")
        if rejection is not None:
            return rejection
        if schema.is_error:
            return self.status_error(schema, "preflight")

        try:
            schema_properties = schema.json().get("properties") or {}
        except ValueError:
            schema_properties = {}
        title_property = "Name"
        for name, prop in schema_properties.items():
            if isinstance(prop, dict) and prop.get("type") == "title":
                title_property = name
                break

        comment = session.comment.strip()
        title = comment or session.issue_key or (
            f"{session.started_iso} ({round(session.duration_seconds / 60)}m)"
        )
        properties: dict[str, Any] = {
            title_property: {"title": _rich_text(title)},
            "Duration": {"number": session.duration_seconds},
            "Started": {"date": {"start": session.started_iso}},
            "Ended": {"date": {"start": session.ended_iso}},
            "Workspace": {"rich_text": _rich_text(session.workspace)},
            "Repo": {"rich_text": _rich_text(session.repo_path)},
            "Branch": {"rich_text": _rich_text(session.branch)},
            "IssueKey": {"rich_text": _rich_text(session.issue_key)},
        }
        body: dict[str, Any] = {"parent": {"database_id": database_id}, "properties": properties}
        if comment:
            body["children"] = [
                {"object": "block", "type": "paragraph", "paragraph": {"rich_text": _rich_text(comment)}}
            ]

        response = await client.post(f"{NOTION_API}/pages", headers=self.headers, json=body)
        rejection = self._rejection(response, "Database not found")
        if rejection is not None:
            return rejection
        if response.is_error:
            return self.status_error(response)
        return Result(ok=True, message="Notion -> page created")

    async def _append_to_page(self, client: httpx.AsyncClient, page_id: str, session: Session) -> Result:
        preflight = await client.get(f"{NOTION_API}/pages/{page_id}", headers=self.headers)
        rejection = self._rejection(preflight, "Page not found")
        if rejection is not None:
            return rejection
        if preflight.is_error:
            return self.status_error(preflight, "preflight")

        parts = [
            f"[{session.issue_key}] " if session.issue_key else "",
            session.comment.strip() or DEFAULT_PAGE_NOTE,
            f" • {round(session.duration_seconds / 60)}m",
            f" • {session.branch}" if session.branch else "",
        ]
        block = {"object": "block", "type": "paragraph", "paragraph": {"rich_text": _rich_text("".join(parts))}}

        response = await client.patch(
            f"{NOTION_API}/blocks/{page_id}/children", headers=self.headers, json={"children": [block]}
        )
        rejection = self._rejection(response, "Page not found")
        if rejection is not None:
            return rejection
        if response.is_error:
            return self.status_error(response)
        return Result(ok=True, message="Notion -> appended to page")


__all__ = ["NOTION_VERSION", "NotionSink"]
