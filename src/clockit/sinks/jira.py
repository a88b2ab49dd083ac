"""Jira Cloud worklog destination."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from ..cache import TTL, Page, SuggestionItem
from ..models import ErrorCode, Result, Session, extract_issue_key
from .base import FieldKind, FieldScope, FieldSpec, SelectSpec
from .http import HttpSink, response_text

logger = logging.getLogger(__name__)

DEFAULT_WORKLOG_COMMENT = "Logged by Clockit"

_ISSUE_KEY_FORMAT = re.compile(r"^[A-Z][A-Z0-9]+-\d+$", re.IGNORECASE)
_EMAIL_FORMAT = re.compile(r".+@.+")


def _validate_domain(value: Any) -> str | None:
    if str(value or "").strip().lower().rstrip("/").endswith("atlassian.net"):
        return None
    return "Must end with atlassian.net"


def _validate_email(value: Any) -> str | None:
    return None if _EMAIL_FORMAT.match(str(value or "").strip()) else "Invalid email"


def _validate_issue_key(value: Any) -> str | None:
    return None if _ISSUE_KEY_FORMAT.match(str(value or "").strip()) else "Format like PROJ-123"


def jira_timestamp(iso_value: str) -> str:
    """Render an ISO-8601 instant as ``YYYY-MM-DDTHH:MM:SS.mmm+0000`` in UTC."""

    parsed = datetime.fromisoformat(iso_value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}+0000"


class JiraSink(HttpSink):
    """Log a session as a worklog on a Jira issue.

    Options: ``jira.domain``, ``jira.email``, ``jira.api_token`` and, per
    session, ``issue_key``.
    """

    kind = "jira"
    service_name = "Jira"

    def requirements(self) -> list[FieldSpec]:
        return [
            FieldSpec(
                key="jira.domain",
                label="Jira Domain",
                required=True,
                placeholder="your-team.atlassian.net",
                description="Your Jira Cloud hostname (no protocol).",
                validator=_validate_domain,
                setting_key="clockit.jira.domain",
            ),
            FieldSpec(
                key="jira.email",
                label="Jira Email",
                required=True,
                validator=_validate_email,
                setting_key="clockit.jira.email",
            ),
            FieldSpec(
                key="jira.api_token",
                label="Jira API Token",
                kind=FieldKind.SECRET,
                required=True,
                description="Create at https://id.atlassian.com/manage/api-tokens",
                secret_key="clockit.jira.api_token",
            ),
            FieldSpec(
                key="issue_key",
                label="Jira Issue Key",
                scope=FieldScope.RUNTIME,
                required=True,
                placeholder="PROJ-123",
                validator=_validate_issue_key,
                ui="select",
                select=SelectSpec(fetch_page=self.search_issues, allow_arbitrary=True),
                cache_ttl_seconds=TTL.MINUTE * 10,
                derive=self.issue_from_context,
            ),
        ]

    @property
    def base_url(self) -> str:
        host = re.sub(r"^https?://", "", self.option_str("jira.domain"), flags=re.IGNORECASE)
        return f"https://{host.rstrip('/')}"

    @property
    def auth(self) -> tuple[str, str]:
        return (self.option_str("jira.email"), self.option_str("jira.api_token"))

    @staticmethod
    def issue_from_context(session: Session) -> str | None:
        """Find an issue key in the session's branch name, then its comment."""

        return extract_issue_key(session.branch) or extract_issue_key(session.comment)

    def issue_for(self, session: Session) -> str | None:
        for candidate in (session.issue_key, self.option_str("issue_key")):
            if candidate and candidate.strip():
                return candidate.strip().upper()
        return self.issue_from_context(session)

    async def search_issues(self, query: str, cursor: str | None) -> Page:
        """Suggest issues through the issue picker endpoint; one page only."""

        if not self.option_str("jira.domain") or not self.option_str("jira.api_token"):
            return Page()
        try:
            async with self.http() as client:
                response = await client.get(
                    f"{self.base_url}/rest/api/3/issue/picker",
                    params={"query": query.strip(), "currentJQL": ""},
                    auth=self.auth,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.debug("Jira issue search failed", extra={"error": str(exc)})
            return Page()
        if response.status_code != 200:
            return Page()
        try:
            sections = response.json().get("sections") or []
        except ValueError:
            return Page()

        items: list[SuggestionItem] = []
        seen: set[str] = set()
        for section in sections:
            for issue in section.get("issues") or []:
                key = issue.get("key")
                if not key or key in seen:
                    continue
                seen.add(key)
                items.append(
                    SuggestionItem(
                        id=key,
                        title=f"{key} {issue.get('summaryText') or ''}".strip(),
                        description=section.get("label"),
                    )
                )
        return Page(items=items)

    def _rejection(self, response: httpx.Response, issue: str) -> Result | None:
        if response.status_code in (401, 403):
            return Result(
                ok=False,
                message=f"Jira auth failed ({response.status_code})",
                code=ErrorCode.AUTH_ERROR,
                field="jira.api_token",
                retryable=True,
                hint="Check the Jira email and API token.",
                error=RuntimeError(response_text(response)),
            )
        if response.status_code == 404:
            return Result(
                ok=False,
                message=f"Jira issue {issue} not found",
                code=ErrorCode.INVALID_FIELD,
                field="issue_key",
                retryable=True,
                error=RuntimeError(response_text(response)),
            )
        return None

    async def export(self, session: Session) -> Result:
        issue = self.issue_for(session)
        if issue is None:
            return Result(ok=True, message="Skipped: no Jira issue key")
        if _validate_issue_key(issue) is not None:
            return Result(
                ok=False,
                message=f"Invalid Jira issue key {issue!r}",
                code=ErrorCode.INVALID_FIELD,
                field="issue_key",
                retryable=True,
                hint="Use the PROJ-123 format.",
            )

        issue_url = f"{self.base_url}/rest/api/3/issue/{quote(issue, safe='')}"
        headers = {"Accept": "application/json"}
        comment = session.comment.strip() or DEFAULT_WORKLOG_COMMENT
        body = {
            "timeSpentSeconds": session.duration_seconds,
            "started": jira_timestamp(session.started_iso),
            "comment": {
                "version": 1,
                "type": "doc",
                "content": [{"type": "paragraph", "content": [{"type": "text", "text": comment}]}],
            },
        }

        try:
            async with self.http() as client:
                preflight = await client.get(
                    issue_url, params={"fields": "id,key"}, auth=self.auth, headers=headers
                )
                rejection = self._rejection(preflight, issue)
                if rejection is not None:
                    return rejection
                if preflight.is_error:
                    return self.status_error(preflight, "preflight")

                response = await client.post(
                    f"{issue_url}/worklog", json=body, auth=self.auth, headers=headers
                )
        except httpx.HTTPError as exc:
            return self.network_error(exc)

        rejection = self._rejection(response, issue)
        if rejection is not None:
            return rejection
        if response.is_error:
            return self.status_error(response)
        return Result(ok=True, message=f"Jira -> {issue}")


__all__ = ["DEFAULT_WORKLOG_COMMENT", "JiraSink", "jira_timestamp"]
