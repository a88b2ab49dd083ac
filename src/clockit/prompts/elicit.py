"""Prompt surface backed by MCP client elicitation."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Sequence

from fastmcp import Context

from ..cache import SuggestionItem
from .search import SuggestionSearch
from .surface import InputRequest

logger = logging.getLogger(__name__)

LOAD_MORE = "[Load more results]"
SEARCH_AGAIN = "[Search again]"
TYPE_VALUE = "[Enter a value]"


class ElicitationPromptSurface:
    """Ask the connected MCP client for values through ``ctx.elicit``.

    Declined and cancelled elicitations both count as a cancelled prompt.
    """

    def __init__(self, context: Context) -> None:
        self._context = context

    async def _elicit(self, message: str, response_type: Any) -> Any | None:
        result = await self._context.elicit(message, response_type=response_type)
        if getattr(result, "action", None) != "accept":
            return None
        return getattr(result, "data", None)

    async def input_text(self, request: InputRequest) -> str | None:
        lines = [request.title]
        if request.prompt:
            lines.append(request.prompt)
        if request.placeholder:
            lines.append(f"Example: {request.placeholder}")
        if request.value and not request.masked:
            lines.append(f"Current value: {request.value}")
        answer = await self._elicit("\n".join(lines), str)
        if answer is None:
            return None
        return str(answer).strip() or None

    async def pick_one(self, title: str, options: Sequence[str], placeholder: str | None = None) -> str | None:
        if not options:
            return None
        message = f"{title}\n{placeholder}" if placeholder else title
        answer = await self._elicit(message, list(options))
        return str(answer) if answer is not None else None

    async def search_pick(
        self,
        search: SuggestionSearch,
        *,
        title: str,
        placeholder: str | None = None,
        allow_arbitrary: bool = False,
    ) -> SuggestionItem | str | None:
        await search.start()
        try:
            while True:
                labels = {f"{index}. {item.title}": item for index, item in enumerate(search.items, start=1)}
                choices = list(labels)
                if search.has_more:
                    choices.append(LOAD_MORE)
                choices.append(SEARCH_AGAIN)
                if allow_arbitrary:
                    choices.append(TYPE_VALUE)

                heading = f"{title} (query: {search.query})" if search.query else title
                answer = await self._elicit(heading, choices)
                if answer is None:
                    return None
                if answer in labels:
                    return labels[answer]
                if answer == LOAD_MORE:
                    await search.load_more()
                elif answer == SEARCH_AGAIN:
                    query = await self._elicit(f"{title}\nSearch for:", str)
                    if query is None:
                        return None
                    search.update_query(str(query).strip())
                    await search.settle()
                elif answer == TYPE_VALUE:
                    text = await self.input_text(InputRequest(title=title, placeholder=placeholder))
                    if text is not None:
                        return text
        finally:
            await search.aclose()

    async def show_error(self, message: str) -> None:
        log_method = getattr(self._context, "warning", None)
        if not callable(log_method):
            logger.warning(message)
            return
        outcome = log_method(message)
        if inspect.isawaitable(outcome):
            await outcome


__all__ = ["ElicitationPromptSurface"]
