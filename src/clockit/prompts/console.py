"""Terminal prompt surface."""

from __future__ import annotations

import asyncio
import getpass
from typing import Callable, Sequence

from ..cache import SuggestionItem
from .search import SuggestionSearch
from .surface import InputRequest


class ConsolePromptSurface:
    """Prompt on stdin/stdout.

    Pickers list numbered choices. In a search picker ``/text`` searches,
    ``+`` loads more, ``=text`` submits free text and an empty line cancels.
    """

    def __init__(
        self,
        *,
        reader: Callable[[str], str] = input,
        secret_reader: Callable[[str], str] = getpass.getpass,
        writer: Callable[[str], None] = print,
    ) -> None:
        self._reader = reader
        self._secret_reader = secret_reader
        self._writer = writer

    async def _read(self, prompt: str, *, masked: bool = False) -> str | None:
        reader = self._secret_reader if masked else self._reader
        try:
            return await asyncio.to_thread(reader, prompt)
        except (EOFError, KeyboardInterrupt):
            return None

    async def input_text(self, request: InputRequest) -> str | None:
        self._writer(request.title)
        if request.prompt:
            self._writer(f"  {request.prompt}")
        hint = request.placeholder or ""
        if request.value and not request.masked:
            hint = f"{hint} [{request.value}]".strip()
        answer = await self._read(f"{hint}> " if hint else "> ", masked=request.masked)
        if answer is None:
            return None
        answer = answer.strip()
        if not answer:
            return request.value if request.value and not request.masked else None
        return answer

    async def pick_one(self, title: str, options: Sequence[str], placeholder: str | None = None) -> str | None:
        self._writer(title)
        for index, option in enumerate(options, start=1):
            self._writer(f"  {index}. {option}")
        while True:
            answer = await self._read(f"{placeholder or 'Choose a number'}> ")
            if answer is None or not answer.strip():
                return None
            answer = answer.strip()
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            if answer in options:
                return answer
            self._writer("  Unknown choice")

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
                self._render(title, search, allow_arbitrary)
                answer = await self._read(f"{placeholder or 'Search'}> ")
                if answer is None or not answer.strip():
                    return None
                answer = answer.strip()

                if answer.startswith("/"):
                    search.update_query(answer[1:].strip())
                    await search.settle()
                elif answer == "+":
                    if not await search.load_more():
                        self._writer("  No more results")
                elif answer.startswith("="):
                    text = answer[1:].strip()
                    if allow_arbitrary and text:
                        return text
                    self._writer("  Pick one of the listed results")
                elif answer.isdigit() and 1 <= int(answer) <= len(search.items):
                    return search.items[int(answer) - 1]
                else:
                    self._writer("  Unknown choice")
        finally:
            await search.aclose()

    async def show_error(self, message: str) -> None:
        self._writer(f"! {message}")

    def _render(self, title: str, search: SuggestionSearch, allow_arbitrary: bool) -> None:
        heading = f"{title} (query: {search.query!r})" if search.query else title
        self._writer(heading)
        if search.error:
            self._writer(f"  search failed: {search.error}")
        if not search.items:
            self._writer("  (no results)")
        for index, item in enumerate(search.items, start=1):
            suffix = f" - {item.description}" if item.description else ""
            self._writer(f"  {index}. {item.title}{suffix}")
        commands = ["/text to search"]
        if search.has_more:
            commands.append("+ for more")
        if allow_arbitrary:
            commands.append("=text for a custom value")
        commands.append("empty line to cancel")
        self._writer("  " + ", ".join(commands))


__all__ = ["ConsolePromptSurface"]
