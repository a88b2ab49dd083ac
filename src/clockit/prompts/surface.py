"""Interactive prompt surface contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Sequence

from ..cache import SuggestionItem

if TYPE_CHECKING:
    from .search import SuggestionSearch


@dataclass(slots=True)
class InputRequest:
    title: str
    prompt: str | None = None
    placeholder: str | None = None
    value: str | None = None
    masked: bool = False


class PromptSurface(Protocol):
    """Where the user is asked for values. ``None`` from any call means cancelled."""

    async def input_text(self, request: InputRequest) -> str | None:
        ...

    async def pick_one(
        self,
        title: str,
        options: Sequence[str],
        placeholder: str | None = None,
    ) -> str | None:
        ...

    async def search_pick(
        self,
        search: SuggestionSearch,
        *,
        title: str,
        placeholder: str | None = None,
        allow_arbitrary: bool = False,
    ) -> SuggestionItem | str | None:
        ...

    async def show_error(self, message: str) -> None:
        ...


class NullPromptSurface:
    """Non-interactive surface: every prompt is cancelled."""

    def __init__(self) -> None:
        self.errors: list[str] = []

    async def input_text(self, request: InputRequest) -> str | None:
        return None

    async def pick_one(self, title: str, options: Sequence[str], placeholder: str | None = None) -> str | None:
        return None

    async def search_pick(
        self,
        search: SuggestionSearch,
        *,
        title: str,
        placeholder: str | None = None,
        allow_arbitrary: bool = False,
    ) -> SuggestionItem | str | None:
        return None

    async def show_error(self, message: str) -> None:
        self.errors.append(message)


__all__ = ["InputRequest", "NullPromptSurface", "PromptSurface"]
