"""Interactive prompting for field resolution."""

from .console import ConsolePromptSurface
from .elicit import ElicitationPromptSurface
from .search import DEFAULT_DEBOUNCE_SECONDS, SearchSnapshot, SuggestionSearch
from .surface import InputRequest, NullPromptSurface, PromptSurface

__all__ = [
    "ConsolePromptSurface",
    "DEFAULT_DEBOUNCE_SECONDS",
    "ElicitationPromptSurface",
    "InputRequest",
    "NullPromptSurface",
    "PromptSurface",
    "SearchSnapshot",
    "SuggestionSearch",
]
