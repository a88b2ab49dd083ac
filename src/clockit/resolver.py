"""Resolve destination field requirements to concrete values."""

from __future__ import annotations

import logging
from typing import Any

from .cache import CachedFetcher, SuggestionItem
from .models import is_empty
from .prompts import DEFAULT_DEBOUNCE_SECONDS, InputRequest, PromptSurface, SuggestionSearch
from .sinks.base import DEFAULT_SECRET_PREFIX, FieldKind, FieldSpec
from .storage import SecretStore, SettingsStore

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

_YES = "Yes"
_NO = "No"
_OTHER = "Other..."


class FieldResolver:
    """Turn a :class:`FieldSpec` into a value or ``None``.

    Order: the caller's current value, then the persisted value, then (for
    required fields only) an interactive prompt validated up to
    ``MAX_ATTEMPTS`` times. Prompted values are persisted unless the field is
    memory-only. ``force=True`` skips the current and persisted values and
    always prompts; it is used when a destination rejected the stored value.
    """

    def __init__(
        self,
        *,
        secrets: SecretStore,
        settings: SettingsStore,
        prompts: PromptSurface,
        fetcher: CachedFetcher | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        secret_prefix: str = DEFAULT_SECRET_PREFIX,
    ) -> None:
        self._secrets = secrets
        self._settings = settings
        self._prompts = prompts
        self._fetcher = fetcher
        self._debounce_seconds = debounce_seconds
        self._secret_prefix = secret_prefix

    @property
    def prompts(self) -> PromptSurface:
        return self._prompts

    async def resolve(self, spec: FieldSpec, current: Any = None, *, force: bool = False) -> Any | None:
        if not force:
            if not is_empty(current):
                return current

            stored = await self.read_stored(spec)
            if not is_empty(stored):
                return stored

            if not spec.required:
                return None

        value = await self._prompt_with_validation(spec)
        if is_empty(value):
            logger.debug("Field left unresolved", extra={"field": spec.key})
            return None

        await self.persist(spec, value)
        return value

    async def read_stored(self, spec: FieldSpec) -> Any | None:
        if spec.is_secret:
            value = await self._secrets.get(spec.secret_store_key(self._secret_prefix))
            return None if is_empty(value) else value
        if spec.settings_key is not None:
            value = await self._settings.get(spec.settings_key)
            return None if is_empty(value) else value
        return None

    async def persist(self, spec: FieldSpec, value: Any) -> None:
        if spec.is_secret:
            if spec.persist == "memory":
                return
            await self._secrets.set(spec.secret_store_key(self._secret_prefix), str(value))
            logger.debug("Stored secret", extra={"field": spec.key})
            return
        if spec.memory_only or spec.settings_key is None:
            return
        await self._settings.update(spec.settings_key, value)
        logger.debug("Stored setting", extra={"field": spec.key, "setting_key": spec.settings_key})

    async def forget(self, spec: FieldSpec) -> bool:
        """Remove the persisted value of ``spec``; True if it had one."""

        existing = await self.read_stored(spec)
        if spec.is_secret:
            await self._secrets.delete(spec.secret_store_key(self._secret_prefix))
        elif spec.settings_key is not None:
            await self._settings.update(spec.settings_key, None)
        return existing is not None

    async def _prompt_with_validation(self, spec: FieldSpec) -> Any | None:
        for _ in range(MAX_ATTEMPTS):
            raw = await self._prompt_once(spec)
            if is_empty(raw):
                return None

            value, error = self._coerce(spec, raw)
            if error is None:
                error = spec.check(value)
            if error is None:
                return value
            await self._prompts.show_error(f"{spec.label}: {error}")
        logger.info("Giving up on field after repeated invalid input", extra={"field": spec.key})
        return None

    def _coerce(self, spec: FieldSpec, raw: Any) -> tuple[Any, str | None]:
        if spec.kind is FieldKind.NUMBER and not isinstance(raw, (int, float)):
            try:
                number = float(str(raw).strip())
            except ValueError:
                return None, "Enter a number"
            return (int(number) if number.is_integer() else number), None
        if isinstance(raw, str):
            return raw.strip(), None
        return raw, None

    async def _prompt_once(self, spec: FieldSpec) -> Any | None:
        if spec.kind is FieldKind.BOOLEAN:
            choice = await self._prompts.pick_one(spec.label, [_YES, _NO], spec.placeholder)
            if choice is None:
                return None
            return choice == _YES

        if spec.ui == "select" and spec.select is not None:
            if spec.select.fetch_page is not None:
                return await self._search(spec)
            if spec.select.static_options:
                return await self._pick_static(spec)

        return await self._prompts.input_text(self._input_request(spec))

    def _input_request(self, spec: FieldSpec) -> InputRequest:
        return InputRequest(
            title=spec.label,
            prompt=spec.description or spec.label,
            placeholder=spec.placeholder,
            value=None if is_empty(spec.default) else str(spec.default),
            masked=spec.is_secret,
        )

    async def _pick_static(self, spec: FieldSpec) -> Any | None:
        assert spec.select is not None
        options = {
            f"{option.label} - {option.description}" if option.description else option.label: option.value
            for option in spec.select.static_options
        }
        labels = list(options)
        if spec.select.allow_arbitrary:
            labels.append(_OTHER)
        choice = await self._prompts.pick_one(spec.label, labels, spec.placeholder)
        if choice is None:
            return None
        if choice == _OTHER:
            return await self._prompts.input_text(self._input_request(spec))
        return options.get(choice)

    async def _search(self, spec: FieldSpec) -> Any | None:
        assert spec.select is not None and spec.select.fetch_page is not None
        search = SuggestionSearch(
            spec.select.fetch_page,
            fetcher=self._fetcher,
            cache_key=spec.key,
            ttl_seconds=spec.cache_ttl_seconds,
            debounce_seconds=self._debounce_seconds,
        )
        try:
            picked = await self._prompts.search_pick(
                search,
                title=spec.label,
                placeholder=spec.placeholder or "Search...",
                allow_arbitrary=spec.select.allow_arbitrary,
            )
        finally:
            await search.aclose()
        if isinstance(picked, SuggestionItem):
            return picked.id
        if isinstance(picked, str) and not spec.select.allow_arbitrary:
            return None
        return picked


__all__ = ["FieldResolver", "MAX_ATTEMPTS"]
