from __future__ import annotations

import asyncio
from typing import Any, Sequence

import pytest

from clockit.cache import CachedFetcher, MemoryCache, Page, SuggestionItem
from clockit.prompts import InputRequest, SuggestionSearch
from clockit.resolver import MAX_ATTEMPTS, FieldResolver
from clockit.sinks import FieldKind, FieldScope, FieldSpec, SelectSpec, StaticOption
from clockit.storage import MemorySecretStore, MemorySettingsStore


class ScriptedPrompts:
    def __init__(
        self,
        answers: Sequence[str | None] = (),
        picks: Sequence[str | None] = (),
        search_answers: Sequence[Any] = (),
    ) -> None:
        self.answers = list(answers)
        self.picks = list(picks)
        self.search_answers = list(search_answers)
        self.requests: list[InputRequest] = []
        self.pick_calls: list[tuple[str, list[str]]] = []
        self.searched: list[list[str]] = []
        self.errors: list[str] = []

    @property
    def prompt_count(self) -> int:
        return len(self.requests) + len(self.pick_calls) + len(self.searched)

    async def input_text(self, request: InputRequest) -> str | None:
        self.requests.append(request)
        return self.answers.pop(0) if self.answers else None

    async def pick_one(self, title: str, options: Sequence[str], placeholder: str | None = None) -> str | None:
        self.pick_calls.append((title, list(options)))
        return self.picks.pop(0) if self.picks else None

    async def search_pick(self, search: SuggestionSearch, *, title, placeholder=None, allow_arbitrary=False):
        await search.start()
        self.searched.append([item.id for item in search.items])
        answer = self.search_answers.pop(0) if self.search_answers else None
        if answer == "<first>":
            return search.items[0]
        return answer

    async def show_error(self, message: str) -> None:
        self.errors.append(message)


def _resolver(prompts: ScriptedPrompts, *, secrets=None, settings=None, fetcher=None) -> FieldResolver:
    return FieldResolver(
        secrets=secrets if secrets is not None else MemorySecretStore(),
        settings=settings if settings is not None else MemorySettingsStore(),
        prompts=prompts,
        fetcher=fetcher,
        debounce_seconds=0,
    )


def _domain_spec(**overrides: Any) -> FieldSpec:
    values: dict[str, Any] = {
        "key": "svc.domain",
        "label": "Domain",
        "required": True,
        "setting_key": "clockit.svc.domain",
    }
    values.update(overrides)
    return FieldSpec(**values)


def test_optional_field_without_value_never_prompts() -> None:
    prompts = ScriptedPrompts(answers=["unused"])
    resolver = _resolver(prompts)

    value = asyncio.run(resolver.resolve(_domain_spec(required=False)))

    assert value is None
    assert prompts.prompt_count == 0


def test_current_value_short_circuits() -> None:
    prompts = ScriptedPrompts()
    settings = MemorySettingsStore({"clockit.svc.domain": "stored.example"})
    resolver = _resolver(prompts, settings=settings)

    assert asyncio.run(resolver.resolve(_domain_spec(), "current.example")) == "current.example"
    assert prompts.prompt_count == 0


def test_persisted_value_is_used_and_blank_counts_as_absent() -> None:
    prompts = ScriptedPrompts(answers=["typed.example"])
    settings = MemorySettingsStore({"clockit.svc.domain": "stored.example"})
    resolver = _resolver(prompts, settings=settings)

    assert asyncio.run(resolver.resolve(_domain_spec(), "   ")) == "stored.example"

    settings.values["clockit.svc.domain"] = "  "
    assert asyncio.run(resolver.resolve(_domain_spec())) == "typed.example"
    assert settings.values["clockit.svc.domain"] == "typed.example"


def test_second_resolution_uses_persisted_value_without_prompting() -> None:
    prompts = ScriptedPrompts(answers=["acme.atlassian.net"])
    resolver = _resolver(prompts)

    async def scenario() -> tuple[Any, Any]:
        first = await resolver.resolve(_domain_spec())
        second = await resolver.resolve(_domain_spec())
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second == "acme.atlassian.net"
    assert len(prompts.requests) == 1


def test_secret_is_masked_and_never_written_to_settings() -> None:
    prompts = ScriptedPrompts(answers=["s3cret"])
    secrets = MemorySecretStore()
    settings = MemorySettingsStore()
    resolver = _resolver(prompts, secrets=secrets, settings=settings)
    spec = FieldSpec(key="svc.token", label="Token", kind=FieldKind.SECRET, required=True)

    value = asyncio.run(resolver.resolve(spec))

    assert value == "s3cret"
    assert prompts.requests[0].masked is True
    assert secrets.values == {"clockit.svc.token": "s3cret"}
    assert settings.values == {}


def test_validator_message_is_shown_and_attempts_are_bounded() -> None:
    prompts = ScriptedPrompts(answers=["nope", "still nope", "never", "too late"])
    resolver = _resolver(prompts)
    spec = _domain_spec(validator=lambda v: None if str(v).endswith(".net") else "Must end with .net")

    value = asyncio.run(resolver.resolve(spec))

    assert value is None
    assert len(prompts.requests) == MAX_ATTEMPTS
    assert prompts.errors == ["Domain: Must end with .net"] * MAX_ATTEMPTS


def test_validator_recovers_on_retry() -> None:
    prompts = ScriptedPrompts(answers=["nope", "acme.net"])
    settings = MemorySettingsStore()
    resolver = _resolver(prompts, settings=settings)
    spec = _domain_spec(validator=lambda v: None if str(v).endswith(".net") else "Must end with .net")

    assert asyncio.run(resolver.resolve(spec)) == "acme.net"
    assert settings.values["clockit.svc.domain"] == "acme.net"
    assert len(prompts.errors) == 1


def test_cancelled_prompt_resolves_to_none_and_persists_nothing() -> None:
    prompts = ScriptedPrompts(answers=[None])
    settings = MemorySettingsStore()
    resolver = _resolver(prompts, settings=settings)

    assert asyncio.run(resolver.resolve(_domain_spec())) is None
    assert settings.values == {}


def test_number_fields_are_parsed() -> None:
    prompts = ScriptedPrompts(answers=["abc", "42"])
    settings = MemorySettingsStore()
    resolver = _resolver(prompts, settings=settings)
    spec = FieldSpec(key="svc.port", label="Port", kind=FieldKind.NUMBER, required=True, implicit_setting=True)

    assert asyncio.run(resolver.resolve(spec)) == 42
    assert prompts.errors == ["Port: Enter a number"]
    assert settings.values == {"svc.port": 42}


def test_boolean_fields_use_a_yes_no_choice() -> None:
    prompts = ScriptedPrompts(picks=["No"])
    settings = MemorySettingsStore()
    resolver = _resolver(prompts, settings=settings)
    spec = FieldSpec(
        key="svc.verbose",
        label="Verbose",
        kind=FieldKind.BOOLEAN,
        required=True,
        setting_key="clockit.svc.verbose",
    )

    assert asyncio.run(resolver.resolve(spec)) is False
    assert prompts.pick_calls == [("Verbose", ["Yes", "No"])]
    assert settings.values == {"clockit.svc.verbose": False}


def test_memory_only_fields_are_not_persisted() -> None:
    prompts = ScriptedPrompts(answers=["PROJ-1"])
    settings = MemorySettingsStore()
    secrets = MemorySecretStore()
    resolver = _resolver(prompts, settings=settings, secrets=secrets)
    spec = FieldSpec(key="issue_key", label="Issue", scope=FieldScope.RUNTIME, required=True)

    assert asyncio.run(resolver.resolve(spec)) == "PROJ-1"
    assert settings.values == {}
    assert secrets.values == {}


def test_force_ignores_current_and_persisted_values() -> None:
    prompts = ScriptedPrompts(answers=["fresh-token"])
    secrets = MemorySecretStore({"clockit.svc.token": "expired"})
    resolver = _resolver(prompts, secrets=secrets)
    spec = FieldSpec(key="svc.token", label="Token", kind=FieldKind.SECRET, required=True)

    value = asyncio.run(resolver.resolve(spec, "expired", force=True))

    assert value == "fresh-token"
    assert secrets.values["clockit.svc.token"] == "fresh-token"


def test_select_field_uses_cached_search() -> None:
    calls: list[tuple[str, str | None]] = []

    async def fetch_page(query: str, cursor: str | None) -> Page:
        calls.append((query, cursor))
        return Page(items=[SuggestionItem(id="database:abc", title="Time log")])

    cache = MemoryCache()
    prompts = ScriptedPrompts(search_answers=["<first>"])
    settings = MemorySettingsStore()
    resolver = _resolver(prompts, settings=settings, fetcher=CachedFetcher(cache))
    spec = FieldSpec(
        key="svc.destination",
        label="Destination",
        required=True,
        ui="select",
        select=SelectSpec(fetch_page=fetch_page),
        setting_key="clockit.svc.destination",
    )

    assert asyncio.run(resolver.resolve(spec)) == "database:abc"
    assert settings.values == {"clockit.svc.destination": "database:abc"}
    assert calls == [("", None)]
    assert cache.get("suggest", CachedFetcher.cache_key("svc.destination", "", None)) is not None


def test_select_field_rejects_free_text_unless_allowed() -> None:
    async def fetch_page(query: str, cursor: str | None) -> Page:
        return Page()

    def spec(allow: bool) -> FieldSpec:
        return FieldSpec(
            key="issue_key",
            label="Issue",
            scope=FieldScope.RUNTIME,
            required=True,
            ui="select",
            select=SelectSpec(fetch_page=fetch_page, allow_arbitrary=allow),
        )

    strict = _resolver(ScriptedPrompts(search_answers=["PROJ-9"]))
    relaxed = _resolver(ScriptedPrompts(search_answers=["PROJ-9"]))

    assert asyncio.run(strict.resolve(spec(False))) is None
    assert asyncio.run(relaxed.resolve(spec(True))) == "PROJ-9"


def test_static_options_map_labels_to_values() -> None:
    prompts = ScriptedPrompts(picks=["Europe - Frankfurt"])
    resolver = _resolver(prompts)
    spec = FieldSpec(
        key="svc.region",
        label="Region",
        required=True,
        ui="select",
        select=SelectSpec(static_options=[StaticOption("US", "us-1"), StaticOption("Europe", "eu-1", "Frankfurt")]),
        setting_key="clockit.svc.region",
    )

    assert asyncio.run(resolver.resolve(spec)) == "eu-1"
    assert prompts.pick_calls == [("Region", ["US", "Europe - Frankfurt"])]


def test_forget_removes_stored_values() -> None:
    secrets = MemorySecretStore({"clockit.svc.token": "t"})
    settings = MemorySettingsStore({"clockit.svc.domain": "d"})
    resolver = _resolver(ScriptedPrompts(), secrets=secrets, settings=settings)
    token = FieldSpec(key="svc.token", label="Token", kind=FieldKind.SECRET, required=True)

    async def scenario() -> tuple[bool, bool, bool]:
        return (
            await resolver.forget(token),
            await resolver.forget(_domain_spec()),
            await resolver.forget(_domain_spec()),
        )

    assert asyncio.run(scenario()) == (True, True, False)
    assert secrets.values == {}
    assert settings.values == {}


def test_field_spec_rejects_secret_persisted_to_settings() -> None:
    with pytest.raises(ValueError):
        FieldSpec(key="svc.token", label="Token", kind=FieldKind.SECRET, persist="settings")


def test_field_spec_requires_settings_key_for_setup_values() -> None:
    with pytest.raises(ValueError):
        FieldSpec(key="svc.domain", label="Domain", required=True)

    memory_only = FieldSpec(key="svc.domain", label="Domain", persist="memory")
    assert memory_only.memory_only is True


def test_secret_key_defaults_under_clockit_namespace() -> None:
    spec = FieldSpec(key="jira.api_token", label="Token", kind=FieldKind.SECRET)
    custom = FieldSpec(key="x", label="X", kind=FieldKind.SECRET, secret_key="vault.x")

    assert spec.secret_store_key() == "clockit.jira.api_token"
    assert custom.secret_store_key() == "vault.x"
