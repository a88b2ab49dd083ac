from __future__ import annotations

import asyncio
import os
import stat
from pathlib import Path

import pytest

from clockit.storage import (
    FileSecretStore,
    MemorySecretStore,
    StoreError,
    YamlSettingsStore,
    clear_prefix,
)


def test_yaml_settings_round_trip_and_removal(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.yaml"
    store = YamlSettingsStore(path)

    async def scenario() -> tuple:
        await store.update("clockit.jira.domain", "acme.atlassian.net")
        await store.update("clockit.csv.header", True)
        reopened = YamlSettingsStore(path)
        before = await reopened.get("clockit.jira.domain")
        await reopened.update("clockit.jira.domain", None)
        await reopened.update("never.set", None)
        return before, await store.get("clockit.jira.domain"), await store.keys()

    before, after, keys = asyncio.run(scenario())

    assert before == "acme.atlassian.net"
    assert after is None
    assert keys == ["clockit.csv.header"]


def test_yaml_settings_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(StoreError):
        asyncio.run(YamlSettingsStore(path).get("a"))


def test_file_secret_store_is_private(tmp_path: Path) -> None:
    path = tmp_path / "secrets.json"
    store = FileSecretStore(path)

    asyncio.run(store.set("clockit.jira.api_token", "t0k"))

    assert asyncio.run(FileSecretStore(path).get("clockit.jira.api_token")) == "t0k"
    if os.name == "posix":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_file_secret_store_reports_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "secrets.json"
    path.write_text("{oops", encoding="utf-8")

    with pytest.raises(StoreError):
        asyncio.run(FileSecretStore(path).get("x"))


def test_clear_prefix_only_removes_matching_keys() -> None:
    store = MemorySecretStore(
        {
            "clockit.jira.api_token": "a",
            "clockit.notion.api_token": "b",
            "other.tool": "c",
        }
    )

    removed = asyncio.run(clear_prefix(store, "clockit."))

    assert removed == ["clockit.jira.api_token", "clockit.notion.api_token"]
    assert store.values == {"other.tool": "c"}
