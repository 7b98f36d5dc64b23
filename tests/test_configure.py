from __future__ import annotations

from pathlib import Path

import pytest

from aws_azure_login.aws_config import AwsConfigStore
from aws_azure_login.configure import configure_profile
from aws_azure_login.errors import CLIError
from aws_azure_login.prompts import ConsolePrompter


def _prompter(answers: list[str]) -> ConsolePrompter:
    queue = list(answers)
    return ConsolePrompter(input_fn=lambda _label: queue.pop(0), print_fn=lambda _s: None)


def _store(tmp_path: Path) -> AwsConfigStore:
    return AwsConfigStore(config_path=tmp_path / "config", credentials_path=tmp_path / "credentials")


def test_configure_writes_new_profile(tmp_path: Path) -> None:
    store = _store(tmp_path)
    configure_profile(store, _prompter(["tenant-1", "urn:app", "me@example.com", "", "3"]), "work")

    profile = store.get_profile("work")
    assert profile is not None
    assert profile.tenant_id == "tenant-1"
    assert profile.default_username == "me@example.com"
    assert profile.session_duration_hours == 3
    assert "azure_default_role_arn" not in store.config_path.read_text(encoding="utf-8")


def test_configure_keeps_existing_values_on_enter(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.set_profile_config("work", {"azure_tenant_id": "t", "azure_app_id_uri": "u", "region": "eu-west-1"})

    configure_profile(store, _prompter(["", "", "", "", ""]), "work")

    profile = store.get_profile("work")
    assert profile is not None
    assert (profile.tenant_id, profile.app_id_uri, profile.region) == ("t", "u", "eu-west-1")


def test_configure_requires_tenant_and_app(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(CLIError):
        configure_profile(store, _prompter(["", "urn:app", "", "", ""]), "work")
    assert not store.config_path.exists()


@pytest.mark.parametrize("hours", ["0", "13", "two"])
def test_configure_rejects_bad_duration(tmp_path: Path, hours: str) -> None:
    with pytest.raises(CLIError, match="between 1 and 12"):
        configure_profile(_store(tmp_path), _prompter(["t", "u", "", "", hours]), "work")
