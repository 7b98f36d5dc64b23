from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from aws_azure_login.aws_config import AwsConfigStore
from aws_azure_login.errors import CLIError
from aws_azure_login.models import TemporaryCredentials
from aws_azure_login.runner import login_profiles, profiles_needing_refresh


class FakeFlow:
    def __init__(self, log: list[str], error: Exception | None = None) -> None:
        self.log = log
        self.error = error

    def login(self, profile_name: str) -> None:
        self.log.append(profile_name)
        if self.error is not None:
            raise self.error


def _factory(log: list[str], errors: dict[str, Exception]):
    return lambda name: FakeFlow(log, errors.get(name))


def test_continues_past_operational_failures() -> None:
    log: list[str] = []
    outcomes = login_profiles(["a", "b", "c"], _factory(log, {"b": CLIError("Your password is incorrect.")}))

    assert log == ["a", "b", "c"]
    assert [(o.profile, o.ok) for o in outcomes] == [("a", True), ("b", False), ("c", True)]
    assert outcomes[1].message == "Your password is incorrect."


def test_fail_fast_stops_at_first_failure() -> None:
    log: list[str] = []
    with pytest.raises(CLIError):
        login_profiles(["a", "b", "c"], _factory(log, {"a": CLIError("nope")}), fail_fast=True)
    assert log == ["a"]


def test_unexpected_errors_propagate() -> None:
    log: list[str] = []
    with pytest.raises(KeyboardInterrupt):
        login_profiles(["a", "b"], _factory(log, {"a": KeyboardInterrupt()}))
    assert log == ["a"]


def test_profiles_needing_refresh(tmp_path: Path) -> None:
    store = AwsConfigStore(config_path=tmp_path / "config", credentials_path=tmp_path / "credentials")
    fresh = datetime.now(timezone.utc) + timedelta(hours=1)
    store.set_credentials(
        "fresh",
        TemporaryCredentials(access_key_id="a", secret_access_key="s", session_token="t", expiration=fresh),
    )

    assert profiles_needing_refresh(store, ["fresh", "stale"]) == ["stale"]
    assert profiles_needing_refresh(store, ["fresh", "stale"], force_refresh=True) == ["fresh", "stale"]
    assert profiles_needing_refresh(store, ["fresh"], margin_minutes=120) == ["fresh"]


def test_unexpected_failure_does_not_block_later_profiles() -> None:
    log: list[str] = []
    outcomes = login_profiles(["a", "b"], _factory(log, {"a": RuntimeError("Unexpected Azure login page structure")}))

    assert log == ["a", "b"]
    assert [(o.profile, o.ok) for o in outcomes] == [("a", False), ("b", True)]
    assert "Unexpected Azure login page structure" in outcomes[0].message


def test_fail_fast_also_stops_on_unexpected_failure() -> None:
    log: list[str] = []
    with pytest.raises(RuntimeError):
        login_profiles(["a", "b"], _factory(log, {"a": RuntimeError("browser crashed")}), fail_fast=True)
    assert log == ["a"]
