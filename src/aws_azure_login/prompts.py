from __future__ import annotations

import getpass
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol

from .errors import CLIError
from .models import RolePair


@dataclass(frozen=True)
class LoginAnswers:
    username: str
    password: str = ""


class Prompter(Protocol):
    def prompt_username_password(self, default_username: str = "") -> LoginAnswers: ...

    def prompt_verification_code(self) -> str: ...

    def prompt_role(self, pairs: list[RolePair], default_role_arn: str = "") -> RolePair: ...


class ConsolePrompter:
    """
    Terminal prompts for the values a human has to type during login.
    """

    def __init__(
        self,
        *,
        input_fn: Callable[[str], str] = input,
        password_fn: Callable[[str], str] = getpass.getpass,
        print_fn: Callable[[str], None] = print,
    ) -> None:
        self._input = input_fn
        self._password = password_fn
        self._print = print_fn

    def _ask(self, label: str, default: str = "") -> str:
        suffix = f" ({default})" if default else ""
        try:
            raw = self._input(f"{label}{suffix}: ").strip()
        except EOFError as e:
            raise CLIError(f"No input available for '{label}'.") from e
        return raw or default

    def prompt_username_password(self, default_username: str = "") -> LoginAnswers:
        username = self._ask("Username", default_username)
        if not username:
            raise CLIError("A username is required.")
        try:
            password = self._password("Password: ")
        except EOFError as e:
            raise CLIError("No input available for 'Password'.") from e
        return LoginAnswers(username=username, password=password)

    def prompt_verification_code(self) -> str:
        return self._ask("Verification Code")

    def prompt_role(self, pairs: list[RolePair], default_role_arn: str = "") -> RolePair:
        self._print("Role:")
        default_idx = 1
        for i, pair in enumerate(pairs, start=1):
            if pair.role_arn == default_role_arn:
                default_idx = i
            self._print(f"  {i}) {pair.role_arn}")

        while True:
            raw = self._ask(f"Choose a role [1-{len(pairs)}]", str(default_idx))
            if raw.isdigit() and 1 <= int(raw) <= len(pairs):
                return pairs[int(raw) - 1]
            self._print(f"Enter a number from 1 to {len(pairs)}.")

    def prompt_profile_config(self, current: Mapping[str, str]) -> dict[str, str]:
        """
        Ask for every Azure setting of a profile, offering the current values as defaults.
        """
        return {
            "azure_tenant_id": self._ask("Azure Tenant ID", current.get("azure_tenant_id", "")),
            "azure_app_id_uri": self._ask("Azure App ID URI", current.get("azure_app_id_uri", "")),
            "azure_default_username": self._ask("Default Username", current.get("azure_default_username", "")),
            "azure_default_role_arn": self._ask("Default Role ARN (if multiple)", current.get("azure_default_role_arn", "")),
            "azure_default_duration_hours": self._ask(
                "Default Session Duration Hours (up to 12)",
                current.get("azure_default_duration_hours", "1"),
            ),
        }


def select_role(
    pairs: list[RolePair],
    *,
    default_role_arn: str = "",
    prompter: Optional[Prompter] = None,
    no_prompt: bool = False,
) -> RolePair:
    """
    Pick the role to assume when the assertion grants several.
    """
    if len(pairs) == 1:
        return pairs[0]
    if default_role_arn:
        for pair in pairs:
            if pair.role_arn == default_role_arn:
                return pair
    if no_prompt or prompter is None:
        raise CLIError(
            "The SAML assertion grants multiple roles; set azure_default_role_arn for this profile "
            "or run without --no-prompt."
        )
    return prompter.prompt_role(pairs, default_role_arn)
