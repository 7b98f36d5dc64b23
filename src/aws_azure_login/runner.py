from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from .aws_config import AwsConfigStore
from .errors import CLIError
from .flow import LoginFlow


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileOutcome:
    profile: str
    ok: bool
    message: str = ""


def profiles_needing_refresh(
    store: AwsConfigStore,
    names: Iterable[str],
    *,
    force_refresh: bool = False,
    margin_minutes: int = 11,
) -> list[str]:
    out: list[str] = []
    for name in names:
        if force_refresh or store.is_profile_about_to_expire(name, margin_minutes=margin_minutes):
            out.append(name)
        else:
            logger.info("Profile %r credentials are still valid; skipping (use --force-refresh to renew).", name)
    return out


def login_profiles(
    names: Iterable[str],
    flow_factory: Callable[[str], LoginFlow],
    *,
    fail_fast: bool = False,
) -> list[ProfileOutcome]:
    """
    Log into each profile in turn, each with its own flow and browser session.

    A failed profile is recorded and the next one is attempted, unless fail_fast is set. Interrupts propagate
    immediately.
    """
    outcomes: list[ProfileOutcome] = []
    for name in names:
        logger.info("Logging in with profile %r", name)
        try:
            flow_factory(name).login(name)
        except CLIError as e:
            logger.error("Login failed for profile %r: %s", name, e)
            outcomes.append(ProfileOutcome(profile=name, ok=False, message=str(e)))
            if fail_fast:
                raise
            continue
        except Exception as e:
            logger.exception("Unexpected error while logging in with profile %r", name)
            outcomes.append(ProfileOutcome(profile=name, ok=False, message=f"Unexpected error: {e}"))
            if fail_fast:
                raise
            continue
        outcomes.append(ProfileOutcome(profile=name, ok=True))
    return outcomes
