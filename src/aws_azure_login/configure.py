from __future__ import annotations

import logging

from .aws_config import (
    APP_ID_URI_KEY,
    DEFAULT_DURATION_HOURS_KEY,
    DEFAULT_ROLE_ARN_KEY,
    DEFAULT_USERNAME_KEY,
    TENANT_ID_KEY,
    AwsConfigStore,
)
from .errors import CLIError
from .prompts import ConsolePrompter


logger = logging.getLogger(__name__)


def configure_profile(store: AwsConfigStore, prompter: ConsolePrompter, profile_name: str) -> None:
    """
    Interactively create or update the Azure settings of an AWS profile.
    """
    logger.info("Configuring profile %r", profile_name)

    existing = store.get_profile(profile_name)
    current: dict[str, str] = {}
    if existing is not None:
        current = {
            TENANT_ID_KEY: existing.tenant_id,
            APP_ID_URI_KEY: existing.app_id_uri,
            DEFAULT_USERNAME_KEY: existing.default_username,
            DEFAULT_ROLE_ARN_KEY: existing.default_role_arn,
            DEFAULT_DURATION_HOURS_KEY: str(existing.session_duration_hours),
        }

    answers = prompter.prompt_profile_config(current)

    if not answers.get(TENANT_ID_KEY) or not answers.get(APP_ID_URI_KEY):
        raise CLIError("Azure Tenant ID and App ID URI are both required.")

    hours = (answers.get(DEFAULT_DURATION_HOURS_KEY) or "1").strip()
    if not hours.isdigit() or not 1 <= int(hours) <= 12:
        raise CLIError("Session duration must be a whole number of hours between 1 and 12.")

    store.set_profile_config(profile_name, answers)
