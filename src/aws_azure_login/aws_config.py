from __future__ import annotations

import configparser
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Mapping, Optional

from dateutil import parser as date_parser

from .models import Profile, TemporaryCredentials


logger = logging.getLogger(__name__)

# Keys stored in the AWS config file (`[profile <name>]` sections).
TENANT_ID_KEY = "azure_tenant_id"
APP_ID_URI_KEY = "azure_app_id_uri"
DEFAULT_USERNAME_KEY = "azure_default_username"
DEFAULT_ROLE_ARN_KEY = "azure_default_role_arn"
DEFAULT_DURATION_HOURS_KEY = "azure_default_duration_hours"
REGION_KEY = "region"

# Keys stored in the AWS credentials file (`[<name>]` sections).
ACCESS_KEY_ID_KEY = "aws_access_key_id"
SECRET_ACCESS_KEY_KEY = "aws_secret_access_key"
SESSION_TOKEN_KEY = "aws_session_token"
EXPIRATION_KEY = "aws_expiration"


def _config_section(profile_name: str) -> str:
    return profile_name if profile_name == "default" else f"profile {profile_name}"


def _profile_name_from_section(section: str) -> str:
    if section.startswith("profile "):
        return section[len("profile "):].strip()
    return section


def _parse_duration_hours(raw: str) -> int:
    try:
        hours = int((raw or "").strip() or 1)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r (expected hours 1-12).", DEFAULT_DURATION_HOURS_KEY, raw)
        return 1
    return min(max(hours, 1), 12)


class AwsConfigStore:
    """
    Read/write access to the AWS shared config and credentials files.
    """

    def __init__(self, *, config_path: Path, credentials_path: Path) -> None:
        self.config_path = Path(config_path)
        self.credentials_path = Path(credentials_path)

    def _read(self, path: Path) -> configparser.ConfigParser:
        cp = configparser.ConfigParser(interpolation=None)
        if path.exists():
            cp.read(path, encoding="utf-8")
        return cp

    def _write(self, path: Path, cp: configparser.ConfigParser) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            cp.write(fh)
        try:
            os.chmod(tmp, 0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", tmp, exc_info=True)
        tmp.replace(path)

    def get_profile(self, name: str) -> Optional[Profile]:
        cp = self._read(self.config_path)
        section = _config_section(name)
        if not cp.has_section(section):
            return None

        values = cp[section]
        return Profile(
            name=name,
            tenant_id=values.get(TENANT_ID_KEY, "").strip(),
            app_id_uri=values.get(APP_ID_URI_KEY, "").strip(),
            default_username=values.get(DEFAULT_USERNAME_KEY, "").strip(),
            default_role_arn=values.get(DEFAULT_ROLE_ARN_KEY, "").strip(),
            session_duration_hours=_parse_duration_hours(values.get(DEFAULT_DURATION_HOURS_KEY, "")),
            region=values.get(REGION_KEY, "").strip(),
        )

    def set_profile_config(self, name: str, values: Mapping[str, str]) -> None:
        cp = self._read(self.config_path)
        section = _config_section(name)
        if not cp.has_section(section):
            cp.add_section(section)
        for key, value in values.items():
            if value is None or str(value).strip() == "":
                cp.remove_option(section, key)
            else:
                cp.set(section, key, str(value).strip())
        self._write(self.config_path, cp)
        logger.info("Saved profile %r to %s", name, self.config_path)

    def list_azure_profiles(self) -> list[str]:
        cp = self._read(self.config_path)
        return [
            _profile_name_from_section(section)
            for section in cp.sections()
            if cp.has_option(section, TENANT_ID_KEY)
        ]

    def set_credentials(self, name: str, credentials: TemporaryCredentials) -> None:
        cp = self._read(self.credentials_path)
        if not cp.has_section(name):
            cp.add_section(name)
        cp.set(name, ACCESS_KEY_ID_KEY, credentials.access_key_id)
        cp.set(name, SECRET_ACCESS_KEY_KEY, credentials.secret_access_key)
        cp.set(name, SESSION_TOKEN_KEY, credentials.session_token)
        if credentials.expiration is not None:
            cp.set(name, EXPIRATION_KEY, credentials.expiration.astimezone(timezone.utc).isoformat())
        else:
            cp.remove_option(name, EXPIRATION_KEY)
        self._write(self.credentials_path, cp)

    def get_expiration(self, name: str) -> Optional[datetime]:
        cp = self._read(self.credentials_path)
        raw = cp.get(name, EXPIRATION_KEY, fallback="").strip()
        if not raw:
            return None
        try:
            dt = date_parser.isoparse(raw)
        except ValueError:
            logger.warning("Unparseable %s=%r for profile %r; treating as expired.", EXPIRATION_KEY, raw, name)
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    def is_profile_about_to_expire(
        self,
        name: str,
        *,
        margin_minutes: int = 11,
        now: Optional[datetime] = None,
    ) -> bool:
        expiration = self.get_expiration(name)
        if expiration is None:
            return True
        current = now or datetime.now(timezone.utc)
        return expiration - current < timedelta(minutes=margin_minutes)


class CredentialPersister:
    """
    Writes STS credentials into the named profile of the credentials file (overwriting prior values).
    """

    def __init__(self, store: AwsConfigStore) -> None:
        self.store = store

    def persist(self, profile_name: str, credentials: TemporaryCredentials) -> None:
        self.store.set_credentials(profile_name, credentials)
        logger.info("Stored temporary credentials for profile %r in %s", profile_name, self.store.credentials_path)
