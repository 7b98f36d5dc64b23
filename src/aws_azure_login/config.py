from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal
from typing import Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, field_validator


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name, "") or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in {"1", "true", "t", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    """
    Env-only config so most users never need a YAML file.

    `config.example.yaml` documents the same keys; YAML remains an optional override.
    """
    return {
        "browser": {
            "mode": os.getenv("AZURE_LOGIN_MODE", "cli"),
            "sandbox": not _env_bool("AZURE_LOGIN_NO_SANDBOX", default=False),
            "network_service": not _env_bool("AZURE_LOGIN_DISABLE_NETWORK_SERVICE", default=False),
            "seamless_sso": not _env_bool("AZURE_LOGIN_DISABLE_SEAMLESS_SSO", default=False),
            "disable_extensions": not _env_bool("AZURE_LOGIN_NO_DISABLE_EXTENSIONS", default=False),
            "slow_mo_ms": _env_int("AZURE_LOGIN_SLOW_MO_MS", 0),
            "load_timeout_ms": _env_int("AZURE_LOGIN_LOAD_TIMEOUT_MS", 60_000),
        },
        "aws": {
            "config_file": os.getenv("AWS_CONFIG_FILE", "~/.aws/config"),
            "credentials_file": os.getenv("AWS_SHARED_CREDENTIALS_FILE", "~/.aws/credentials"),
            "verify_ssl": not _env_bool("AZURE_LOGIN_NO_VERIFY_SSL", default=False),
        },
        "azure": {
            "login_url": os.getenv("AZURE_LOGIN_URL", "https://login.microsoftonline.com"),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", ""),
        },
        "debug_dir": os.getenv("AZURE_LOGIN_DEBUG_DIR", ""),
    }


def _require_full_url(value: str, *, field: str) -> str:
    url = (value or "").strip().rstrip("/")
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"{field} must be a full URL like 'https://login.microsoftonline.com'")
    return url


class BrowserConfig(BaseModel):
    # "cli" hides the browser; "debug" shows it while the login is still driven from the terminal.
    mode: Literal["cli", "debug"] = "cli"
    sandbox: bool = True
    network_service: bool = True
    seamless_sso: bool = True
    disable_extensions: bool = True
    slow_mo_ms: int = Field(default=0, ge=0)
    load_timeout_ms: int = Field(default=60_000, gt=0)

    @property
    def headless(self) -> bool:
        return self.mode == "cli"


class AwsConfig(BaseModel):
    config_file: str = "~/.aws/config"
    credentials_file: str = "~/.aws/credentials"
    verify_ssl: bool = True
    # Profiles with less than this many minutes left are refreshed by `--all-profiles`.
    refresh_margin_minutes: int = Field(default=11, ge=0)

    @property
    def config_path(self) -> Path:
        return Path(self.config_file).expanduser()

    @property
    def credentials_path(self) -> Path:
        return Path(self.credentials_file).expanduser()


class AzureConfig(BaseModel):
    login_url: str = "https://login.microsoftonline.com"
    acs_url: str = "https://signin.aws.amazon.com/saml"

    @field_validator("login_url")
    @classmethod
    def _normalize_login_url(cls, v: str) -> str:
        return _require_full_url(v, field="azure.login_url")

    @field_validator("acs_url")
    @classmethod
    def _normalize_acs_url(cls, v: str) -> str:
        return _require_full_url(v, field="azure.acs_url")


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = ""


class AppConfig(BaseModel):
    browser: BrowserConfig = BrowserConfig()
    aws: AwsConfig = AwsConfig()
    azure: AzureConfig = AzureConfig()
    logging: LoggingConfig = LoggingConfig()
    debug_dir: str = ""


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)
