from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """
    Azure login settings of one named AWS profile (read from the AWS config file).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    tenant_id: str = ""
    app_id_uri: str = ""
    default_username: str = ""
    default_role_arn: str = ""
    session_duration_hours: int = Field(default=1, ge=1, le=12)
    region: str = ""

    def is_configured(self) -> bool:
        return bool(self.tenant_id.strip() and self.app_id_uri.strip())

    @property
    def session_duration_seconds(self) -> int:
        return self.session_duration_hours * 3600


class TemporaryCredentials(BaseModel):
    access_key_id: str
    secret_access_key: str = Field(repr=False)
    session_token: str = Field(repr=False)
    expiration: Optional[datetime] = None


@dataclass(frozen=True)
class RolePair:
    role_arn: str
    principal_arn: str


@dataclass(frozen=True)
class SamlRequest:
    request_id: str
    issuer: str
    issue_instant: str
    xml: str
    url: str
