from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import ClientError

from .errors import CLIError, FederationError
from .models import RolePair, TemporaryCredentials
from .saml import decode_assertion, parse_role_pairs


logger = logging.getLogger(__name__)

RoleChooser = Callable[[list[RolePair]], RolePair]


def make_sts_client(*, region: str = "", verify_ssl: bool = True) -> Any:
    kwargs: dict = {"verify": verify_ssl}
    if region:
        kwargs["region_name"] = region
    return boto3.client("sts", **kwargs)


class AssertionExchanger:
    """
    Turns a scraped SAML assertion into temporary AWS credentials via STS AssumeRoleWithSAML.

    Rejections from STS (expired assertion, role not trusted, bad duration) are raised as FederationError and
    never retried.
    """

    def __init__(self, sts_client: Any) -> None:
        self._sts = sts_client

    def roles_in(self, assertion_b64: str) -> list[RolePair]:
        saml_xml = decode_assertion(assertion_b64)
        logger.debug("Decoded SAML assertion (%d chars)", len(saml_xml))
        return parse_role_pairs(saml_xml)

    def exchange(
        self,
        assertion_b64: str,
        *,
        choose_role: Optional[RoleChooser] = None,
        duration_seconds: int = 3600,
    ) -> TemporaryCredentials:
        pairs = self.roles_in(assertion_b64)
        if len(pairs) == 1:
            role = pairs[0]
        elif choose_role is None:
            raise CLIError(f"The SAML assertion grants {len(pairs)} roles and no role was chosen.")
        else:
            role = choose_role(pairs)

        logger.info("Assuming role %s", role.role_arn)
        try:
            resp = self._sts.assume_role_with_saml(
                RoleArn=role.role_arn,
                PrincipalArn=role.principal_arn,
                SAMLAssertion=assertion_b64,
                DurationSeconds=duration_seconds,
            )
        except ClientError as e:
            err = e.response.get("Error", {}) if hasattr(e, "response") else {}
            message = err.get("Message") or str(e)
            code = err.get("Code") or "Error"
            raise FederationError(f"AWS STS rejected the SAML assertion ({code}): {message}") from e

        creds = resp["Credentials"]
        return TemporaryCredentials(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            expiration=creds.get("Expiration"),
        )
