from __future__ import annotations

import base64
import binascii
import logging
import re
import uuid
import zlib
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape, quoteattr

from .errors import SamlParseError
from .models import Profile, RolePair, SamlRequest


logger = logging.getLogger(__name__)

ROLE_ATTRIBUTE_NAME = "https://aws.amazon.com/SAML/Attributes/Role"
DEFAULT_LOGIN_URL = "https://login.microsoftonline.com"
DEFAULT_ACS_URL = "https://signin.aws.amazon.com/saml"

_ROLE_ARN_RE = re.compile(r"^arn:aws[a-z-]*:iam::\d{12}:role/\S+$")
_PROVIDER_ARN_RE = re.compile(r"^arn:aws[a-z-]*:iam::\d{12}:saml-provider/\S+$")

# encodeURIComponent leaves these unescaped; Azure accepts either form but we match browsers.
_URI_COMPONENT_SAFE = "-_.!~*'()"

_AUTHN_REQUEST_TEMPLATE = (
    '<samlp:AuthnRequest xmlns="urn:oasis:names:tc:SAML:2.0:metadata" ID={request_id} Version="2.0" '
    'IssueInstant={issue_instant} IsPassive="false" AssertionConsumerServiceURL={acs_url} '
    'xmlns:samlp="urn:oasis:names:tc:SAML:2.0:protocol">'
    '<Issuer xmlns="urn:oasis:names:tc:SAML:2.0:assertion">{issuer}</Issuer>'
    '<samlp:NameIDPolicy Format="urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress"></samlp:NameIDPolicy>'
    "</samlp:AuthnRequest>"
)


def _format_issue_instant(now: datetime) -> str:
    # e.g. 2024-05-01T12:00:00.123Z
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _deflate_raw(data: bytes) -> bytes:
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -15)
    return compressor.compress(data) + compressor.flush()


class SamlRequestBuilder:
    """
    Builds the Azure AD SAML-P login URL for a profile (HTTP-Redirect binding).
    """

    def __init__(self, *, login_url: str = DEFAULT_LOGIN_URL, acs_url: str = DEFAULT_ACS_URL) -> None:
        self.login_url = login_url.rstrip("/")
        self.acs_url = acs_url

    def build(
        self,
        profile: Profile,
        *,
        request_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SamlRequest:
        rid = request_id or f"id{uuid.uuid4()}"
        issue_instant = _format_issue_instant(now or datetime.now(timezone.utc))

        xml = _AUTHN_REQUEST_TEMPLATE.format(
            request_id=quoteattr(rid),
            issue_instant=quoteattr(issue_instant),
            acs_url=quoteattr(self.acs_url),
            issuer=escape(profile.app_id_uri),
        )
        logger.debug("Generated SAML request %s", xml)

        encoded = base64.b64encode(_deflate_raw(xml.encode("utf-8"))).decode("ascii")
        url = (
            f"{self.login_url}/{quote(profile.tenant_id, safe='')}/saml2"
            f"?SAMLRequest={quote(encoded, safe=_URI_COMPONENT_SAFE)}"
        )
        return SamlRequest(
            request_id=rid,
            issuer=profile.app_id_uri,
            issue_instant=issue_instant,
            xml=xml,
            url=url,
        )


def decode_assertion(assertion_b64: str) -> str:
    try:
        raw = base64.b64decode((assertion_b64 or "").strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise SamlParseError("The SAML assertion is not valid base64.") from e
    return raw.decode("utf-8", errors="replace")


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def split_role_value(value: str) -> RolePair:
    """
    Split `"<roleArn>,<principalArn>"` (AWS-mandated order) into a RolePair.

    The position is validated against the ARN shapes: a value that lists the provider first is rejected
    instead of being silently swapped.
    """
    parts = [p.strip() for p in (value or "").split(",", 1)]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise SamlParseError(f"Malformed Role attribute value in SAML assertion: {value!r}")

    role_arn, principal_arn = parts
    if _PROVIDER_ARN_RE.match(role_arn) and _ROLE_ARN_RE.match(principal_arn):
        raise SamlParseError(
            "Role attribute lists the SAML provider before the role "
            f"({value!r}); expected '<roleArn>,<principalArn>'."
        )
    if not _ROLE_ARN_RE.match(role_arn):
        raise SamlParseError(f"Expected an IAM role ARN, got {role_arn!r}")
    if not _PROVIDER_ARN_RE.match(principal_arn):
        raise SamlParseError(f"Expected an IAM SAML provider ARN, got {principal_arn!r}")
    return RolePair(role_arn=role_arn, principal_arn=principal_arn)


def parse_role_pairs(saml_xml: str) -> list[RolePair]:
    try:
        root = ET.fromstring(saml_xml)
    except ET.ParseError as e:
        raise SamlParseError(f"Could not parse SAML assertion XML: {e}") from e

    pairs: list[RolePair] = []
    for elem in root.iter():
        if _local_name(elem.tag) != "Attribute" or elem.get("Name") != ROLE_ATTRIBUTE_NAME:
            continue
        values = [v for v in elem if _local_name(v.tag) == "AttributeValue"]
        texts = [v.text or "" for v in values] if values else ["".join(elem.itertext())]
        for text in texts:
            pair = split_role_value(text)
            if pair not in pairs:
                pairs.append(pair)

    if not pairs:
        raise SamlParseError("No AWS Role attribute found in the SAML assertion.")
    return pairs
