from __future__ import annotations


class CLIError(RuntimeError):
    """
    An expected, user-facing failure (bad profile, rejected password/MFA code, IdP error page, STS rejection).

    The CLI prints the message without a traceback and exits with status 2.
    """


class AssertionNotFoundError(CLIError):
    """Raised when the final page does not carry a SAML assertion."""


class SamlParseError(CLIError):
    """Raised when the SAML assertion cannot be decoded or its Role attribute is malformed."""


class FederationError(CLIError):
    """Raised when STS rejects the assertion (expired, unauthorized role, bad principal...)."""


class LoadTimeoutError(CLIError, TimeoutError):
    """Raised when the identity provider page does not finish loading in time."""


class NavigationError(RuntimeError):
    """
    Raised by the browser adapter when navigation fails outright (DNS, connection refused, aborted).
    """
