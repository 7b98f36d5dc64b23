from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AzureLoginSelectors:
    """
    Azure AD's SAML login page is a web page; field names and element ids may change over time.
    Keep all UI selectors here for easy maintenance.
    """

    # Credentials form (first form on the page, fields addressed by name)
    username_field: str = "login"
    password_field: str = "passwd"

    # Error container rendered by the server after a failed credential submission
    error_heading: str = "#recover_container h1"

    # MFA (verification code)
    mfa_code_input_id: str = "tfa_code_inputtext"
    mfa_submit_button_id: str = "tfa_signin_button"
    # Client-side validation error; the page does not reload when the code is rejected.
    mfa_client_error_id: str = "tfa_client_side_error_text"

    # Final auto-post form carrying the assertion
    assertion_input: str = 'input[name="SAMLResponse"]'
    assertion_input_fallback: str = "input"

    @property
    def mfa_code_input(self) -> str:
        return f"#{self.mfa_code_input_id}"
