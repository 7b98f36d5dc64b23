from __future__ import annotations

from aws_azure_login.idp import AzureLoginSelectors, PageSnapshot


def test_error_heading_text_is_reported() -> None:
    html = """
    <html><body>
      <div id="recover_container"><h1>  Your account or password is incorrect.  </h1></div>
      <input id="tfa_code_inputtext" />
    </body></html>
    """
    snap = PageSnapshot.parse(html)
    assert snap.error_message == "Your account or password is incorrect."


def test_empty_error_heading_is_not_an_error() -> None:
    snap = PageSnapshot.parse('<div id="recover_container"><h1> </h1></div>')
    assert snap.error_message == ""


def test_mfa_input_detected() -> None:
    snap = PageSnapshot.parse('<form><input id="tfa_code_inputtext" type="tel"/></form>')
    assert snap.has_mfa_input is True
    assert snap.error_message == ""


def test_assertion_prefers_saml_response_field() -> None:
    html = """
    <form method="post" action="https://signin.aws.amazon.com/saml">
      <input type="hidden" name="RelayState" value="relay" />
      <input type="hidden" name="SAMLResponse" value="PHNhbWw+" />
    </form>
    """
    assert PageSnapshot.parse(html).assertion == "PHNhbWw+"


def test_assertion_falls_back_to_first_input() -> None:
    html = '<form><input type="hidden" value="QUJD" /><input value="other"/></form>'
    assert PageSnapshot.parse(html).assertion == "QUJD"


def test_no_inputs_means_no_assertion() -> None:
    snap = PageSnapshot.parse("<html><body><p>Working...</p></body></html>")
    assert snap.assertion is None
    assert snap.has_mfa_input is False


def test_custom_selectors() -> None:
    sel = AzureLoginSelectors(error_heading="#err", mfa_code_input_id="otp")
    snap = PageSnapshot.parse('<p id="err">Nope</p><input id="otp" value=""/>', sel)
    assert snap.error_message == "Nope"
    assert snap.has_mfa_input is True
    # the MFA field is the first input, but it is empty
    assert snap.assertion is None
