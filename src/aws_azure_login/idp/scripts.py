"""
In-page scripts evaluated by the browser session.

Each script is a function expression taking a single array of strings and returning a string or null,
so the session contract stays `evaluate(script, *args) -> Optional[str]`.
"""

# args: [username_field, password_field, username, password]
SUBMIT_CREDENTIALS = """
([usernameField, passwordField, username, password]) => {
  const form = document.forms[0];
  if (!form) return "missing-form";
  const user = form.elements.namedItem(usernameField);
  const pass = form.elements.namedItem(passwordField);
  if (!user || !pass) return "missing-fields";
  user.value = username;
  pass.value = password;
  form.submit();
  return null;
}
"""

# args: [code_input_id, submit_button_id, client_error_id, code]
# Returns the client-side error text when the page rejects the code without reloading.
SUBMIT_VERIFICATION_CODE = """
([codeInputId, submitButtonId, clientErrorId, code]) => {
  document.getElementById(codeInputId).value = code;
  document.getElementById(submitButtonId).click();

  const errorBox = document.getElementById(clientErrorId);
  if (errorBox && errorBox.style.display === "block") {
    return (errorBox.textContent || "").trim();
  }
  return null;
}
"""
