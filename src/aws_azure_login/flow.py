from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .aws_config import AwsConfigStore, CredentialPersister
from .browser import STATUS_SUCCESS, BrowserSession
from .errors import AssertionNotFoundError, CLIError, NavigationError
from .exchange import AssertionExchanger
from .idp import scripts
from .idp.page import PageSnapshot
from .idp.selectors import AzureLoginSelectors
from .models import Profile, RolePair, SamlRequest, TemporaryCredentials
from .prompts import Prompter, select_role
from .saml import SamlRequestBuilder


logger = logging.getLogger(__name__)


class LoginState(str, Enum):
    STARTED = "started"
    PAGE_LOADED = "page_loaded"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    MFA_REQUIRED = "mfa_required"
    MFA_SUBMITTED = "mfa_submitted"
    ASSERTION_READY = "assertion_ready"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class LoginFlow:
    """
    Azure AD SAML login for one AWS profile at a time.

    Sequence: open the SAML-P login URL, submit username/password, answer the verification code prompt when
    Azure asks for one, scrape the SAMLResponse from the final page, exchange it with STS and store the
    resulting credentials. The browser session is created per attempt and disposed exactly once, before the
    STS call, whatever happens in between.
    """

    def __init__(
        self,
        *,
        store: AwsConfigStore,
        prompter: Prompter,
        exchanger: AssertionExchanger,
        session_factory: Callable[[], BrowserSession],
        persister: Optional[CredentialPersister] = None,
        request_builder: Optional[SamlRequestBuilder] = None,
        selectors: Optional[AzureLoginSelectors] = None,
        no_prompt: bool = False,
        debug_dir: str = "",
        step_debug: bool = False,
    ) -> None:
        self.store = store
        self.prompter = prompter
        self.exchanger = exchanger
        self.session_factory = session_factory
        self.persister = persister or CredentialPersister(store)
        self.request_builder = request_builder or SamlRequestBuilder()
        self.selectors = selectors or AzureLoginSelectors()
        self.no_prompt = no_prompt
        self.debug_dir = debug_dir
        self.step_debug = step_debug

        self.state = LoginState.STARTED
        self._step_counter = 0

    def login(self, profile_name: str) -> TemporaryCredentials:
        self.state = LoginState.STARTED
        self._step_counter = 0
        try:
            profile = self._resolve_profile(profile_name)
            request = self.request_builder.build(profile)

            logger.debug("Creating browser session")
            session = self.session_factory()
            try:
                assertion = self._obtain_assertion(session, profile, request)
            except Exception:
                self._save_debug(session, name_prefix="login_failure")
                raise
            finally:
                session.dispose()

            credentials = self.exchanger.exchange(
                assertion,
                choose_role=lambda pairs: self._choose_role(profile, pairs),
                duration_seconds=profile.session_duration_seconds,
            )
            self.persister.persist(profile.name, credentials)
        except BaseException:
            logger.debug("Login for profile %r failed in state %s", profile_name, self.state.value)
            self.state = LoginState.FAILED
            raise

        self.state = LoginState.SUCCEEDED
        return credentials

    def _resolve_profile(self, profile_name: str) -> Profile:
        profile = self.store.get_profile(profile_name)
        if profile is None:
            raise CLIError(f"Unknown profile '{profile_name}'. You must configure it first.")
        if not profile.is_configured():
            raise CLIError(f"Profile '{profile_name}' is not configured properly.")
        return profile

    def _obtain_assertion(self, session: BrowserSession, profile: Profile, request: SamlRequest) -> str:
        logger.info("Loading Azure login page for profile %r", profile.name)
        try:
            status = session.open(request.url)
        except NavigationError as e:
            raise CLIError("Failed to load Azure login page!") from e
        if status != STATUS_SUCCESS:
            raise CLIError("Failed to load Azure login page!")
        self._transition(LoginState.PAGE_LOADED, session)

        logger.debug("Requesting user credentials")
        answers = self.prompter.prompt_username_password(profile.default_username)
        result = session.evaluate(
            scripts.SUBMIT_CREDENTIALS,
            self.selectors.username_field,
            self.selectors.password_field,
            answers.username,
            answers.password,
        )
        if result:
            # The login page did not have the expected form; nothing was submitted.
            raise RuntimeError(f"Unexpected Azure login page structure ({result}).")
        session.wait_for_load()
        self._transition(LoginState.CREDENTIALS_SUBMITTED, session)

        snapshot = self._snapshot(session)
        # Error page first: it must never be mistaken for an MFA prompt or a plain success.
        if snapshot.error_message:
            raise CLIError(snapshot.error_message)

        if snapshot.has_mfa_input:
            self._transition(LoginState.MFA_REQUIRED, session)
            snapshot = self._submit_verification_code(session)

        self._transition(LoginState.ASSERTION_READY, session)
        if not snapshot.assertion:
            raise AssertionNotFoundError("No SAML assertion found on the page.")
        logger.debug("Found SAML assertion (%d chars)", len(snapshot.assertion))
        return snapshot.assertion

    def _submit_verification_code(self, session: BrowserSession) -> PageSnapshot:
        logger.debug("MFA requested. Prompting user for verification code")
        code = self.prompter.prompt_verification_code()

        # Azure validates the code client-side and does not reload on failure, so check before waiting.
        error_message = session.evaluate(
            scripts.SUBMIT_VERIFICATION_CODE,
            self.selectors.mfa_code_input_id,
            self.selectors.mfa_submit_button_id,
            self.selectors.mfa_client_error_id,
            code,
        )
        if error_message:
            raise CLIError(error_message)

        session.wait_for_load()
        self._transition(LoginState.MFA_SUBMITTED, session)
        return self._snapshot(session)

    def _snapshot(self, session: BrowserSession) -> PageSnapshot:
        logger.debug("Fetching page content")
        return PageSnapshot.parse(session.read_content(), self.selectors)

    def _choose_role(self, profile: Profile, pairs: list[RolePair]) -> RolePair:
        return select_role(
            pairs,
            default_role_arn=profile.default_role_arn,
            prompter=self.prompter,
            no_prompt=self.no_prompt,
        )

    def _transition(self, state: LoginState, session: BrowserSession) -> None:
        self.state = state
        self._step(session, name=state.value)

    def _step(self, session: BrowserSession, *, name: str) -> None:
        """
        Log step-by-step progress and, with step debugging on, save the page HTML for each step.
        """
        self._step_counter += 1
        logger.info("Step %02d %s", self._step_counter, name)

        if self.step_debug:
            safe = re.sub(r"[^a-zA-Z0-9_-]+", "_", name).strip("_")[:60] or "step"
            self._save_debug(session, name_prefix=f"step_{self._step_counter:02d}_{safe}")

    def _save_debug(self, session: BrowserSession, *, name_prefix: str) -> None:
        if not self.debug_dir:
            return
        try:
            out_dir = Path(self.debug_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            (out_dir / f"{name_prefix}.html").write_text(session.read_content(), encoding="utf-8")
        except Exception:
            logger.debug("Failed to save debug artifacts.", exc_info=True)
