from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .errors import LoadTimeoutError, NavigationError


logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"

# Azure AD Seamless SSO endpoint; Chromium only offers integrated auth to hosts on its allow lists.
AZURE_AD_SSO_HOST = "autologon.microsoftazuread-sso.com"


def chromium_launch_options(
    *,
    sandbox: bool = True,
    network_service: bool = True,
    seamless_sso: bool = True,
    disable_extensions: bool = True,
) -> dict:
    """
    Keyword arguments for `chromium.launch()` built from the login switches.

    Disabling the network service helps when the login provider redirects with 3XX. Turning off seamless SSO
    restricts integrated Windows auth to the Azure AD SSO host. With `disable_extensions=False`, Playwright's
    default `--disable-extensions` switch is dropped.
    """
    args: list[str] = []
    if not sandbox:
        args.append("--no-sandbox")
    if not network_service:
        args.append("--disable-features=NetworkService")
    if not seamless_sso:
        args.append(f"--auth-server-whitelist={AZURE_AD_SSO_HOST}")
        args.append(f"--auth-negotiate-delegate-whitelist={AZURE_AD_SSO_HOST}")

    options: dict = {"args": args}
    if not disable_extensions:
        options["ignore_default_args"] = ["--disable-extensions"]
    return options


class BrowserSession(Protocol):
    """
    The narrow browser capability the login flow depends on.

    One session owns one browser process and one page. Operations are issued one at a time.
    """

    def open(self, url: str) -> str: ...

    def evaluate(self, script: str, *args: str) -> Optional[str]: ...

    def wait_for_load(self) -> None: ...

    def read_content(self) -> str: ...

    def dispose(self) -> None: ...


class PlaywrightBrowserSession:
    """
    `BrowserSession` backed by a Playwright-controlled Chromium.

    Load events are buffered: the page's "load" listener is installed when the session is created and holds at
    most one pending signal. `wait_for_load()` consumes it, so a load that completes before the caller starts
    waiting (e.g. a form submitted from `evaluate`) is never lost. Starting a script discards any signal left over
    from earlier navigations, so a wait after a submission only ever sees loads caused by that submission.
    """

    # Granularity of the event pump while waiting; Playwright dispatches events during wait_for_timeout().
    poll_interval_ms = 100

    def __init__(self, *, page: Any, browser: Any = None, playwright: Any = None, load_timeout_ms: int = 60_000) -> None:
        self._page = page
        self._browser = browser
        self._playwright = playwright
        self._load_timeout_ms = int(load_timeout_ms)
        self._load_pending = False
        self._disposed = False

        self._page.on("load", self._on_load)

    @classmethod
    def launch(
        cls,
        *,
        headless: bool = True,
        sandbox: bool = True,
        network_service: bool = True,
        seamless_sso: bool = True,
        disable_extensions: bool = True,
        slow_mo_ms: int = 0,
        load_timeout_ms: int = 60_000,
    ) -> "PlaywrightBrowserSession":
        options = chromium_launch_options(
            sandbox=sandbox,
            network_service=network_service,
            seamless_sso=seamless_sso,
            disable_extensions=disable_extensions,
        )
        slow_mo = int(slow_mo_ms or 0)

        logger.debug("Starting Playwright (headless=%s sandbox=%s)", headless, sandbox)
        pw = sync_playwright().start()
        try:
            # Prefer Playwright's bundled Chromium, but fall back to a system-installed browser if the
            # Playwright browser cache is missing.
            try:
                browser = pw.chromium.launch(headless=headless, slow_mo=slow_mo, **options)
            except PlaywrightError as e:
                msg = str(e)
                if "Executable doesn't exist" not in msg:
                    raise

                logger.warning(
                    "Playwright Chromium executable missing; falling back to system browser channel. (%s)",
                    msg,
                )

                # Try Chrome first, then Edge.
                try:
                    browser = pw.chromium.launch(headless=headless, slow_mo=slow_mo, **options, channel="chrome")
                except PlaywrightError:
                    browser = pw.chromium.launch(headless=headless, slow_mo=slow_mo, **options, channel="msedge")

            page = browser.new_page()
        except BaseException:
            pw.stop()
            raise

        return cls(page=page, browser=browser, playwright=pw, load_timeout_ms=load_timeout_ms)

    def _on_load(self, *_args: Any) -> None:
        logger.debug("load event triggered")
        self._load_pending = True

    def open(self, url: str) -> str:
        logger.debug("Loading page %s", url)
        try:
            response = self._page.goto(url, wait_until="load", timeout=self._load_timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e}") from e

        # goto() already waited for this navigation's load event.
        self._load_pending = False

        if response is not None and not response.ok:
            logger.debug("Page responded with HTTP %s", response.status)
            return STATUS_FAIL
        return STATUS_SUCCESS

    def evaluate(self, script: str, *args: str) -> Optional[str]:
        self._load_pending = False
        result = self._page.evaluate(script, list(args))
        if result is None:
            return None
        return str(result)

    def wait_for_load(self) -> None:
        logger.debug("Waiting for page to load")
        waited_ms = 0
        while not self._load_pending:
            if waited_ms >= self._load_timeout_ms:
                raise LoadTimeoutError(
                    f"Timed out after {self._load_timeout_ms / 1000:.0f}s waiting for the login page to load."
                )
            self._page.wait_for_timeout(self.poll_interval_ms)
            waited_ms += self.poll_interval_ms
        self._load_pending = False
        logger.debug("Page loaded")

    def read_content(self) -> str:
        return self._page.content()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True

        logger.debug("Closing browser")
        if self._browser is not None:
            try:
                self._browser.close()
            except Exception:
                logger.debug("Failed to close browser (already gone?).", exc_info=True)
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception:
                logger.debug("Failed to stop Playwright.", exc_info=True)
