from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup

from .selectors import AzureLoginSelectors


@dataclass(frozen=True)
class PageSnapshot:
    """
    What the login flow needs to know about the page currently loaded in the browser.
    """

    error_message: str
    has_mfa_input: bool
    assertion: Optional[str]

    @classmethod
    def parse(cls, markup: str, selectors: Optional[AzureLoginSelectors] = None) -> "PageSnapshot":
        sel = selectors or AzureLoginSelectors()
        soup = BeautifulSoup(markup or "", "html.parser")

        heading = soup.select_one(sel.error_heading)
        error_message = heading.get_text(strip=True) if heading is not None else ""

        has_mfa_input = soup.select_one(sel.mfa_code_input) is not None

        field = soup.select_one(sel.assertion_input) or soup.select_one(sel.assertion_input_fallback)
        assertion = None
        if field is not None:
            value = (field.get("value") or "").strip()
            assertion = value or None

        return cls(error_message=error_message, has_mfa_input=has_mfa_input, assertion=assertion)
