from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .aws_config import AwsConfigStore, CredentialPersister
from .browser import PlaywrightBrowserSession
from .config import AppConfig, load_config
from .configure import configure_profile
from .errors import CLIError
from .exchange import AssertionExchanger, make_sts_client
from .flow import LoginFlow
from .logging_config import configure_logging
from .prompts import ConsolePrompter
from .runner import login_profiles, profiles_needing_refresh
from .saml import SamlRequestBuilder


logger = logging.getLogger("aws_azure_login")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="aws-azure-login",
        description="Log into AWS with Azure AD SAML and store temporary credentials in an AWS profile.",
    )
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )
    p.add_argument("--config", default="", help="Optional YAML config (see config.example.yaml)")
    p.add_argument(
        "-p",
        "--profile",
        default="",
        help="The name of the profile to log in with (or configure). Default: $AWS_PROFILE or 'default'.",
    )
    p.add_argument(
        "-a",
        "--all-profiles",
        action="store_true",
        help="Run for all Azure-configured profiles whose credentials are missing or about to expire",
    )
    p.add_argument(
        "-f",
        "--force-refresh",
        action="store_true",
        help="Force a credential refresh, even if they are still valid",
    )
    p.add_argument("-c", "--configure", action="store_true", help="Configure the profile")
    p.add_argument(
        "-m",
        "--mode",
        choices=("cli", "debug"),
        default=None,
        help="'cli' hides the login page (default); 'debug' shows it but still performs the login through the CLI",
    )
    p.add_argument("--no-sandbox", action="store_true", help="Disable the Chromium sandbox (usually necessary in containers)")
    p.add_argument(
        "--disable-chrome-network-service",
        action="store_true",
        help="Disable Chromium's Network Service (needed when the login provider redirects with 3XX)",
    )
    p.add_argument(
        "--disable-chrome-seamless-sso",
        action="store_true",
        help="Disable Chromium's pass-through authentication with Azure AD Seamless Single Sign-On",
    )
    p.add_argument(
        "--no-disable-extensions",
        action="store_true",
        help="Do not pass --disable-extensions to Chromium",
    )
    p.add_argument(
        "--no-prompt",
        action="store_true",
        help="Do not prompt for a role when the assertion grants several; use azure_default_role_arn",
    )
    p.add_argument("--no-verify-ssl", action="store_true", help="Disable TLS certificate verification for AWS STS")
    p.add_argument(
        "--fail-fast",
        action="store_true",
        help="With --all-profiles, stop at the first profile that fails",
    )
    p.add_argument("--step-debug", action="store_true", help="Save the page HTML after every login step (needs a debug dir)")
    p.add_argument("--debug-dir", default="", help="Directory for page HTML captured on failure (and with --step-debug)")
    return p


def _apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    browser = cfg.browser
    if args.mode:
        browser = browser.model_copy(update={"mode": args.mode})
    if args.no_sandbox:
        browser = browser.model_copy(update={"sandbox": False})
    if args.disable_chrome_network_service:
        browser = browser.model_copy(update={"network_service": False})
    if args.disable_chrome_seamless_sso:
        browser = browser.model_copy(update={"seamless_sso": False})
    if args.no_disable_extensions:
        browser = browser.model_copy(update={"disable_extensions": False})

    aws = cfg.aws
    if args.no_verify_ssl:
        aws = aws.model_copy(update={"verify_ssl": False})

    debug_dir = args.debug_dir or cfg.debug_dir
    if args.step_debug and not debug_dir:
        debug_dir = "aws-azure-login-debug"

    return cfg.model_copy(update={"browser": browser, "aws": aws, "debug_dir": debug_dir})


def _flow_factory(cfg: AppConfig, store: AwsConfigStore, prompter: ConsolePrompter, args: argparse.Namespace):
    builder = SamlRequestBuilder(login_url=cfg.azure.login_url, acs_url=cfg.azure.acs_url)

    def _session():
        return PlaywrightBrowserSession.launch(
            headless=cfg.browser.headless,
            sandbox=cfg.browser.sandbox,
            network_service=cfg.browser.network_service,
            seamless_sso=cfg.browser.seamless_sso,
            disable_extensions=cfg.browser.disable_extensions,
            slow_mo_ms=cfg.browser.slow_mo_ms,
            load_timeout_ms=cfg.browser.load_timeout_ms,
        )

    def _make(profile_name: str) -> LoginFlow:
        profile = store.get_profile(profile_name)
        region = profile.region if profile is not None else ""
        exchanger = AssertionExchanger(make_sts_client(region=region, verify_ssl=cfg.aws.verify_ssl))
        return LoginFlow(
            store=store,
            prompter=prompter,
            exchanger=exchanger,
            session_factory=_session,
            persister=CredentialPersister(store),
            request_builder=builder,
            no_prompt=args.no_prompt,
            debug_dir=cfg.debug_dir,
            step_debug=args.step_debug,
        )

    return _make


def _raise_interrupt(signum, _frame) -> None:
    # Turn SIGTERM into KeyboardInterrupt so `finally` blocks (browser disposal) still run.
    raise KeyboardInterrupt(f"signal {signum}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    try:
        signal.signal(signal.SIGTERM, _raise_interrupt)
    except ValueError:
        # Not on the main thread (e.g. embedded use); keep the default handler.
        pass

    try:
        cfg = _apply_overrides(load_config(args.config or None), args)
        configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path or None)

        store = AwsConfigStore(config_path=cfg.aws.config_path, credentials_path=cfg.aws.credentials_path)
        prompter = ConsolePrompter()
        profile_name = args.profile or os.getenv("AWS_PROFILE") or "default"

        if args.configure:
            configure_profile(store, prompter, profile_name)
            return 0

        make_flow = _flow_factory(cfg, store, prompter, args)

        if args.all_profiles:
            names = profiles_needing_refresh(
                store,
                store.list_azure_profiles(),
                force_refresh=args.force_refresh,
                margin_minutes=cfg.aws.refresh_margin_minutes,
            )
            outcomes = login_profiles(
                names,
                make_flow,
                fail_fast=args.fail_fast,
            )
            failed = [o for o in outcomes if not o.ok]
            for o in failed:
                print(f"{o.profile}: {o.message}", file=sys.stderr)
            return 2 if failed else 0

        if not profiles_needing_refresh(
            store,
            [profile_name],
            force_refresh=args.force_refresh,
            margin_minutes=cfg.aws.refresh_margin_minutes,
        ):
            return 0

        make_flow(profile_name).login(profile_name)
        return 0
    except CLIError as e:
        print(str(e), file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130
    except Exception:
        logger.exception("Unexpected error")
        return 1

