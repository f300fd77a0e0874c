"""Browser login: authorize a new key in the wallet and capture the account id.

The flow is a strictly sequential decision tree::

    START -> URL_BUILT -> LISTENING -> CAPTURED -> VERIFIED | VERIFY_FAILED
                       \\-> (listener unavailable | capture failed)
                            -> PROMPTING -> VERIFIED | VERIFY_FAILED | ABORTED

1. Without a wallet URL there is nothing to log in to; a note is printed.
2. A fresh ed25519 key pair is generated and the wallet login URL built.
3. A loopback listener is bound and passed to the wallet as ``success_url``;
   its failure is logged, never shown.
4. The browser is opened and the redirect awaited. A captured
   ``account_id`` is verified once and the flow ends there.
5. Otherwise the user types the account id at a terminal prompt.

Each step is attempted once. Errors are reported on stderr and the flow
moves to the next fallback; nothing here raises to the caller.
"""

from __future__ import annotations

import enum
import logging
import signal
import threading
import webbrowser
from contextlib import contextmanager
from typing import Any, Iterator, Optional
from urllib.parse import urlencode

import typer

from near_shell.exceptions import (
    BrowserLaunchFailed,
    LoginError,
    PayloadCaptureFailed,
    PromptAborted,
    VerificationFailed,
)
from near_shell.key_pair import KeyPair
from near_shell.login.capture import acquire_endpoint, await_payload
from near_shell.login.verify import verify_account
from near_shell.models import ShellConfig
from near_shell.output import error, info, notice, warning

logger = logging.getLogger(__name__)

LOGIN_TITLE = "NEAR Shell"

_PROMPT = (
    "Please authorize at least one account at the URL above.\n\n"
    "Which account did you authorize for use with NEAR Shell?  Enter it here:"
)


class LoginState(str, enum.Enum):
    """Terminal states of one :func:`login` call."""

    NOT_APPLICABLE = "not_applicable"
    VERIFIED = "verified"
    VERIFY_FAILED = "verify_failed"
    ABORTED = "aborted"


def build_login_url(wallet_url: str, public_key: str, success_url: Optional[str] = None) -> str:
    """Return ``{wallet_url}/login/?title=...&public_key=...[&success_url=...]``."""
    params = {"title": LOGIN_TITLE, "public_key": public_key}
    if success_url:
        params["success_url"] = success_url
    return f"{wallet_url.rstrip('/')}/login/?{urlencode(params)}"


def open_browser(url: str) -> None:
    """Open *url* in the default browser.

    Raises:
        BrowserLaunchFailed: If no browser could be launched.
    """
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as exc:
        raise BrowserLaunchFailed(str(exc)) from exc
    if not opened:
        raise BrowserLaunchFailed("no runnable browser found")


class TerminalReader:
    """Line reader over the process's stdin/stdout, valid inside :func:`terminal_reader`."""

    def __init__(self) -> None:
        self.closed = False

    def read_line(self, prompt: str) -> str:
        """Show *prompt* and return the entered line, stripped.

        Raises:
            PromptAborted: On EOF or Ctrl-C, or if the reader was closed.
        """
        if self.closed:
            raise PromptAborted("Terminal reader is closed")
        try:
            value = typer.prompt(prompt, default="", show_default=False, prompt_suffix=" ")
        except (typer.Abort, KeyboardInterrupt, EOFError) as exc:
            raise PromptAborted("No account id entered") from exc
        return str(value).strip()


@contextmanager
def terminal_reader() -> Iterator[TerminalReader]:
    """Scope an interactive reader; Ctrl-C aborts only the prompt.

    While the scope is open, SIGINT raises :class:`KeyboardInterrupt` so
    the read can be abandoned cleanly. The previous handler is restored and
    the reader closed on every exit path.
    """
    reader = TerminalReader()
    previous: Any = None
    swap = threading.current_thread() is threading.main_thread()
    if swap:
        previous = signal.signal(signal.SIGINT, signal.default_int_handler)
    try:
        yield reader
    finally:
        reader.closed = True
        if swap:
            signal.signal(signal.SIGINT, previous)


def prompt_for_account(key_pair: KeyPair, config: ShellConfig) -> LoginState:
    """Ask the user which account they authorized, then verify it once."""
    with terminal_reader() as reader:
        try:
            account_id = reader.read_line(_PROMPT)
        except PromptAborted as exc:
            logger.debug("Login prompt aborted", exc_info=True)
            error(f"Login cancelled. {exc}")
            return LoginState.ABORTED

        try:
            verify_account(account_id, key_pair, config)
        except VerificationFailed as exc:
            error(str(exc))
            return LoginState.VERIFY_FAILED
        return LoginState.VERIFIED


def _capture_account_id(wallet_url: str, public_key: str) -> Optional[str]:
    """Run the automatic path and return the captured account id, if any."""
    try:
        endpoint = acquire_endpoint()
    except LoginError:
        # Quietly fall back to the prompt.
        logger.debug("No callback listener available", exc_info=True)
        return None

    with endpoint:
        redirect_url = build_login_url(wallet_url, public_key, success_url=endpoint.url)
        try:
            open_browser(redirect_url)
        except BrowserLaunchFailed as exc:
            warning(f"Failed to open the URL [ {redirect_url} ]: {exc}")

        try:
            payload = await_payload(endpoint, ["account_id"])
        except PayloadCaptureFailed as exc:
            error(f"Failed to capture payload. {exc}")
            return None
    return payload["account_id"]


def login(config: ShellConfig) -> LoginState:
    """Authorize a new key for one of the user's accounts.

    Args:
        config: Effective configuration. ``wallet_url`` decides whether a
            login is possible at all; the rest is used for verification.

    Returns:
        The terminal :class:`LoginState` of this attempt.
    """
    if not config.wallet_url:
        info(
            "Log in is not needed on this environment. "
            "Please use appropriate master account for shell operations."
        )
        return LoginState.NOT_APPLICABLE

    key_pair = KeyPair.from_random("ed25519")
    public_key = str(key_pair.public_key)
    login_url = build_login_url(config.wallet_url, public_key)

    notice("\nPlease authorize NEAR Shell on at least one of your accounts.")
    notice(f"\nIf your browser doesn't automatically open, please visit this URL\n{login_url}")

    account_id = _capture_account_id(config.wallet_url, public_key)

    if account_id:
        try:
            verify_account(account_id, key_pair, config)
        except VerificationFailed as exc:
            error(f"Failed to verify accountId. {exc}")
            return LoginState.VERIFY_FAILED
        return LoginState.VERIFIED

    return prompt_for_account(key_pair, config)
