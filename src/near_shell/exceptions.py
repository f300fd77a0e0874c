"""Exception hierarchy for near-shell.

All exceptions inherit from :class:`NearShellError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`near_shell.exit_codes`.
The top-level error handler in :func:`near_shell.app.main` catches
``NearShellError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

The login flow defines its own sub-tree under :class:`LoginError`. Those
errors are caught by :func:`near_shell.login.flow.login` at the point of
occurrence and turned into console messages; they only reach the top-level
handler when a login helper is called directly.

Subclass hierarchy::

    NearShellError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- LoginError               (exit 3)
    |   +-- ListenerUnavailable
    |   +-- PayloadCaptureFailed
    |   +-- BrowserLaunchFailed
    |   +-- VerificationFailed
    |   +-- PromptAborted
    +-- AccountNotFoundError     (exit 4)
    +-- RpcError                 (exit 5)
    +-- ConnectionError_         (exit 6)
    +-- KeyPairError             (exit 8)
    +-- KeyStoreError            (exit 8)
    +-- ConfigError              (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

from near_shell.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_KEY_ERROR,
    EXIT_LOGIN_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_RPC_ERROR,
)


class NearShellError(Exception):
    """Base exception for all near-shell errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`near_shell.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(NearShellError):
    """Raised for invalid CLI arguments (bad JSON args, unreadable wasm file, bad amounts)."""

    exit_code = EXIT_INVALID_USAGE


class LoginError(NearShellError):
    """Base class for failures inside the browser login flow."""

    exit_code = EXIT_LOGIN_FAILURE


class ListenerUnavailable(LoginError):
    """Raised when no local port in the callback range can be bound."""


# Name used for the same failure by callers that think in terms of ports.
NoPortAvailable = ListenerUnavailable


class PayloadCaptureFailed(LoginError):
    """Raised when the callback listener times out or receives an unusable request."""


class BrowserLaunchFailed(LoginError):
    """Raised when the default browser cannot be opened."""


class VerificationFailed(LoginError):
    """Raised when a key pair cannot be confirmed as authorized for an account.

    The underlying failure (network error, unknown account, key not listed)
    is kept on :attr:`cause` and chained via ``raise ... from``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class PromptAborted(LoginError):
    """Raised when the terminal prompt is closed before a line is entered."""


class AccountNotFoundError(NearShellError):
    """Raised when the node reports that an account does not exist."""

    exit_code = EXIT_NOT_FOUND


class RpcError(NearShellError):
    """Raised when the node answers with a JSON-RPC error object or a 5xx status.

    Args:
        message: Human-readable error description.
        data: The raw ``error`` object from the JSON-RPC response, if any.
    """

    exit_code = EXIT_RPC_ERROR

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.data = data


class ConnectionError_(NearShellError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class KeyPairError(NearShellError):
    """Raised when a key string cannot be parsed or an algorithm is unsupported."""

    exit_code = EXIT_KEY_ERROR


class KeyStoreError(NearShellError):
    """Raised when a signing key is missing from, or cannot be written to, the key store."""

    exit_code = EXIT_KEY_ERROR


class ConfigError(NearShellError):
    """Raised for configuration problems (unknown environment, invalid project config)."""

    exit_code = EXIT_GENERIC_FAILURE
