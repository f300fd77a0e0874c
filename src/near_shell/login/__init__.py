"""Browser-mediated login against a hosted wallet.

See Also:
    :func:`near_shell.login.flow.login` for the end-to-end flow.
"""

from near_shell.login.capture import CallbackEndpoint, acquire_endpoint, await_payload
from near_shell.login.flow import LoginState, build_login_url, login
from near_shell.login.verify import verify_account

__all__ = [
    "CallbackEndpoint",
    "LoginState",
    "acquire_endpoint",
    "await_payload",
    "build_login_url",
    "login",
    "verify_account",
]
