"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~near_shell.exceptions.NearShellError` subclass.
Shell wrappers and CI scripts can inspect the exit code to determine the
failure class without parsing stderr.

Example::

    $ near state missing.testnet
    $ echo $?
    4   # EXIT_NOT_FOUND -- the account does not exist
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_LOGIN_FAILURE = 3
"""The login flow could not authorize a key for an account."""

EXIT_NOT_FOUND = 4
"""The requested account does not exist on the network."""

EXIT_RPC_ERROR = 5
"""The node answered with a JSON-RPC error or an HTTP 5xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_KEY_ERROR = 8
"""A key pair could not be parsed, generated, loaded, or stored."""
