"""Built-in CLI commands for near-shell.

* :mod:`~near_shell.commands.account` -- ``login``, ``state``, ``keys``,
  ``send``, ``stake``, ``delete``.
* :mod:`~near_shell.commands.contract` -- ``deploy``, ``view``, ``clean``.

Every command is a plain callback registered directly on the root app. The
effective :class:`~near_shell.models.ShellConfig` is read from
``ctx.obj["config"]``, where :func:`~near_shell.app.main_callback` stores it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from near_shell.exceptions import ConfigError, KeyStoreError, NearShellError
from near_shell.models import ShellConfig
from near_shell.output import error, suggest


def get_config(ctx: typer.Context) -> ShellConfig:
    """Return the invocation's :class:`ShellConfig` from the Typer context.

    Raises:
        ConfigError: If the root callback did not run (commands invoked
            outside the ``near`` app).
    """
    config = (ctx.obj or {}).get("config")
    if not isinstance(config, ShellConfig):
        raise ConfigError("Configuration was not initialised")
    return config


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Report a :class:`NearShellError` and exit with its code."""
    try:
        yield
    except NearShellError as exc:
        error(str(exc))
        if isinstance(exc, KeyStoreError):
            suggest("Run 'near login' to store a key for this account.")
        raise typer.Exit(code=exc.exit_code) from None
