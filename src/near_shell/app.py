"""Typer application and CLI entry point for near-shell.

This module wires together the top-level Typer application and registers the
built-in commands (``login``, ``state``, ``keys``, ``send``, ``stake``,
``delete``, ``deploy``, ``view``, ``clean``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. Unhandled exceptions are written to a crash log under
the data directory.

See Also:
    :mod:`near_shell.config`: Network presets and configuration resolution.
    :mod:`near_shell.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from near_shell import __version__
from near_shell.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="near",
    help="Command line interface to the NEAR blockchain.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"near-shell {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    env: Optional[str] = typer.Option(
        None, "--env", "-e", help="Network preset (development, production, local, ...)."
    ),
    node_url: Optional[str] = typer.Option(None, "--node-url", help="NEAR node RPC URL."),
    wallet_url: Optional[str] = typer.Option(None, "--wallet-url", help="Wallet URL."),
    helper_url: Optional[str] = typer.Option(None, "--helper-url", help="Contract helper URL."),
    network_id: Optional[str] = typer.Option(None, "--network-id", help="Network id."),
    key_path: Optional[str] = typer.Option(
        None, "--key-path", help="Key file to sign with instead of the key store."
    ),
    master_account: Optional[str] = typer.Option(
        None, "--master-account", help="Account used when no other account is given."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every command.

    Initialises the global :class:`~near_shell.output.OutputManager` and the
    ``near_shell`` logger from CLI flags, resolves the effective
    :class:`~near_shell.models.ShellConfig`, and stores it in
    ``ctx.obj["config"]`` for the command to read.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        env: Network preset name (highest precedence over ``NEAR_ENV``).
        node_url: RPC endpoint override.
        wallet_url: Wallet URL override.
        helper_url: Contract helper URL override.
        network_id: Network id override.
        key_path: Key file override.
        master_account: Master account override.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
    """
    from near_shell.config import resolve_config
    from near_shell.exceptions import ConfigError
    from near_shell.output import OutputFormat, OutputManager, configure_logging, debug, error, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(verbose)

    try:
        config = resolve_config(
            cli_env=env,
            cli_overrides={
                "node_url": node_url,
                "wallet_url": wallet_url,
                "helper_url": helper_url,
                "network_id": network_id,
                "key_path": key_path,
                "master_account": master_account,
            },
        )
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    debug(f"Using env {config.env} ({config.network_id}) at {config.node_url}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from near_shell.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def register_commands() -> None:
    """Attach the built-in commands to :data:`app`. Safe to call twice."""
    if app.registered_commands:
        return

    from near_shell.commands.account import (
        delete_command,
        keys_command,
        login_command,
        send_command,
        stake_command,
        state_command,
    )
    from near_shell.commands.contract import clean_command, deploy_command, view_command

    app.command("login")(login_command)
    app.command("state")(state_command)
    app.command("keys")(keys_command)
    app.command("send")(send_command)
    app.command("stake")(stake_command)
    app.command("delete")(delete_command)
    app.command("deploy")(deploy_command)
    app.command("view")(view_command)
    app.command("clean")(clean_command)


def main() -> None:
    """CLI entry point invoked by the ``near`` console script.

    Unhandled :class:`~near_shell.exceptions.NearShellError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from near_shell.exceptions import NearShellError
        from near_shell.output import error

        if isinstance(exc, NearShellError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
