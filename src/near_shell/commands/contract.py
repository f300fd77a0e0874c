"""Contract commands -- deploy, call view methods, clean build output.

Example usage::

    near deploy --account-id app.alice.testnet --wasm-file out/main.wasm
    near view app.alice.testnet get_greeting '{"account_id": "bob.testnet"}'
    near clean
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, Optional

import typer

from near_shell.commands import exit_on_error, get_config
from near_shell.exceptions import InvalidUsageError
from near_shell.output import info, inspect_response, success

DEFAULT_WASM_FILE = "./out/main.wasm"
DEFAULT_OUT_DIR = "./out"
FALLBACK_VIEW_ACCOUNT = "register.near"


def _parse_args(raw: Optional[str]) -> dict[str, Any]:
    """Parse the JSON arguments of a view call; an empty value means ``{}``."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"Arguments must be valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise InvalidUsageError("Arguments must be a JSON object")
    return parsed


def deploy_command(
    ctx: typer.Context,
    account_id: Optional[str] = typer.Option(
        None, "--account-id", help="Account to deploy the contract to."
    ),
    wasm_file: Path = typer.Option(
        Path(DEFAULT_WASM_FILE), "--wasm-file", help="Path to the compiled contract."
    ),
) -> None:
    """Deploy a compiled contract to an account.

    The account needs a stored key (see ``near login``) or must be the
    account of the configured ``key_path`` file.

    Example::

        near deploy --account-id app.alice.testnet --wasm-file out/main.wasm
    """
    from near_shell.connection import connect

    with exit_on_error():
        config = get_config(ctx)
        account_id = account_id or config.account_id
        if not account_id:
            raise InvalidUsageError("Missing --account-id: which account should the contract go to?")
        if not wasm_file.is_file():
            raise InvalidUsageError(f"Contract file not found: {wasm_file}")

        info(
            f"Starting deployment. Account id: {account_id}, node: {config.node_url}, "
            f"helper: {config.helper_url}, file: {wasm_file}"
        )
        code = wasm_file.read_bytes()
        with connect(config) as near:
            outcome = near.account(account_id).deploy_contract(code)

    inspect_response(outcome, config.explorer_url)


def view_command(
    ctx: typer.Context,
    contract_name: str = typer.Argument(help="Contract account to call."),
    method_name: str = typer.Argument(help="View method to call."),
    args: Optional[str] = typer.Argument(None, help="Arguments as a JSON object."),
    account_id: Optional[str] = typer.Option(
        None, "--account-id", help="Account the call is made from."
    ),
) -> None:
    """Make a read-only call to a contract method.

    View calls are free and do not need a key.

    Example::

        near view app.alice.testnet get_greeting '{"account_id": "bob.testnet"}'
    """
    from near_shell.connection import connect

    with exit_on_error():
        config = get_config(ctx)
        call_args = _parse_args(args)
        caller = account_id or config.account_id or config.master_account or FALLBACK_VIEW_ACCOUNT
        info(f"View call: {contract_name}.{method_name}({args or ''})")
        with connect(config) as near:
            result = near.account(caller).view_function(contract_name, method_name, call_args)

    inspect_response(result)


def clean_command(
    out_dir: Path = typer.Option(
        Path(DEFAULT_OUT_DIR), "--out-dir", help="Build output directory to remove."
    ),
) -> None:
    """Remove the contract build output directory.

    Example::

        near clean --out-dir ./out
    """
    if out_dir.is_dir():
        shutil.rmtree(out_dir)
    success("Clean complete.")
