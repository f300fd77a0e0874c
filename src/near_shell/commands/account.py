"""Account commands -- log in, inspect accounts, move and stake funds.

Provides the ``near login``, ``near state``, ``near keys``, ``near send``,
``near stake``, and ``near delete`` commands. Each one connects with the
invocation's :class:`~near_shell.models.ShellConfig` and delegates to an
:class:`~near_shell.account.Account`.

Typical workflow::

    near login                                  # authorize a key in the wallet
    near state alice.testnet                    # balance and storage
    near send alice.testnet bob.testnet 1.5     # transfer 1.5 NEAR
"""

from __future__ import annotations

from typing import Any

import typer

from near_shell.commands import exit_on_error, get_config
from near_shell.exit_codes import EXIT_LOGIN_FAILURE
from near_shell.output import info, inspect_response, print_table, success


def login_command(ctx: typer.Context) -> None:
    """Log in through the wallet and store a new key for your account.

    Opens the wallet in the browser and waits for it to redirect back with
    the authorized account id. If that does not work, asks for the account
    id in the terminal.

    Raises:
        typer.Exit: With code 3 if verification failed or the prompt was
            cancelled.

    Example::

        near login
        near --env mainnet login
    """
    from near_shell.login import LoginState, login

    with exit_on_error():
        config = get_config(ctx)
    state = login(config)
    if state in (LoginState.VERIFY_FAILED, LoginState.ABORTED):
        raise typer.Exit(code=EXIT_LOGIN_FAILURE)


def state_command(
    ctx: typer.Context,
    account_id: str = typer.Argument(help="Account to view."),
) -> None:
    """View account state: balance, locked stake, storage, code hash.

    The yoctoNEAR balance is also shown as ``formattedAmount`` in NEAR.

    Example::

        near state alice.testnet
    """
    from near_shell.amount import format_near_amount
    from near_shell.connection import connect

    with exit_on_error():
        config = get_config(ctx)
        with connect(config) as near:
            state = near.account(account_id).state()

    if state and state.get("amount"):
        state["formattedAmount"] = format_near_amount(state["amount"])
    info(f"Account {account_id}")
    inspect_response(state)


def _permission_label(permission: Any) -> str:
    if isinstance(permission, dict) and "FunctionCall" in permission:
        call = permission["FunctionCall"] or {}
        methods = ", ".join(call.get("method_names") or []) or "any method"
        return f"FunctionCall({call.get('receiver_id', '?')}: {methods})"
    return str(permission)


def keys_command(
    ctx: typer.Context,
    account_id: str = typer.Argument(help="Account whose access keys to list."),
) -> None:
    """List the access keys of an account.

    Example::

        near keys alice.testnet
    """
    from near_shell.connection import connect

    with exit_on_error():
        config = get_config(ctx)
        with connect(config) as near:
            access_keys = near.account(account_id).get_access_keys()

    info(f"Keys for account {account_id}")
    rows = [
        [
            str(key.get("public_key", "")),
            str((key.get("access_key") or {}).get("nonce", "")),
            _permission_label((key.get("access_key") or {}).get("permission")),
        ]
        for key in access_keys
    ]
    print_table(["Public key", "Nonce", "Permission"], rows, title=account_id)


def send_command(
    ctx: typer.Context,
    sender: str = typer.Argument(help="Account that sends (must have a stored key)."),
    receiver: str = typer.Argument(help="Account that receives."),
    amount: str = typer.Argument(help="Amount in NEAR, e.g. 1.5"),
) -> None:
    """Send NEAR from one account to another.

    Example::

        near send alice.testnet bob.testnet 1.5
    """
    from near_shell.amount import parse_near_amount
    from near_shell.connection import connect

    with exit_on_error():
        config = get_config(ctx)
        yocto = parse_near_amount(amount)
        info(f"Sending {amount} NEAR to {receiver} from {sender}")
        with connect(config) as near:
            outcome = near.account(sender).send_money(receiver, yocto)

    inspect_response(outcome, config.explorer_url)


def stake_command(
    ctx: typer.Context,
    account_id: str = typer.Argument(help="Account that stakes (must have a stored key)."),
    staking_key: str = typer.Argument(help="Validator public key, ed25519:..."),
    amount: str = typer.Argument(help="Amount in NEAR to stake."),
) -> None:
    """Create a staking transaction.

    Example::

        near stake validator.testnet ed25519:7PGseFbWxvYVgZ89K1uTJKYoKetWs7BJtbyXDzfbAcqX 10
    """
    from near_shell.amount import parse_near_amount
    from near_shell.connection import connect

    with exit_on_error():
        config = get_config(ctx)
        yocto = parse_near_amount(amount)
        info(f"Staking {amount} ({yocto}) on {account_id} with public key = {staking_key}.")
        with connect(config) as near:
            outcome = near.account(account_id).stake(staking_key, yocto)

    inspect_response(outcome, config.explorer_url)


def delete_command(
    ctx: typer.Context,
    account_id: str = typer.Argument(help="Account to delete (must have a stored key)."),
    beneficiary_id: str = typer.Argument(help="Account that receives the remaining balance."),
) -> None:
    """Delete an account and transfer its funds to a beneficiary.

    Example::

        near delete old.alice.testnet alice.testnet
    """
    from near_shell.connection import connect

    with exit_on_error():
        config = get_config(ctx)
        info(
            f"Deleting account. Account id: {account_id}, node: {config.node_url}, "
            f"helper: {config.helper_url}, beneficiary: {beneficiary_id}"
        )
        with connect(config) as near:
            near.account(account_id).delete_account(beneficiary_id)

    success(f'Account {account_id} for network "{config.network_id}" was deleted.')
