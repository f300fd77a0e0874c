"""Confirm that the wallet authorized a freshly generated key for an account.

Verification lists the account's access keys and looks for the key pair's
public key among them. A match means the wallet added the key, so it is
saved to the key store and later commands can sign as that account.
"""

from __future__ import annotations

from near_shell.connection import connect
from near_shell.exceptions import NearShellError, VerificationFailed
from near_shell.key_pair import KeyPair
from near_shell.models import ShellConfig
from near_shell.output import debug, success


def verify_account(account_id: str, key_pair: KeyPair, config: ShellConfig) -> None:
    """Check that *key_pair* is an access key of *account_id* and store it.

    Args:
        account_id: Account the user authorized in the wallet.
        key_pair: Key pair generated for this login attempt.
        config: Effective configuration; ``node_url`` and ``network_id``
            select the network, ``key_store_dir`` where the key is saved.

    Raises:
        VerificationFailed: If the account id is empty, the account cannot be
            queried, or the key is not among its access keys. Network and
            RPC failures are chained as the cause.
    """
    account_id = (account_id or "").strip()
    if not account_id:
        raise VerificationFailed("No account id was provided")

    public_key = str(key_pair.public_key)
    try:
        with connect(config) as near:
            access_keys = near.account(account_id).get_access_keys()
            debug(f"{account_id} has {len(access_keys)} access key(s)")
            found = any(key.get("public_key") == public_key for key in access_keys)
            if found:
                near.key_store.set_key(config.network_id, account_id, key_pair)
    except NearShellError as exc:
        raise VerificationFailed(f"Could not verify {account_id}: {exc}", cause=exc) from exc

    if not found:
        raise VerificationFailed(
            f"The account you provided, [ {account_id} ], has not authorized the "
            f"expected key [ {public_key} ]. Please try again."
        )

    success(f"Logged in as [ {account_id} ] with public key [ {public_key} ] successfully")
