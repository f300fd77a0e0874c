"""Account operations: read-only queries and signed transactions.

Read-only calls (:meth:`Account.state`, :meth:`Account.get_access_keys`,
:meth:`Account.view_function`) are single JSON-RPC queries through the
connection's provider. Mutating calls (:meth:`Account.deploy_contract`,
:meth:`Account.send_money`, :meth:`Account.stake`,
:meth:`Account.delete_account`) go through py-near's ``Account``, which
fetches the nonce and block hash, signs with the stored key and waits for
the final outcome. Its coroutines run to completion with
:func:`asyncio.run`, so callers stay synchronous.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from py_near import transactions

from near_shell.exceptions import NearShellError, RpcError
from near_shell.key_pair import PublicKey

if TYPE_CHECKING:
    from py_near.account import Account as SdkAccount

    from near_shell.connection import Near
    from near_shell.rpc import JsonRpcProvider

logger = logging.getLogger(__name__)


def _outcome(result: Any) -> dict[str, Any]:
    """Reduce a py-near ``TransactionResult`` to the fields the CLI prints."""
    tx = result.transaction
    return {
        "transaction": {
            "hash": tx.hash,
            "signer_id": tx.signer_id,
            "receiver_id": tx.receiver_id,
        },
        "status": result.status,
    }


class Account:
    """A named account on the network reached through *near*.

    Args:
        near: Open connection created by :func:`~near_shell.connection.connect`.
        account_id: The account's identifier, e.g. ``alice.testnet``.
    """

    def __init__(self, near: Near, account_id: str) -> None:
        self._near = near
        self.account_id = account_id

    @property
    def _provider(self) -> JsonRpcProvider:
        return self._near.provider

    # ------------------------------------------------------------------ #
    # Read-only
    # ------------------------------------------------------------------ #

    def state(self) -> dict[str, Any]:
        """Return the account's ``view_account`` record (amount, locked, code hash, ...)."""
        return self._provider.view_account(self.account_id)

    def get_access_keys(self) -> list[dict[str, Any]]:
        """Return every access key registered on the account."""
        return self._provider.view_access_key_list(self.account_id)

    def view_function(self, contract_id: str, method_name: str, args: dict[str, Any]) -> Any:
        """Call a view method on *contract_id* and decode its return value.

        The contract's result bytes are decoded as JSON; results that are
        not JSON (or not UTF-8) are returned as a string or bytes.
        """
        result = self._provider.call_function(
            contract_id, method_name, json.dumps(args).encode("utf-8")
        )
        for line in result.get("logs", []):
            logger.info("[%s]: %s", contract_id, line)

        raw = bytes(result.get("result", []))
        if not raw:
            return None
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            return raw
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    def deploy_contract(self, code: bytes) -> dict[str, Any]:
        """Deploy *code* (a wasm binary) to this account."""
        return self._submit(lambda sdk: sdk.deploy_contract(code))

    def send_money(self, receiver_id: str, amount: int) -> dict[str, Any]:
        """Transfer *amount* yoctoNEAR to *receiver_id*."""
        return self._submit(lambda sdk: sdk.send_money(receiver_id, amount))

    def stake(self, public_key: str, amount: int) -> dict[str, Any]:
        """Stake *amount* yoctoNEAR using the validator key *public_key*."""
        validator_key = str(PublicKey.from_string(public_key))
        return self._submit(lambda sdk: sdk.stake(validator_key, amount))

    def delete_account(self, beneficiary_id: str) -> dict[str, Any]:
        """Delete this account, sending the remaining balance to *beneficiary_id*."""
        action = transactions.create_delete_account_action(beneficiary_id)
        return self._submit(lambda sdk: sdk.sign_and_submit_tx(self.account_id, [action]))

    def _submit(self, operation: Callable[[SdkAccount], Awaitable[Any]]) -> dict[str, Any]:
        sdk = self._near.sdk_account(self.account_id)

        async def _run() -> Any:
            await sdk.startup()
            return await operation(sdk)

        logger.debug("Submitting transaction signed by %s", self.account_id)
        try:
            result = asyncio.run(_run())
        except NearShellError:
            raise
        except Exception as exc:
            raise RpcError(f"Transaction failed: {exc}") from exc
        return _outcome(result)
