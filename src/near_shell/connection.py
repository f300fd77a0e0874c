"""Connection to a NEAR network: one RPC provider plus the key store.

:func:`connect` is the only entry point commands use to reach the network::

    with connect(config) as near:
        account = near.account("alice.testnet")
        account.state()

The returned :class:`Near` owns the :class:`~near_shell.rpc.JsonRpcProvider`
for the duration of the ``with`` block, resolves signing keys from the key
store or, for local networks, from the configured ``key_path``, and hands
out py-near accounts that sign with them.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

import httpx
from py_near.account import Account as SdkAccount

from near_shell.exceptions import KeyPairError, KeyStoreError
from near_shell.key_pair import KeyPair
from near_shell.key_store import KeyStore, load_key_file
from near_shell.models import ShellConfig
from near_shell.output import debug
from near_shell.rpc import JsonRpcProvider

if TYPE_CHECKING:
    from near_shell.account import Account


class Near:
    """An open connection to the network described by a :class:`ShellConfig`.

    Args:
        config: Effective configuration of the invocation.
        provider: JSON-RPC provider for ``config.node_url``.
        key_store: Key store holding signing keys.
    """

    def __init__(self, config: ShellConfig, provider: JsonRpcProvider, key_store: KeyStore) -> None:
        self.config = config
        self.provider = provider
        self.key_store = key_store

    def __enter__(self) -> Near:
        self.provider.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        self.provider.close()

    def account(self, account_id: str) -> Account:
        """Return an :class:`~near_shell.account.Account` bound to this connection."""
        from near_shell.account import Account

        return Account(self, account_id)

    def signer_key(self, account_id: str) -> KeyPair:
        """Find the key pair that signs for *account_id*.

        The key store is consulted first; a ``key_path`` file (such as a
        local validator key) is used when it belongs to the same account.

        Raises:
            KeyStoreError: If no key for *account_id* is available.
        """
        network_id = self.config.network_id
        key_pair = self.key_store.get_key(network_id, account_id)
        if key_pair is not None:
            return key_pair

        if self.config.key_path:
            path = Path(self.config.key_path).expanduser()
            if path.is_file():
                entry = load_key_file(path)
                if entry.account_id == account_id:
                    debug(f"Using key file {path} for {account_id}")
                    try:
                        return KeyPair.from_string(entry.private_key)
                    except KeyPairError as exc:
                        raise KeyStoreError(f"Invalid key in {path}: {exc}") from exc

        raise KeyStoreError(
            f"Can not sign transactions for account {account_id} on network {network_id}: "
            f"no matching key pair found in {self.key_store.path_for(network_id, account_id)}"
        )

    def sdk_account(self, account_id: str) -> SdkAccount:
        """Return a py-near account that signs for *account_id* against this node.

        Raises:
            KeyStoreError: If no key for *account_id* is available.
        """
        key_pair = self.signer_key(account_id)
        return SdkAccount(account_id, key_pair.secret_key, rpc_addr=self.config.node_url)


def connect(config: ShellConfig, transport: Optional[httpx.BaseTransport] = None) -> Near:
    """Build a :class:`Near` connection for *config*.

    Args:
        config: Effective configuration; ``node_url``, ``network_id``,
            ``key_store_dir``, and the RPC tuning fields are used.
        transport: Optional httpx transport override (tests).
    """
    debug(f"Connecting to {config.node_url} (network {config.network_id})")
    provider = JsonRpcProvider(
        config.node_url,
        timeout=config.rpc_timeout,
        max_retries=config.rpc_max_retries,
        transport=transport,
    )
    return Near(config, provider, KeyStore(config.key_store_dir))
