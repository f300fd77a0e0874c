"""Unencrypted file-system key store scoped per network and account.

Stores keys in ``~/.near-credentials/<network_id>/<account_id>.json``.
Files are written atomically via :func:`~near_shell.config.atomic_write`
with ``0o600`` permissions so that secret keys are never world-readable,
even momentarily.

Each account maps to exactly one JSON file holding a serialised
:class:`~near_shell.models.KeyFile`.

See Also:
    :func:`near_shell.login.verify.verify_account` -- stores the key pair
    once the wallet has authorized it.
    :meth:`~near_shell.connection.Near.signer_key` -- loads signing keys.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from near_shell.config import atomic_write
from near_shell.exceptions import KeyPairError, KeyStoreError
from near_shell.key_pair import KeyPair
from near_shell.models import KeyFile


def load_key_file(path: Path) -> KeyFile:
    """Read a single key file (key store entry or validator key).

    Raises:
        KeyStoreError: If the file is missing or not a valid key file.
    """
    if not path.is_file():
        raise KeyStoreError(f"Key file not found: {path}")
    try:
        return KeyFile.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError, OSError) as exc:
        raise KeyStoreError(f"Invalid key file {path}: {exc}") from exc


class KeyStore:
    """Read/write key pairs for accounts on one or more networks.

    Args:
        root: Key store root directory. Network sub-directories are created
            on first write.

    Example::

        store = KeyStore(Path.home() / ".near-credentials")
        store.set_key("testnet", "alice.testnet", key_pair)
        store.get_key("testnet", "alice.testnet")
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, network_id: str, account_id: str) -> Path:
        """The filesystem path of one account's key file."""
        return self._root / network_id / f"{account_id}.json"

    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        """Persist *key_pair* for *account_id* atomically with ``0o600`` permissions.

        Raises:
            KeyStoreError: If the file cannot be written.
        """
        entry = KeyFile(
            account_id=account_id,
            public_key=str(key_pair.public_key),
            private_key=key_pair.secret_key,
        )
        text = json.dumps(entry.model_dump(mode="json")) + "\n"
        try:
            atomic_write(self.path_for(network_id, account_id), text, mode=0o600)
        except OSError as exc:
            raise KeyStoreError(f"Cannot write key for {account_id}: {exc}") from exc

    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]:
        """Load the key pair stored for *account_id*, or ``None`` if there is none.

        Raises:
            KeyStoreError: If the file exists but cannot be parsed.
        """
        path = self.path_for(network_id, account_id)
        if not path.is_file():
            return None
        entry = load_key_file(path)
        try:
            return KeyPair.from_string(entry.private_key)
        except KeyPairError as exc:
            raise KeyStoreError(f"Invalid key for {account_id} at {path}: {exc}") from exc
