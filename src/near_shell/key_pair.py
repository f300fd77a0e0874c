"""Ed25519 key pairs in the ``ed25519:<base58>`` string format.

Public keys are rendered as ``ed25519:`` followed by the base58 encoding of
the 32 raw public key bytes. Secret keys use the 64-byte NaCl layout
(seed followed by public key) so that key files written here can be read by
other NEAR clients, and vice versa.
"""

from __future__ import annotations

import base58
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from near_shell.exceptions import KeyPairError

ED25519 = "ed25519"

_PUBLIC_KEY_LENGTH = 32
_SEED_LENGTH = 32


def _split_key_string(value: str) -> tuple[str, bytes]:
    """Split ``"<curve>:<base58>"`` into ``(curve, raw bytes)``.

    A bare base58 string without a curve prefix is treated as ed25519.
    """
    curve, sep, encoded = value.partition(":")
    if not sep:
        curve, encoded = ED25519, value
    curve = curve.lower()
    if curve != ED25519:
        raise KeyPairError(f"Unsupported key algorithm: {curve}")
    try:
        return curve, base58.b58decode(encoded)
    except ValueError as exc:
        raise KeyPairError(f"Invalid base58 key data: {exc}") from exc


class PublicKey:
    """An ed25519 public key."""

    def __init__(self, data: bytes) -> None:
        if len(data) != _PUBLIC_KEY_LENGTH:
            raise KeyPairError(
                f"Public key must be {_PUBLIC_KEY_LENGTH} bytes, got {len(data)}"
            )
        self.data = bytes(data)

    @classmethod
    def from_string(cls, value: str) -> PublicKey:
        _, raw = _split_key_string(value)
        return cls(raw)

    def __str__(self) -> str:
        return f"{ED25519}:{base58.b58encode(self.data).decode('ascii')}"

    def __repr__(self) -> str:
        return f"PublicKey({self})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PublicKey):
            return self.data == other.data
        if isinstance(other, str):
            return str(self) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.data)


class KeyPair:
    """An ed25519 signing key and its public half.

    Create a fresh pair with :meth:`from_random` or load one from its
    secret-key string with :meth:`from_string`.

    Example::

        key_pair = KeyPair.from_random("ed25519")
        str(key_pair.public_key)   # 'ed25519:8hSHprDq...'
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self.public_key = PublicKey(private_key.public_key().public_bytes_raw())

    @classmethod
    def from_random(cls, algorithm: str = ED25519) -> KeyPair:
        """Generate a new key pair.

        Raises:
            KeyPairError: If *algorithm* is not ``ed25519``.
        """
        if algorithm.lower() != ED25519:
            raise KeyPairError(f"Unsupported key algorithm: {algorithm}")
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_string(cls, secret_key: str) -> KeyPair:
        """Load a key pair from ``ed25519:<base58 secret>``.

        Accepts both the 64-byte seed+public layout and a bare 32-byte seed.

        Raises:
            KeyPairError: On an unknown prefix, bad base58, wrong length, or
                a public half that does not match the seed.
        """
        _, raw = _split_key_string(secret_key)
        if len(raw) not in (_SEED_LENGTH, _SEED_LENGTH + _PUBLIC_KEY_LENGTH):
            raise KeyPairError(f"Secret key must be 32 or 64 bytes, got {len(raw)}")
        key_pair = cls(Ed25519PrivateKey.from_private_bytes(raw[:_SEED_LENGTH]))
        if len(raw) > _SEED_LENGTH and raw[_SEED_LENGTH:] != key_pair.public_key.data:
            raise KeyPairError("Secret key does not match its embedded public key")
        return key_pair

    @property
    def secret_key(self) -> str:
        seed = self._private_key.private_bytes_raw()
        return f"{ED25519}:{base58.b58encode(seed + self.public_key.data).decode('ascii')}"

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key})"
