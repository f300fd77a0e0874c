"""Canonical Pydantic models shared across all near-shell modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- built once per invocation by
:func:`near_shell.config.resolve_config` and handed to every command:
    :class:`NetworkConfig` and :class:`ShellConfig`.

**Persisted models** -- serialised as JSON on disk:
    :class:`KeyFile`, the on-disk shape of a key store entry.

All models use Pydantic v2. :class:`ShellConfig` is passed explicitly to
command handlers; there is no process-wide argument parser state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# --- Network ---


class NetworkConfig(BaseModel):
    """Endpoints and identifiers for one network environment.

    Instances are produced from the presets in :mod:`near_shell.config`,
    optionally overridden by a project ``near.json`` file, environment
    variables, and CLI flags.

    Example::

        NetworkConfig(
            network_id="testnet",
            node_url="https://rpc.testnet.near.org",
            wallet_url="https://wallet.testnet.near.org",
        )
    """

    model_config = ConfigDict(extra="forbid")

    network_id: str = Field(description="Network identifier used to scope stored keys")
    node_url: str = Field(description="JSON-RPC endpoint of the node")
    wallet_url: Optional[str] = Field(
        default=None,
        description="Hosted wallet base URL; None when the environment has no wallet",
    )
    helper_url: Optional[str] = Field(
        default=None, description="Contract helper service URL"
    )
    explorer_url: Optional[str] = Field(
        default=None, description="Block explorer base URL for transaction links"
    )
    master_account: Optional[str] = Field(
        default=None, description="Account used when a command needs a signer but none is given"
    )
    key_path: Optional[str] = Field(
        default=None,
        description="Path to a key file used instead of the key store (e.g. a validator key)",
    )


# --- Invocation ---


class ShellConfig(NetworkConfig):
    """Effective configuration for a single CLI invocation.

    Extends :class:`NetworkConfig` with values supplied per command. The root
    Typer callback stores one instance in ``ctx.obj["config"]``.
    """

    env: str = Field(default="development", description="Name of the network preset in use")
    account_id: Optional[str] = Field(
        default=None, description="Account the command acts on or signs with"
    )
    key_store_dir: Path = Field(
        default_factory=lambda: Path.home() / ".near-credentials",
        description="Root directory of the unencrypted file-system key store",
    )
    rpc_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    rpc_max_retries: int = Field(default=3, description="Retries for network errors and 5xx")


# --- Persisted ---


class KeyFile(BaseModel):
    """One key store entry, serialised to ``<network_id>/<account_id>.json``.

    The field names match the layout used by other NEAR tooling so that key
    files can be shared between clients.
    """

    account_id: str = Field(description="Account the key is authorized for")
    public_key: str = Field(description="Public key as 'ed25519:<base58>'")
    private_key: str = Field(
        validation_alias=AliasChoices("private_key", "secret_key"),
        description="Secret key as 'ed25519:<base58>'; validator key files name it secret_key",
    )
