"""Configuration management with network presets, XDG paths, and precedence resolution.

This module handles all configuration for near-shell:

* **Network presets** -- one :class:`~near_shell.models.NetworkConfig` per
  environment name (``mainnet``, ``testnet``, ``betanet``, ``local``,
  ``ci`` ...). See :func:`get_network_config`.
* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.near-shell/`` on macOS and Windows. See
  :func:`get_data_dir`. Keys live in ``~/.near-credentials`` regardless of
  platform so that other NEAR tooling finds them.
* **Project config** -- an optional ``./near.json`` that overrides preset
  fields for the current directory. See :func:`load_project_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and preset defaults into the
  :class:`~near_shell.models.ShellConfig` passed to every command.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from near_shell.exceptions import ConfigError
from near_shell.models import NetworkConfig, ShellConfig

_APP_NAME = "near-shell"
_PROJECT_CONFIG_FILENAME = "near.json"

DEFAULT_ENV = "development"


# --- Network presets ---


_PRESETS: dict[str, dict[str, Any]] = {
    "mainnet": {
        "network_id": "mainnet",
        "node_url": "https://rpc.mainnet.near.org",
        "wallet_url": "https://wallet.near.org",
        "helper_url": "https://helper.mainnet.near.org",
        "explorer_url": "https://explorer.mainnet.near.org",
    },
    "testnet": {
        "network_id": "testnet",
        "node_url": "https://rpc.testnet.near.org",
        "wallet_url": "https://wallet.testnet.near.org",
        "helper_url": "https://helper.testnet.near.org",
        "explorer_url": "https://explorer.testnet.near.org",
    },
    "betanet": {
        "network_id": "betanet",
        "node_url": "https://rpc.betanet.near.org",
        "wallet_url": "https://wallet.betanet.near.org",
        "helper_url": "https://helper.betanet.near.org",
        "explorer_url": "https://explorer.betanet.near.org",
    },
    "local": {
        "network_id": "local",
        "node_url": "http://localhost:3030",
        "wallet_url": "http://localhost:4000/wallet",
        "key_path": str(Path.home() / ".near" / "validator_key.json"),
    },
    # CI networks have no hosted wallet; a master account signs instead.
    "ci": {
        "network_id": "shared-test",
        "node_url": "https://rpc.ci-testnet.near.org",
        "master_account": "test.near",
    },
    "ci-betanet": {
        "network_id": "shared-test-staging",
        "node_url": "https://rpc.ci-betanet.near.org",
        "master_account": "test.near",
    },
}

_ALIASES = {
    "production": "mainnet",
    "development": "testnet",
    "test": "ci",
}


def available_envs() -> list[str]:
    """Return every accepted environment name, aliases included, sorted."""
    return sorted(set(_PRESETS) | set(_ALIASES))


def get_network_config(env: str) -> NetworkConfig:
    """Return a fresh :class:`~near_shell.models.NetworkConfig` for *env*.

    Args:
        env: Environment name or alias (``production`` -> ``mainnet``,
            ``development`` -> ``testnet``, ``test`` -> ``ci``).

    Raises:
        ConfigError: If *env* is not a known environment.
    """
    name = _ALIASES.get(env, env)
    preset = _PRESETS.get(name)
    if preset is None:
        raise ConfigError(
            f"Unknown environment '{env}'. Choose one of: {', '.join(available_envs())}"
        )
    return NetworkConfig.model_validate(preset)


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/near-shell/`` (default ``~/.local/share/near-shell/``).
    On macOS/Windows: ``~/.near-shell/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_key_store_dir() -> Path:
    """Return the default key store root, ``$NEAR_CREDENTIALS_DIR`` or ``~/.near-credentials``.

    The directory is not created here; :class:`~near_shell.key_store.KeyStore`
    creates per-network sub-directories on first write.
    """
    override = os.environ.get("NEAR_CREDENTIALS_DIR", "")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".near-credentials"


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    When *mode* is given it is applied to the temp file before any content
    is written, so secrets are never readable with looser permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./near.json``.

    The file may set ``env`` to pick a preset and any
    :class:`~near_shell.models.NetworkConfig` field to override it, e.g.
    ``{"env": "testnet", "node_url": "https://my-node.example"}``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a valid JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---

_ENV_OVERRIDES = {
    "node_url": "NEAR_NODE_URL",
    "wallet_url": "NEAR_WALLET_URL",
    "helper_url": "NEAR_HELPER_URL",
}


def resolve_config(
    cli_env: Optional[str] = None,
    cli_overrides: Optional[dict[str, Any]] = None,
) -> ShellConfig:
    """Resolve the effective configuration with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_env``, ``cli_overrides``; ``None`` values ignored)
        2. Environment variables (``NEAR_ENV``, ``NEAR_NODE_URL``,
           ``NEAR_WALLET_URL``, ``NEAR_HELPER_URL``)
        3. Project config (``./near.json``)
        4. Network preset defaults

    Returns:
        A :class:`~near_shell.models.ShellConfig` ready to be passed to
        command handlers.

    Raises:
        ConfigError: On an unknown environment, an invalid project config,
            or override values that fail validation.
    """
    project = load_project_config() or {}

    # Environment name: CLI > NEAR_ENV > project > default
    env = project.get("env") or DEFAULT_ENV
    env_var = os.environ.get("NEAR_ENV")
    if env_var:
        env = env_var
    if cli_env:
        env = cli_env

    values: dict[str, Any] = get_network_config(env).model_dump()
    values["env"] = env
    values["key_store_dir"] = get_key_store_dir()

    # 3. Project overrides
    for key, value in project.items():
        if key != "env":
            values[key] = value

    # 2. Environment variable overrides
    for field, var in _ENV_OVERRIDES.items():
        env_value = os.environ.get(var)
        if env_value:
            values[field] = env_value

    # 1. CLI overrides
    for key, value in (cli_overrides or {}).items():
        if value is not None:
            values[key] = value

    try:
        return ShellConfig.model_validate(values)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
