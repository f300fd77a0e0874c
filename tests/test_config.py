"""Tests for near_shell.config -- presets, XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from typing import Any

import pytest

from near_shell.config import (
    DEFAULT_ENV,
    atomic_write,
    available_envs,
    get_data_dir,
    get_key_store_dir,
    get_network_config,
    load_project_config,
    resolve_config,
)
from near_shell.exceptions import ConfigError
from near_shell.models import KeyFile, ShellConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# Network presets
# ---------------------------------------------------------------------------


class TestNetworkPresets:
    @pytest.mark.parametrize(
        "env, network_id",
        [
            ("production", "mainnet"),
            ("mainnet", "mainnet"),
            ("development", "testnet"),
            ("testnet", "testnet"),
            ("betanet", "betanet"),
            ("local", "local"),
            ("test", "shared-test"),
            ("ci", "shared-test"),
            ("ci-betanet", "shared-test-staging"),
        ],
    )
    def test_network_ids(self, env: str, network_id: str) -> None:
        assert get_network_config(env).network_id == network_id

    def test_testnet_urls(self) -> None:
        config = get_network_config("testnet")
        assert config.node_url == "https://rpc.testnet.near.org"
        assert config.wallet_url == "https://wallet.testnet.near.org"
        assert config.helper_url == "https://helper.testnet.near.org"

    def test_ci_has_no_wallet(self) -> None:
        config = get_network_config("ci")
        assert config.wallet_url is None
        assert config.master_account == "test.near"

    def test_local_uses_validator_key(self) -> None:
        config = get_network_config("local")
        assert config.node_url == "http://localhost:3030"
        assert config.key_path is not None
        assert config.key_path.endswith("validator_key.json")

    def test_unknown_env(self) -> None:
        with pytest.raises(ConfigError, match="Unknown environment 'moonnet'"):
            get_network_config("moonnet")

    def test_presets_are_independent(self) -> None:
        first = get_network_config("testnet")
        first.node_url = "http://changed"
        assert get_network_config("testnet").node_url == "https://rpc.testnet.near.org"

    def test_available_envs_include_aliases(self) -> None:
        envs = available_envs()
        assert "development" in envs
        assert "mainnet" in envs
        assert envs == sorted(envs)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


class TestPaths:
    def test_data_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("near_shell.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "share"))

        result = get_data_dir()
        assert result == tmp_path / "share" / "near-shell"
        assert result.is_dir()

    def test_data_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("near_shell.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".near-shell" / "logs"

    def test_key_store_dir_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NEAR_CREDENTIALS_DIR", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_key_store_dir() == tmp_path / ".near-credentials"

    def test_key_store_dir_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NEAR_CREDENTIALS_DIR", str(tmp_path / "keys"))
        assert get_key_store_dir() == tmp_path / "keys"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "file.json"
        atomic_write(target, "{}")
        assert target.read_text() == "{}"

    def test_overwrites(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "secret.json"
        atomic_write(target, "{}", mode=0o600)
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        atomic_write(tmp_path / "file.json", "{}")
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]


# ---------------------------------------------------------------------------
# Project config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_loaded(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "near.json", {"env": "betanet"})
        assert load_project_config() == {"env": "betanet"}

    def test_invalid_json(self, isolated_config: Path) -> None:
        (isolated_config / "near.json").write_text("{broken")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()

    def test_not_an_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "near.json", ["testnet"])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        config = resolve_config()
        assert isinstance(config, ShellConfig)
        assert config.env == DEFAULT_ENV
        assert config.network_id == "testnet"
        assert config.key_store_dir == isolated_config / "credentials"

    def test_project_env(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "near.json", {"env": "betanet", "helper_url": "https://h.example"})
        config = resolve_config()
        assert config.network_id == "betanet"
        assert config.helper_url == "https://h.example"

    def test_env_var_beats_project(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(isolated_config / "near.json", {"env": "betanet", "node_url": "https://project.example"})
        monkeypatch.setenv("NEAR_ENV", "production")
        monkeypatch.setenv("NEAR_NODE_URL", "https://envvar.example")

        config = resolve_config()
        assert config.env == "production"
        assert config.network_id == "mainnet"
        assert config.node_url == "https://envvar.example"

    def test_cli_beats_env_var(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NEAR_ENV", "production")
        monkeypatch.setenv("NEAR_WALLET_URL", "https://envvar.example")

        config = resolve_config(
            cli_env="local",
            cli_overrides={"wallet_url": "https://cli.example", "node_url": None},
        )
        assert config.network_id == "local"
        assert config.wallet_url == "https://cli.example"
        assert config.node_url == "http://localhost:3030"

    def test_unknown_project_field(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "near.json", {"contract_name": "app"})
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config()

    def test_unknown_env_var(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NEAR_ENV", "moonnet")
        with pytest.raises(ConfigError, match="Unknown environment"):
            resolve_config()


class TestKeyFileModel:
    def test_secret_key_alias(self) -> None:
        entry = KeyFile.model_validate(
            {"account_id": "node0", "public_key": "ed25519:A", "secret_key": "ed25519:B"}
        )
        assert entry.private_key == "ed25519:B"

    def test_serialises_private_key(self) -> None:
        entry = KeyFile(account_id="a", public_key="ed25519:A", private_key="ed25519:B")
        assert entry.model_dump() == {
            "account_id": "a",
            "public_key": "ed25519:A",
            "private_key": "ed25519:B",
        }
