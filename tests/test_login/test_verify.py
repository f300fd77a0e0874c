"""Tests for account verification after the wallet authorized a key."""

from __future__ import annotations

import httpx
import pytest

from near_shell.exceptions import AccountNotFoundError, ConnectionError_, VerificationFailed
from near_shell.key_store import KeyStore
from near_shell.login.verify import verify_account


class TestVerifyAccount:
    def test_authorized_key_is_stored(self, shell_config, key_pair, patch_connect, plain_output, capsys) -> None:
        patch_connect.add_account("alice.near", public_keys=[str(key_pair.public_key)])

        verify_account("alice.near", key_pair, shell_config)

        stored = KeyStore(shell_config.key_store_dir).get_key("testnet", "alice.near")
        assert stored is not None
        assert stored.public_key == key_pair.public_key
        err = capsys.readouterr().err
        assert f"Logged in as [ alice.near ] with public key [ {key_pair.public_key} ] successfully" in err

    def test_account_id_is_stripped(self, shell_config, key_pair, patch_connect, quiet_output) -> None:
        patch_connect.add_account("alice.near", public_keys=[str(key_pair.public_key)])

        verify_account("  alice.near\n", key_pair, shell_config)

        assert KeyStore(shell_config.key_store_dir).get_key("testnet", "alice.near") is not None

    def test_key_not_authorized(self, shell_config, key_pair, patch_connect, quiet_output) -> None:
        patch_connect.add_account("alice.near", public_keys=["ed25519:11111111111111111111111111111111"])

        with pytest.raises(VerificationFailed, match="has not authorized the expected key"):
            verify_account("alice.near", key_pair, shell_config)

        assert KeyStore(shell_config.key_store_dir).get_key("testnet", "alice.near") is None

    def test_unknown_account_chains_cause(self, shell_config, key_pair, patch_connect, quiet_output) -> None:
        with pytest.raises(VerificationFailed) as exc_info:
            verify_account("ghost.near", key_pair, shell_config)

        assert isinstance(exc_info.value.cause, AccountNotFoundError)
        assert "ghost.near" in str(exc_info.value)

    def test_network_error_chains_cause(self, shell_config, key_pair, monkeypatch, quiet_output) -> None:
        from near_shell import connection

        real_connect = connection.connect

        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        monkeypatch.setattr(
            "near_shell.login.verify.connect",
            lambda config: real_connect(config, transport=httpx.MockTransport(_refuse)),
        )

        with pytest.raises(VerificationFailed) as exc_info:
            verify_account("alice.near", key_pair, shell_config)
        assert isinstance(exc_info.value.cause, ConnectionError_)

    @pytest.mark.parametrize("account_id", ["", "   ", None])
    def test_empty_account_id(self, shell_config, key_pair, patch_connect, account_id) -> None:
        with pytest.raises(VerificationFailed, match="No account id"):
            verify_account(account_id, key_pair, shell_config)
        assert patch_connect.calls == []
