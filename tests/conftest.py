"""Shared test fixtures for near-shell.

Provides reusable fixtures for isolated config environments, output state,
a fake JSON-RPC node served over :class:`httpx.MockTransport` (with a fake
py-near account recording signed operations), and running CLI commands.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Optional

import base58
import httpx
import pytest

from near_shell.key_pair import KeyPair
from near_shell.models import ShellConfig
from near_shell.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use. The ``near_shell`` logger handler holds the
    same stale stream, so it is detached too.
    """
    yield
    reset_output()
    logger = logging.getLogger("near_shell")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_DATA_HOME and NEAR_CREDENTIALS_DIR to subdirectories of
    tmp_path so that tests never touch real user keys. Clears all NEAR_*
    environment variables, disables colour, and changes the working
    directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NEAR_CREDENTIALS_DIR", str(tmp_path / "credentials"))
    monkeypatch.setenv("NO_COLOR", "1")

    for var in ["NEAR_ENV", "NEAR_NODE_URL", "NEAR_WALLET_URL", "NEAR_HELPER_URL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def shell_config(tmp_path: Path) -> ShellConfig:
    """A testnet-like configuration with a key store under tmp_path."""
    return ShellConfig(
        env="development",
        network_id="testnet",
        node_url="https://rpc.test.invalid",
        wallet_url="https://wallet.example",
        helper_url="https://helper.test.invalid",
        explorer_url="https://explorer.test.invalid",
        key_store_dir=tmp_path / "credentials",
        rpc_max_retries=0,
    )


@pytest.fixture
def key_pair() -> KeyPair:
    return KeyPair.from_random("ed25519")


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless OutputManager as the global output.

    Messages go through ``print()`` so ``capsys`` sees them verbatim.
    """
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Fake node
# ---------------------------------------------------------------------------


BLOCK_HASH = base58.b58encode(bytes(range(32))).decode("ascii")
TX_HASH = "9FtHUFBQsZ2MG77K3x3MJ9wjX3UT8zE1TczCrhZEcG8U"


@dataclass
class Submission:
    """One signed operation handed to the SDK account."""

    signer_id: str
    receiver_id: str
    private_key: str
    rpc_addr: str
    action: str
    args: tuple[Any, ...]


class FakeSdkAccount:
    """Stands in for py-near's ``Account``; records submissions on the node."""

    def __init__(self, node: FakeNode, account_id: str, private_key: str, rpc_addr: str) -> None:
        self._node = node
        self.account_id = account_id
        self.private_key = private_key
        self.rpc_addr = rpc_addr
        self.started = False

    async def startup(self) -> None:
        self.started = True

    async def send_money(self, account_id: str, amount: int, nowait: bool = False):
        return self._submit(account_id, "transfer", amount)

    async def stake(self, public_key: str, amount: int, nowait: bool = False):
        return self._submit(self.account_id, "stake", public_key, amount)

    async def deploy_contract(self, contract_code: bytes, nowait: bool = False):
        return self._submit(self.account_id, "deploy_contract", contract_code)

    async def sign_and_submit_tx(self, receiver_id: str, actions: list[Any], nowait: bool = False):
        return self._submit(receiver_id, "actions", *actions)

    def _submit(self, receiver_id: str, action: str, *args: Any) -> SimpleNamespace:
        assert self.started, "startup() must run before submitting"
        if self._node.tx_error is not None:
            raise self._node.tx_error
        self._node.submitted.append(
            Submission(self.account_id, receiver_id, self.private_key, self.rpc_addr, action, args)
        )
        return SimpleNamespace(
            transaction=SimpleNamespace(
                hash=TX_HASH, signer_id=self.account_id, receiver_id=receiver_id
            ),
            status={"SuccessValue": ""},
        )


class FakeNode:
    """In-memory NEAR node answering JSON-RPC requests.

    Accounts are registered with :meth:`add_account`; every request is
    recorded in :attr:`calls` as ``(method, params)``. Operations signed
    through :class:`FakeSdkAccount` land in :attr:`submitted`, or raise
    :attr:`tx_error` when it is set.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.access_keys: dict[str, list[dict[str, Any]]] = {}
        self.view_results: dict[tuple[str, str], Any] = {}
        self.calls: list[tuple[str, Any]] = []
        self.submitted: list[Submission] = []
        self.tx_error: Optional[Exception] = None

    def add_account(
        self,
        account_id: str,
        amount: str = "1000000000000000000000000",
        public_keys: Optional[list[str]] = None,
    ) -> None:
        self.accounts[account_id] = {
            "amount": amount,
            "locked": "0",
            "code_hash": "11111111111111111111111111111111",
            "storage_usage": 182,
            "storage_paid_at": 0,
            "block_height": 100,
            "block_hash": BLOCK_HASH,
        }
        self.access_keys[account_id] = [
            {"public_key": key, "access_key": {"nonce": 7, "permission": "FullAccess"}}
            for key in public_keys or []
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((method, params))

        if method == "query":
            return self._query(body["id"], params)
        return self._error(body["id"], "METHOD_NOT_FOUND", f"Method not found: {method}")

    def _query(self, request_id: int, params: dict[str, Any]) -> httpx.Response:
        account_id = params["account_id"]
        request_type = params["request_type"]
        if request_type == "call_function":
            key = (account_id, params["method_name"])
            if key not in self.view_results:
                return self._result(
                    request_id, {"error": f"wasm execution failed: {params['method_name']}"}
                )
            raw = json.dumps(self.view_results[key]).encode("utf-8")
            return self._result(request_id, {"result": list(raw), "logs": ["called"]})

        if account_id not in self.accounts:
            return self._unknown_account(request_id, account_id)
        if request_type == "view_account":
            return self._result(request_id, self.accounts[account_id])
        if request_type == "view_access_key_list":
            return self._result(request_id, {"keys": self.access_keys[account_id]})
        return self._error(request_id, "UNKNOWN_REQUEST", request_type)

    @staticmethod
    def _result(request_id: int, result: Any) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": request_id, "result": result})

    @staticmethod
    def _error(request_id: int, name: str, message: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": request_id,
                "error": {"name": "HANDLER_ERROR", "cause": {"name": name}, "message": message},
            },
        )

    @staticmethod
    def _unknown_account(request_id: int, account_id: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": request_id,
                "error": {
                    "name": "HANDLER_ERROR",
                    "cause": {
                        "name": "UNKNOWN_ACCOUNT",
                        "info": {"requested_account_id": account_id},
                    },
                    "message": "Server error",
                    "data": f"account {account_id} does not exist while viewing",
                },
            },
        )


@pytest.fixture
def fake_node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def patch_sdk(monkeypatch: pytest.MonkeyPatch, fake_node: FakeNode) -> FakeNode:
    """Replace py-near's ``Account`` with :class:`FakeSdkAccount` bound to *fake_node*."""

    def _sdk_account(account_id: str, private_key: str, rpc_addr: str) -> FakeSdkAccount:
        return FakeSdkAccount(fake_node, account_id, private_key, rpc_addr)

    monkeypatch.setattr("near_shell.connection.SdkAccount", _sdk_account)
    return fake_node


@pytest.fixture
def patch_connect(monkeypatch: pytest.MonkeyPatch, patch_sdk: FakeNode) -> FakeNode:
    """Route every :func:`near_shell.connection.connect` through the fake node."""
    fake_node = patch_sdk
    from near_shell import connection

    real_connect = connection.connect

    def _connect(config: ShellConfig, transport: Optional[httpx.BaseTransport] = None):
        return real_connect(config, transport=httpx.MockTransport(fake_node))

    monkeypatch.setattr("near_shell.connection.connect", _connect)
    monkeypatch.setattr("near_shell.login.verify.connect", _connect)
    return fake_node


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def near_app():
    """The root Typer app with all built-in commands registered."""
    from near_shell.app import app, register_commands

    register_commands()
    return app


@pytest.fixture
def run_cli(cli_runner, near_app, isolated_config: Path) -> Callable[..., Any]:
    """Invoke ``near <args>`` in an isolated environment."""

    def _run(*args: str, input: Optional[str] = None):
        return cli_runner.invoke(near_app, list(args), input=input)

    return _run
