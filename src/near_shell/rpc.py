"""Synchronous JSON-RPC provider for a NEAR node, with retry and error mapping.

This module provides :class:`JsonRpcProvider`, the transport behind the
read-only queries of :class:`~near_shell.account.Account` and login
verification. It wraps :class:`httpx.Client` and
layers on:

- **JSON-RPC envelopes** -- every call is a ``POST`` of
  ``{"jsonrpc": "2.0", "id": ..., "method": ..., "params": ...}``.
- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (0.5 s, 1 s, 2 s, ...).
- **Error mapping** -- JSON-RPC ``error`` objects become
  :class:`~near_shell.exceptions.RpcError` (or
  :class:`~near_shell.exceptions.AccountNotFoundError` for unknown
  accounts); transport failures become
  :class:`~near_shell.exceptions.ConnectionError_`.
"""

from __future__ import annotations

import base64
import itertools
import json
import logging
import time
from typing import Any, Optional

import httpx

from near_shell.exceptions import AccountNotFoundError, ConnectionError_, RpcError

logger = logging.getLogger(__name__)

_BACKOFF_BASE = 0.5


class JsonRpcProvider:
    """Blocking JSON-RPC client for one node.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        node_url: The node's JSON-RPC endpoint.
        timeout: Per-request timeout in seconds.
        max_retries: Attempts after the first for network errors and 5xx.
        transport: Optional :class:`httpx.BaseTransport`, used by tests to
            inject an :class:`httpx.MockTransport`.

    Example::

        with JsonRpcProvider("https://rpc.testnet.near.org") as provider:
            state = provider.view_account("alice.testnet")
    """

    def __init__(
        self,
        node_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._node_url = node_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._ids = itertools.count(1)

    @property
    def node_url(self) -> str:
        return self._node_url

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> JsonRpcProvider:
        self._client = httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Core call
    # ------------------------------------------------------------------ #

    def call(self, method: str, params: Any) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        Raises:
            AccountNotFoundError: If the node reports an unknown account.
            RpcError: On a JSON-RPC error, a non-JSON body, or a 5xx after
                all retries.
            ConnectionError_: On network errors after all retries.
        """
        if self._client is None:
            raise RuntimeError("JsonRpcProvider must be used as a context manager")

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        response = self._post_with_retry(payload)

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise RpcError(
                f"Node returned a non-JSON response (HTTP {response.status_code})"
            ) from exc

        if body.get("error"):
            raise self._map_rpc_error(body["error"])
        if response.status_code >= 400:
            raise RpcError(f"Node returned HTTP {response.status_code}")
        return body.get("result")

    def _post_with_retry(self, payload: dict[str, Any]) -> httpx.Response:
        """POST *payload*, retrying network errors and 5xx responses."""
        assert self._client is not None
        last_exc: Optional[Exception] = None
        response: Optional[httpx.Response] = None

        for attempt in range(self._max_retries + 1):
            if attempt > 0:
                delay = _BACKOFF_BASE * (2 ** (attempt - 1))
                logger.debug(
                    "Retrying %s (attempt %d/%d) in %.1fs",
                    payload["method"], attempt, self._max_retries, delay,
                )
                time.sleep(delay)
            try:
                response = self._client.post(self._node_url, json=payload)
            except httpx.HTTPError as exc:
                last_exc = exc
                continue

            if response.status_code < 500:
                return response
            last_exc = None

        if response is not None and last_exc is None:
            return response
        if isinstance(last_exc, httpx.TimeoutException):
            raise ConnectionError_(f"Request to {self._node_url} timed out: {last_exc}") from last_exc
        raise ConnectionError_(f"Cannot reach {self._node_url}: {last_exc}") from last_exc

    @staticmethod
    def _map_rpc_error(error: Any) -> Exception:
        """Convert a JSON-RPC ``error`` object into a near-shell exception."""
        if not isinstance(error, dict):
            return RpcError(f"RPC error: {error}", data=error)

        cause = error.get("cause") or {}
        cause_name = cause.get("name") if isinstance(cause, dict) else None
        detail = error.get("data") or error.get("message") or "unknown error"
        if not isinstance(detail, str):
            detail = json.dumps(detail)

        if cause_name == "UNKNOWN_ACCOUNT" or "does not exist" in detail:
            info = cause.get("info", {}) if isinstance(cause, dict) else {}
            account = info.get("requested_account_id")
            message = f"Account {account} does not exist" if account else detail
            return AccountNotFoundError(message)
        if cause_name:
            return RpcError(f"{cause_name}: {detail}", data=error)
        return RpcError(f"RPC error: {detail}", data=error)

    # ------------------------------------------------------------------ #
    # Typed helpers
    # ------------------------------------------------------------------ #

    def query(self, request_type: str, finality: str = "final", **params: Any) -> dict[str, Any]:
        """Run a ``query`` call (``view_account``, ``call_function``, ...).

        Some node versions report query failures inside ``result.error``
        rather than as a JSON-RPC error; those are mapped the same way.
        """
        result = self.call(
            "query", {"request_type": request_type, "finality": finality, **params}
        )
        if isinstance(result, dict) and result.get("error"):
            detail = result["error"]
            if "does not exist" in detail:
                raise AccountNotFoundError(detail)
            raise RpcError(f"Query {request_type} failed: {detail}", data=result)
        return result

    def view_account(self, account_id: str) -> dict[str, Any]:
        return self.query("view_account", account_id=account_id)

    def view_access_key_list(self, account_id: str) -> list[dict[str, Any]]:
        result = self.query("view_access_key_list", account_id=account_id)
        return list(result.get("keys", []))

    def call_function(self, account_id: str, method_name: str, args: bytes) -> dict[str, Any]:
        return self.query(
            "call_function",
            account_id=account_id,
            method_name=method_name,
            args_base64=base64.b64encode(args).decode("ascii"),
        )
