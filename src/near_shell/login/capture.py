"""Local callback listener that captures the wallet's login redirect.

The wallet redirects the browser to ``success_url?account_id=...`` once the
user authorizes the key. This module binds a loopback HTTP server for that
redirect and reads exactly one request from it.

Usage::

    endpoint = acquire_endpoint()          # may raise ListenerUnavailable
    payload = await_payload(endpoint, ["account_id"])
    payload["account_id"]

The endpoint is single-use. :func:`await_payload` releases the port on both
success and failure; :meth:`CallbackEndpoint.close` is safe to call again.
"""

from __future__ import annotations

import logging
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional, Sequence
from urllib.parse import parse_qs, urlparse

from near_shell.exceptions import ListenerUnavailable, PayloadCaptureFailed

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_HOSTNAME = "127.0.0.1"
DEFAULT_PORT_RANGE = 10
DEFAULT_TIMEOUT = 120.0

# Longest a single connection may take to deliver its request line and headers.
REQUEST_READ_TIMEOUT = 5.0

_SUCCESS_PAGE = (
    "<html><head><title>NEAR Shell</title></head><body>"
    "<h2>You are logged in to NEAR Shell.</h2>"
    "<p>You can close this window and return to the terminal.</p>"
    "</body></html>"
)
_FAILURE_PAGE = (
    "<html><head><title>NEAR Shell</title></head><body>"
    "<h2>NEAR Shell could not read the login result.</h2>"
    "<p>Return to the terminal and enter your account id there.</p>"
    "</body></html>"
)


class _CallbackServer(HTTPServer):
    """HTTPServer that remembers the query string of the GET request it handled."""

    def __init__(self, address: tuple[str, int]) -> None:
        super().__init__(address, _CallbackHandler)
        self.captured_query: Optional[dict[str, list[str]]] = None
        self.expected_keys: Sequence[str] = ()
        self.request_timeout: float = REQUEST_READ_TIMEOUT

    def handle_error(self, request: Any, client_address: Any) -> None:
        logger.debug("Callback request from %s failed", client_address, exc_info=True)


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def setup(self) -> None:
        self.timeout = self.server.request_timeout
        super().setup()

    def do_GET(self) -> None:
        query = parse_qs(urlparse(self.path).query)
        self.server.captured_query = query
        complete = all(query.get(key, [""])[0] for key in self.server.expected_keys)

        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.end_headers()
        self.wfile.write((_SUCCESS_PAGE if complete else _FAILURE_PAGE).encode("utf-8"))

    def log_message(self, format: str, *args: Any) -> None:
        pass  # Suppress default logging


class CallbackEndpoint:
    """A bound loopback listener waiting for one redirect.

    Created by :func:`acquire_endpoint`; the socket is bound for the whole
    lifetime of the object so the port cannot be taken by another process
    between acquisition and :func:`await_payload`.
    """

    def __init__(self, server: _CallbackServer) -> None:
        self._server = server
        self.hostname, self.port = server.server_address[:2]
        self._closed = False

    @property
    def url(self) -> str:
        """The ``success_url`` the wallet should redirect to."""
        return f"http://{self.hostname}:{self.port}"

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Unbind the port. Idempotent."""
        if not self._closed:
            self._server.server_close()
            self._closed = True

    def __enter__(self) -> CallbackEndpoint:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"CallbackEndpoint({self.url}, {state})"


def acquire_endpoint(
    port: int = DEFAULT_PORT,
    hostname: str = DEFAULT_HOSTNAME,
    port_range: int = DEFAULT_PORT_RANGE,
) -> CallbackEndpoint:
    """Bind the first free port in ``[port, port + port_range)`` on *hostname*.

    Pass ``port=0`` to let the operating system pick any free port.

    Raises:
        ListenerUnavailable: If no port in the range can be bound.
    """
    candidates = [0] if port == 0 else range(port, port + max(port_range, 1))
    last_error: Optional[OSError] = None
    for candidate in candidates:
        try:
            server = _CallbackServer((hostname, candidate))
        except OSError as exc:
            logger.debug("Callback port %s:%s unavailable: %s", hostname, candidate, exc)
            last_error = exc
            continue
        endpoint = CallbackEndpoint(server)
        logger.debug("Callback listener bound at %s", endpoint.url)
        return endpoint

    raise ListenerUnavailable(
        f"No free callback port on {hostname} in {port}-{port + port_range - 1}: {last_error}"
    )


def await_payload(
    endpoint: CallbackEndpoint,
    keys: Sequence[str],
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, str]:
    """Wait for one GET request on *endpoint* and return the requested query values.

    Connections that close without a request, or stall before sending
    one, are dropped and the wait goes on until *timeout* has elapsed in
    total. The requester receives a short HTML page either way. The
    endpoint is closed before this function returns or raises.

    Args:
        endpoint: A listener from :func:`acquire_endpoint`.
        keys: Query-string keys to extract; the first value of each is used.
        timeout: Seconds to wait for the request, across all connections.

    Returns:
        A mapping with one entry per requested key.

    Raises:
        PayloadCaptureFailed: If the endpoint was already used, no request
            arrives within *timeout*, the request cannot be read, or any
            requested key is missing or empty.
    """
    if endpoint.closed:
        raise PayloadCaptureFailed(f"Callback endpoint {endpoint.url} was already used")

    server = endpoint._server
    server.expected_keys = tuple(keys)
    deadline = time.monotonic() + timeout
    try:
        while server.captured_query is None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            server.timeout = remaining
            server.request_timeout = min(REQUEST_READ_TIMEOUT, remaining)
            server.handle_request()
    except OSError as exc:
        raise PayloadCaptureFailed(f"Cannot read callback request: {exc}") from exc
    finally:
        endpoint.close()

    query = server.captured_query
    if query is None:
        raise PayloadCaptureFailed(
            f"No callback received on {endpoint.url} within {timeout:g} seconds"
        )

    payload: dict[str, str] = {}
    missing: list[str] = []
    for key in keys:
        value = query.get(key, [""])[0]
        if value:
            payload[key] = value
        else:
            missing.append(key)
    if missing:
        raise PayloadCaptureFailed(f"Callback is missing {', '.join(missing)}")
    return payload
