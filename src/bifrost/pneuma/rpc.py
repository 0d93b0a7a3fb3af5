"""
JSON-RPC Transport for Substrate nodes.

Every logical call owns one ``Session``: one websocket connection, one reader
thread and one result channel.  The reader thread feeds frames to a
``MessageRouter``; outcomes (values or exceptions) travel back through a
queue to the calling thread, which blocks on ``Session.result()`` or iterates
``Session.updates()``.

Single reads against an ``http(s)://`` node are served by one httpx POST.
"""

from __future__ import annotations

import json
import logging
import os
import queue
import threading
import time
from typing import Any, Callable, Iterator, Optional

import httpx
from websocket import WebSocketConnectionClosedException, WebSocketException, create_connection

from ..errors import (
    ConfigurationError,
    NodeRpcError,
    ProtocolError,
    SessionCancelled,
    SessionTimeout,
    TransportError,
)
from .extrinsic import SUPPORTED_VERSIONS
from .json_req import REQUEST_TRANSFER
from .router import ExtrinsicLifecycle, MessageRouter, SingleRead, SubscriptionForward

logger = logging.getLogger(__name__)

# Default node endpoint (local development node)
DEFAULT_NODE_URL = "ws://127.0.0.1:9944"
DEFAULT_EXTRINSIC_VERSION = 4
HTTP_TIMEOUT = 30

# How often a blocked consumer re-checks its cancel token
POLL_INTERVAL = 0.1

Connect = Callable[..., Any]

_CLOSED = object()


def get_node_url() -> str:
    """Get the node URL from environment or default."""
    return os.environ.get("BIFROST_NODE_URL", DEFAULT_NODE_URL)


def get_extrinsic_version() -> int:
    """Get the extrinsic envelope version from environment or default."""
    raw = os.environ.get("EXTRINSIC_VERSION", str(DEFAULT_EXTRINSIC_VERSION))
    try:
        version = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"EXTRINSIC_VERSION must be an integer, got {raw!r}") from exc
    if version not in SUPPORTED_VERSIONS:
        raise ConfigurationError(f"EXTRINSIC_VERSION must be one of {SUPPORTED_VERSIONS}, got {version}")
    return version


def is_websocket_url(url: str) -> bool:
    return url.startswith(("ws://", "wss://"))


def is_http_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


class CancelToken:
    """Lets another thread abandon a blocking wait on a session."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class Session:
    """
    One connection serving one logical RPC call.

    Implements the router's sink: ``deliver`` and ``fail`` push onto the
    channel, ``close`` marks the end of the stream and releases the
    connection.  ``close`` is idempotent and safe from any thread.
    """

    def __init__(
        self,
        url: str,
        request: dict,
        strategy,
        connect: Optional[Connect] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.url = url
        self.request = request
        self.name = name or request.get("method", "session")
        self.log = logging.LoggerAdapter(
            logger or logging.getLogger(__name__), {"session": self.name, "url": url}
        )
        self.router = MessageRouter(strategy, self.log)
        self._connect = connect or create_connection
        self._channel: queue.Queue = queue.Queue()
        self._closed = threading.Event()
        self._lock = threading.Lock()
        self._ws = None
        self._thread: Optional[threading.Thread] = None

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> "Session":
        """
        Open the connection, send the request and start the reader thread.

        Raises:
            TransportError: The connection could not be opened or written to
        """
        self.log.debug("Opening session %s to %s", self.name, self.url)
        try:
            self._ws = self._connect(self.url)
            payload = json.dumps(self.request)
            self.log.debug(">> %s", payload)
            self._ws.send(payload)
        except (WebSocketException, OSError) as exc:
            self._closed.set()
            self._release()
            raise TransportError(f"Cannot reach node at {self.url}: {exc}") from exc

        self._thread = threading.Thread(
            target=self._run, name=f"bifrost-{self.name}", daemon=True
        )
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            while not self._closed.is_set():
                try:
                    text = self._ws.recv()
                except WebSocketConnectionClosedException as exc:
                    if not self._closed.is_set():
                        self.fail(TransportError(f"Connection closed by node: {exc}"))
                        self.close()
                    break
                except (WebSocketException, OSError) as exc:
                    if not self._closed.is_set():
                        self.fail(TransportError(f"Receive failed: {exc}"))
                        self.close()
                    break
                if not text:
                    if not self._closed.is_set():
                        self.fail(TransportError("Connection closed by node"))
                        self.close()
                    break
                self.router.on_message(text, self)
        finally:
            self._release()

    def _release(self) -> None:
        with self._lock:
            ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            ws.close()
        except (WebSocketException, OSError) as exc:
            self.log.debug("Ignoring error while closing connection: %s", exc)
        self.log.debug("Session %s released", self.name)

    # -- sink --------------------------------------------------------------

    def deliver(self, value: Any) -> None:
        self._channel.put(("value", value))

    def fail(self, error: BaseException) -> None:
        self._channel.put(("error", error))

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._channel.put(_CLOSED)
        self.log.debug("Closing session %s", self.name)
        if threading.current_thread() is not self._thread:
            # Unblock the reader's recv(); it releases the connection on exit.
            with self._lock:
                ws = self._ws
            if ws is not None and self._thread is not None:
                try:
                    ws.abort()
                except (WebSocketException, OSError) as exc:
                    self.log.debug("Ignoring error while aborting connection: %s", exc)
            elif self._thread is None:
                self._release()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- consumer ----------------------------------------------------------

    def _next(self, timeout: Optional[float], cancel: Optional[CancelToken]) -> Any:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if cancel is not None and cancel.cancelled:
                self.close()
                raise SessionCancelled(f"Session {self.name} cancelled")
            wait = POLL_INTERVAL if cancel is not None else None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self.close()
                    raise SessionTimeout(f"Session {self.name} timed out after {timeout}s")
                wait = remaining if wait is None else min(wait, remaining)
            try:
                item = self._channel.get(timeout=wait)
            except queue.Empty:
                continue
            if item is _CLOSED:
                return item
            kind, value = item
            if kind == "error":
                raise value
            return value

    def result(self, timeout: Optional[float] = None, cancel: Optional[CancelToken] = None) -> Any:
        """
        Block until the session's terminal value arrives.

        Args:
            timeout: Seconds to wait; None waits forever
            cancel: Token another thread may trigger to abandon the wait

        Returns:
            The delivered value

        Raises:
            SessionTimeout: No value within ``timeout``
            SessionCancelled: ``cancel`` was triggered
            TransportError / ProtocolError: Delivered by the reader thread
        """
        item = self._next(timeout, cancel)
        if item is _CLOSED:
            raise TransportError(f"Session {self.name} closed without a result")
        return item

    def updates(self, cancel: Optional[CancelToken] = None) -> Iterator[Any]:
        """Yield every delivered value until the session closes."""
        try:
            while True:
                item = self._next(None, cancel)
                if item is _CLOSED:
                    return
                yield item
        finally:
            self.close()


def http_request(url: str, request: dict, timeout: float = HTTP_TIMEOUT) -> Any:
    """
    Make a single JSON-RPC call over HTTP.

    Returns:
        Result field from the RPC response

    Raises:
        TransportError: HTTP failure
        ProtocolError: Response body is not JSON
        NodeRpcError: Node answered with an error object
    """
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(url, json=request)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        raise TransportError(f"HTTP request to {url} failed: {exc}") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise ProtocolError(f"Malformed response from {url}: {exc}") from exc

    if not isinstance(data, dict):
        raise ProtocolError(f"Malformed response from {url}: expected a JSON object, got {data!r}")
    if "error" in data:
        raise NodeRpcError(data["error"])
    return data.get("result")


class RpcTransport:
    """Opens one session per logical call against a single node URL."""

    def __init__(
        self,
        url: Optional[str] = None,
        connect: Optional[Connect] = None,
        logger: Optional[logging.Logger] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.url = url or get_node_url()
        if not (is_websocket_url(self.url) or is_http_url(self.url)):
            raise ConfigurationError(f"Unsupported node URL scheme: {self.url}")
        self.connect = connect
        self.logger = logger or logging.getLogger(__name__)
        self.timeout = timeout

    def _require_websocket(self, what: str) -> None:
        if not is_websocket_url(self.url):
            raise ConfigurationError(f"{what} needs a ws:// or wss:// node URL, got {self.url}")

    def open(self, request: dict, strategy) -> Session:
        return Session(self.url, request, strategy, connect=self.connect, logger=self.logger).start()

    def read(self, request: dict, cancel: Optional[CancelToken] = None) -> Any:
        """Send one request and return its ``result``."""
        if is_http_url(self.url):
            return http_request(self.url, request, timeout=self.timeout or HTTP_TIMEOUT)
        session = self.open(request, SingleRead())
        return session.result(timeout=self.timeout, cancel=cancel)

    def subscribe(self, request: dict) -> Session:
        """Start a storage subscription; iterate ``updates()`` on the result."""
        self._require_websocket("Subscriptions")
        return self.open(request, SubscriptionForward())

    def watch_extrinsic(
        self,
        request: dict,
        strict: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> Any:
        """Submit and block until the extrinsic is finalized; returns the block hash."""
        self._require_websocket("Extrinsic watching")
        strategy = ExtrinsicLifecycle(request_id=request.get("id", REQUEST_TRANSFER), strict=strict)
        session = self.open(request, strategy)
        return session.result(timeout=self.timeout, cancel=cancel)


def is_online(url: Optional[str] = None, connect: Optional[Connect] = None, timeout: float = 5) -> bool:
    """Check whether a node accepts connections at ``url``."""
    url = url or get_node_url()
    if is_http_url(url):
        try:
            with httpx.Client(timeout=timeout) as client:
                client.post(url, json={"jsonrpc": "2.0", "method": "system_health", "params": [], "id": 1})
        except httpx.HTTPError as exc:
            logger.debug("Node %s unreachable: %s", url, exc)
            return False
        return True

    connect = connect or create_connection
    try:
        ws = connect(url, timeout=timeout)
    except (WebSocketException, OSError) as exc:
        logger.debug("Node %s unreachable: %s", url, exc)
        return False
    try:
        ws.close()
    except (WebSocketException, OSError) as exc:
        logger.debug("Ignoring error while closing reachability check: %s", exc)
    return True
