"""Shared fakes: a scripted websocket connection and an in-memory transport."""

from __future__ import annotations

import json
import queue
from typing import Any, Optional

import pytest
from websocket import WebSocketConnectionClosedException

from bifrost.metadata.models import MetadataCatalog
from bifrost.pneuma.api import Api

_ABORT = object()


class FakeConnection:
    """Stands in for a websocket-client connection."""

    def __init__(self, frames: tuple = ()) -> None:
        self.inbox: queue.Queue = queue.Queue()
        for frame in frames:
            self.push(frame)
        self.sent: list[str] = []
        self.closed = False
        self.aborted = False

    def push(self, frame: Any) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self.inbox.put(frame)

    def send(self, payload: str) -> None:
        self.sent.append(payload)

    def recv(self) -> str:
        item = self.inbox.get()
        if item is _ABORT:
            raise WebSocketConnectionClosedException("Connection is already closed.")
        return item

    def abort(self) -> None:
        self.aborted = True
        self.inbox.put(_ABORT)

    def close(self) -> None:
        self.closed = True

    @property
    def requests(self) -> list[dict]:
        return [json.loads(payload) for payload in self.sent]


class FakeConnector:
    """``connect`` factory handing out one prepared connection per call."""

    def __init__(self, *connections: FakeConnection) -> None:
        self.connections = list(connections)
        self.urls: list[str] = []

    def __call__(self, url: str, **options) -> FakeConnection:
        self.urls.append(url)
        return self.connections.pop(0)


class FakeSubscription:
    def __init__(self, updates: list) -> None:
        self._updates = list(updates)
        self.closed = False

    def updates(self, cancel=None):
        try:
            for update in self._updates:
                yield update
        finally:
            self.closed = True

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """Answers requests by method name and records them."""

    def __init__(self, responses: dict[str, Any], updates: Optional[list] = None) -> None:
        self.responses = dict(responses)
        self.updates = list(updates or [])
        self.requests: list[dict] = []
        self.watched: list[dict] = []
        self.subscriptions: list[FakeSubscription] = []
        self.timeout = None

    def read(self, request: dict, cancel=None) -> Any:
        self.requests.append(request)
        response = self.responses[request["method"]]
        if callable(response):
            return response(request)
        return response

    def watch_extrinsic(self, request: dict, strict: bool = False, cancel=None) -> Any:
        self.watched.append(request)
        return self.responses["author_submitAndWatchExtrinsic"]

    def subscribe(self, request: dict) -> FakeSubscription:
        self.requests.append(request)
        subscription = FakeSubscription(self.updates)
        self.subscriptions.append(subscription)
        return subscription


class FakeParser:
    def __init__(self, catalog: MetadataCatalog) -> None:
        self.catalog = catalog
        self.raw: list = []

    def parse(self, raw) -> MetadataCatalog:
        self.raw.append(raw)
        return self.catalog


GENESIS_HASH = "0x" + "ab" * 32

RUNTIME_VERSION = {
    "specName": "node-template",
    "implName": "node-template",
    "authoringVersion": 1,
    "specVersion": 100,
    "implVersion": 1,
    "transactionVersion": 1,
    "apis": [["0xdf6acb689907609b", 3]],
}


@pytest.fixture()
def catalog() -> MetadataCatalog:
    return MetadataCatalog.from_names(
        [
            ("System", []),
            ("Timestamp", ["set"]),
            ("Indices", []),
            ("Balances", ["transfer", "set_balance", "force_transfer"]),
            ("Sudo", ["sudo", "set_key"]),
        ]
    )


@pytest.fixture()
def node_responses() -> dict[str, Any]:
    return {
        "chain_getBlockHash": GENESIS_HASH,
        "state_getMetadata": "0x6d657461",
        "state_getRuntimeVersion": dict(RUNTIME_VERSION),
        "state_getStorage": None,
        "author_submitAndWatchExtrinsic": "0x" + "cd" * 32,
        "author_submitExtrinsic": "0x" + "ef" * 32,
    }


class FakeApiFactory:
    """Drop-in for the ``Api`` constructor, backed by ``FakeTransport``."""

    def __init__(self, responses: dict[str, Any], catalog: MetadataCatalog) -> None:
        self.responses = responses
        self.catalog = catalog
        self.updates: list = []
        self.apis: list[Api] = []

    def __call__(
        self, url: str, signer=None, extrinsic_version: int = 4, timeout=None, account_layout=None
    ) -> Api:
        api = Api(
            url,
            signer=signer,
            extrinsic_version=extrinsic_version,
            account_layout=account_layout,
            transport=FakeTransport(self.responses, self.updates),
            metadata_parser=FakeParser(self.catalog),
        )
        self.apis.append(api)
        return api


@pytest.fixture()
def fake_api(node_responses: dict[str, Any], catalog: MetadataCatalog) -> FakeApiFactory:
    return FakeApiFactory(node_responses, catalog)
