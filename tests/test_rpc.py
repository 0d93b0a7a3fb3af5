"""Tests for transport sessions, driven through a fake websocket connection."""

from __future__ import annotations

import json
import os
import threading
from unittest.mock import patch

import httpx
import pytest

from bifrost.errors import (
    ConfigurationError,
    NodeRpcError,
    ProtocolError,
    SessionCancelled,
    SessionTimeout,
    TransportError,
)
from bifrost.pneuma import json_req
from bifrost.pneuma.router import ExtrinsicLifecycle, SingleRead, SubscriptionForward
from bifrost.pneuma.rpc import (
    CancelToken,
    RpcTransport,
    Session,
    get_extrinsic_version,
    get_node_url,
    http_request,
    is_online,
)

from conftest import FakeConnection, FakeConnector

URL = "ws://node.test:9944"


def _status(result) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": "author_extrinsicUpdate",
        "params": {"result": result, "subscription": "w1"},
    }


def _wait_released(session: Session) -> None:
    session._thread.join(timeout=2)
    assert not session._thread.is_alive()


class TestSession:
    def test_single_read(self) -> None:
        conn = FakeConnection([{"jsonrpc": "2.0", "result": "0x1234", "id": 1}])
        session = Session(URL, json_req.state_get_metadata(), SingleRead(), connect=FakeConnector(conn))

        assert session.start().result(timeout=2) == "0x1234"

        _wait_released(session)
        assert conn.closed
        assert conn.requests == [json_req.state_get_metadata()]

    def test_node_error_raised_in_caller(self) -> None:
        conn = FakeConnection([{"jsonrpc": "2.0", "error": {"code": -1, "message": "boom"}, "id": 1}])
        session = Session(URL, json_req.state_get_metadata(), SingleRead(), connect=FakeConnector(conn))
        with pytest.raises(NodeRpcError, match="boom"):
            session.start().result(timeout=2)

    def test_extrinsic_lifecycle(self) -> None:
        conn = FakeConnection(
            [
                {"jsonrpc": "2.0", "result": "w1", "id": 3},
                _status("ready"),
                _status({"inBlock": "0xaa"}),
                _status({"finalized": "0xbb"}),
            ]
        )
        request = json_req.author_submit_and_watch_extrinsic("0x00")
        session = Session(URL, request, ExtrinsicLifecycle(), connect=FakeConnector(conn))

        assert session.start().result(timeout=2) == "0xbb"
        _wait_released(session)
        assert conn.closed

    def test_subscription_updates(self) -> None:
        frames = [{"jsonrpc": "2.0", "result": "s1", "id": 1}]
        for i in range(3):
            frames.append(
                {
                    "jsonrpc": "2.0",
                    "method": "state_storage",
                    "params": {"result": {"block": "0x00", "changes": [["0xkey", f"0x0{i}"]]}},
                }
            )
        conn = FakeConnection(frames)
        session = Session(URL, json_req.state_subscribe_storage(["0xkey"]), SubscriptionForward(),
                          connect=FakeConnector(conn))

        received = []
        updates = session.start().updates()
        for update in updates:
            received.append(update)
            if len(received) == 3:
                break
        updates.close()

        assert received == ["0x00", "0x01", "0x02"]
        assert session.closed
        _wait_released(session)
        assert conn.aborted
        assert conn.closed

    def test_timeout_tears_down(self) -> None:
        conn = FakeConnection()
        session = Session(URL, json_req.state_get_metadata(), SingleRead(), connect=FakeConnector(conn))

        with pytest.raises(SessionTimeout):
            session.start().result(timeout=0.2)

        _wait_released(session)
        assert conn.aborted
        assert conn.closed

    def test_cancel_from_another_thread(self) -> None:
        conn = FakeConnection()
        token = CancelToken()
        session = Session(URL, json_req.author_submit_and_watch_extrinsic("0x00"), ExtrinsicLifecycle(),
                          connect=FakeConnector(conn))
        timer = threading.Timer(0.2, token.cancel)
        timer.start()
        try:
            with pytest.raises(SessionCancelled):
                session.start().result(cancel=token)
        finally:
            timer.cancel()
        _wait_released(session)
        assert conn.closed

    def test_connect_failure(self) -> None:
        def refuse(url, **options):
            raise ConnectionRefusedError("refused")

        session = Session(URL, json_req.state_get_metadata(), SingleRead(), connect=refuse)
        with pytest.raises(TransportError, match="Cannot reach node"):
            session.start()
        assert session.closed

    def test_peer_closes_before_answer(self) -> None:
        conn = FakeConnection([""])
        session = Session(URL, json_req.state_get_metadata(), SingleRead(), connect=FakeConnector(conn))
        with pytest.raises(TransportError, match="closed by node"):
            session.start().result(timeout=2)

    def test_close_is_idempotent(self) -> None:
        conn = FakeConnection()
        session = Session(URL, json_req.state_get_metadata(), SingleRead(), connect=FakeConnector(conn))
        session.start()
        session.close()
        session.close()
        _wait_released(session)
        assert conn.closed


class TestRpcTransport:
    def test_read_over_websocket(self) -> None:
        conn = FakeConnection([{"jsonrpc": "2.0", "result": "0xgen", "id": 1}])
        transport = RpcTransport(URL, connect=FakeConnector(conn), timeout=2)
        assert transport.read(json_req.chain_get_block_hash()) == "0xgen"
        assert conn.requests[0]["params"] == [0]

    def test_watch_extrinsic(self) -> None:
        conn = FakeConnection([{"jsonrpc": "2.0", "result": "w1", "id": 3}, _status({"finalized": "0xfin"})])
        transport = RpcTransport(URL, connect=FakeConnector(conn), timeout=2)
        assert transport.watch_extrinsic(json_req.author_submit_and_watch_extrinsic("0x00")) == "0xfin"

    def test_read_over_http(self) -> None:
        request = httpx.Request("POST", "http://node.test:9933")
        response = httpx.Response(200, json={"jsonrpc": "2.0", "result": "0xgen", "id": 1}, request=request)
        with patch.object(httpx.Client, "post", return_value=response) as post:
            assert RpcTransport("http://node.test:9933").read(json_req.chain_get_block_hash()) == "0xgen"
        assert post.call_args.kwargs["json"]["method"] == "chain_getBlockHash"

    def test_http_error_object(self) -> None:
        request = httpx.Request("POST", "http://node.test:9933")
        response = httpx.Response(200, json={"error": {"code": -32601}, "id": 1}, request=request)
        with patch.object(httpx.Client, "post", return_value=response):
            with pytest.raises(NodeRpcError):
                http_request("http://node.test:9933", json_req.state_get_metadata())

    @pytest.mark.parametrize("body", [None, [1, 2], "0x00"])
    def test_http_body_not_an_object(self, body) -> None:
        request = httpx.Request("POST", "http://node.test:9933")
        response = httpx.Response(200, content=json.dumps(body).encode(), request=request)
        with patch.object(httpx.Client, "post", return_value=response):
            with pytest.raises(ProtocolError):
                http_request("http://node.test:9933", json_req.state_get_metadata())

    def test_http_status_error(self) -> None:
        request = httpx.Request("POST", "http://node.test:9933")
        response = httpx.Response(503, request=request)
        with patch.object(httpx.Client, "post", return_value=response):
            with pytest.raises(TransportError):
                http_request("http://node.test:9933", json_req.state_get_metadata())

    def test_streaming_needs_websocket(self) -> None:
        transport = RpcTransport("http://node.test:9933")
        with pytest.raises(ConfigurationError):
            transport.subscribe(json_req.state_subscribe_storage(["0x00"]))
        with pytest.raises(ConfigurationError):
            transport.watch_extrinsic(json_req.author_submit_and_watch_extrinsic("0x00"))

    def test_unsupported_scheme(self) -> None:
        with pytest.raises(ConfigurationError):
            RpcTransport("tcp://node.test:9944")


class TestConfiguration:
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert get_node_url() == "ws://127.0.0.1:9944"
            assert get_extrinsic_version() == 4

    def test_environment(self) -> None:
        with patch.dict(os.environ, {"BIFROST_NODE_URL": URL, "EXTRINSIC_VERSION": "3"}, clear=True):
            assert get_node_url() == URL
            assert get_extrinsic_version() == 3

    @pytest.mark.parametrize("value", ["2", "four"])
    def test_bad_extrinsic_version(self, value: str) -> None:
        with patch.dict(os.environ, {"EXTRINSIC_VERSION": value}, clear=True):
            with pytest.raises(ConfigurationError):
                get_extrinsic_version()


class TestIsOnline:
    def test_reachable(self) -> None:
        conn = FakeConnection()
        assert is_online(URL, connect=FakeConnector(conn))
        assert conn.closed

    def test_unreachable(self) -> None:
        def refuse(url, **options):
            raise OSError("unreachable")

        assert not is_online(URL, connect=refuse)


def test_requests_are_json_rpc() -> None:
    request = json_req.author_submit_and_watch_extrinsic("0xdead")
    assert json.loads(json.dumps(request)) == {
        "jsonrpc": "2.0",
        "method": "author_submitAndWatchExtrinsic",
        "params": ["0xdead"],
        "id": 3,
    }
