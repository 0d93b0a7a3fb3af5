"""
Message Router - Classifies inbound JSON-RPC frames and drives completion.

Every frame is first classified:

- a frame carrying an ``id`` is a *response* to the request sent on this
  connection;
- a frame carrying a ``method`` and no id is a *notification*.

The classified frame is then handed to the completion strategy chosen when the
session was created:

- ``SingleRead``: the first frame is the answer.
- ``SubscriptionForward``: every storage-change notification is forwarded;
  normal traffic never ends the session.
- ``ExtrinsicLifecycle``: waits for the acknowledgement, then for status
  updates, and completes on the first ``finalized`` status.

Strategies report through a ``Sink`` (``deliver`` / ``fail`` / ``close``),
which the transport session implements.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ..errors import NodeRpcError, ProtocolError
from .json_req import REQUEST_TRANSFER

logger = logging.getLogger(__name__)

STORAGE_NOTIFICATION = "state_storage"
EXTRINSIC_UPDATE_NOTIFICATION = "author_extrinsicUpdate"


class Sink(Protocol):
    def deliver(self, value: Any) -> None: ...

    def fail(self, error: BaseException) -> None: ...

    def close(self) -> None: ...


class FrameKind(enum.Enum):
    RESPONSE = "response"
    NOTIFICATION = "notification"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Frame:
    kind: FrameKind
    payload: dict

    @property
    def id(self) -> Optional[int]:
        return self.payload.get("id")

    @property
    def method(self) -> Optional[str]:
        return self.payload.get("method")

    @property
    def result(self) -> Any:
        return self.payload.get("result")

    @property
    def error(self) -> Any:
        return self.payload.get("error")

    @property
    def params(self) -> Any:
        return self.payload.get("params")

    def notification_result(self) -> Any:
        params = self.params
        if not isinstance(params, dict):
            return None
        return params.get("result")


def classify(payload: dict) -> FrameKind:
    if payload.get("id") is not None:
        return FrameKind.RESPONSE
    if "method" in payload:
        return FrameKind.NOTIFICATION
    logger.debug("Frame has neither id nor method: %s", payload)
    return FrameKind.UNKNOWN


def parse_frame(text: str | bytes) -> Frame:
    """
    Decode and classify one inbound frame.

    Raises:
        ProtocolError: The frame is not a JSON object
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Malformed frame: {exc}") from exc
    if not isinstance(payload, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(payload).__name__}")
    return Frame(classify(payload), payload)


class SingleRead:
    """``AwaitingResponse -> Done``: deliver the first frame's ``result``."""

    class State(enum.Enum):
        AWAITING_RESPONSE = "awaiting_response"
        DONE = "done"

    def __init__(self) -> None:
        self.state = self.State.AWAITING_RESPONSE

    @property
    def done(self) -> bool:
        return self.state is self.State.DONE

    def handle(self, frame: Frame, sink: Sink, log: logging.Logger | logging.LoggerAdapter) -> None:
        if self.done:
            log.debug("Ignoring frame after completion: %s", frame.payload)
            return
        self.state = self.State.DONE
        if frame.error is not None:
            sink.fail(NodeRpcError(frame.error))
        else:
            sink.deliver(frame.result)
        sink.close()


class SubscriptionForward:
    """Forward the first changed value of every storage notification."""

    class State(enum.Enum):
        OPEN = "open"
        FAILED = "failed"

    def __init__(self, method: str = STORAGE_NOTIFICATION) -> None:
        self.method = method
        self.state = self.State.OPEN
        self.subscription_id: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state is self.State.FAILED

    def handle(self, frame: Frame, sink: Sink, log: logging.Logger | logging.LoggerAdapter) -> None:
        if frame.kind is FrameKind.RESPONSE:
            if frame.error is not None:
                # The subscription was refused; nothing will ever arrive.
                log.error("Subscription rejected: %s", frame.error)
                self.state = self.State.FAILED
                sink.fail(NodeRpcError(frame.error))
                sink.close()
                return
            self.subscription_id = frame.result
            log.debug("Subscribed with id %s", frame.result)
            return

        if frame.method != self.method:
            log.debug("Ignoring frame: %s", frame.payload)
            return

        result = frame.notification_result()
        try:
            change = result["changes"][0][1]
        except (TypeError, KeyError, IndexError) as exc:
            log.error("Malformed storage notification (%s): %s", exc, frame.payload)
            return
        sink.deliver(change)


class ExtrinsicLifecycle:
    """
    ``AwaitingAck -> AwaitingFinality -> Finalized | Errored``.

    An error on the acknowledgement is logged and the session keeps waiting
    for status updates, unless ``strict`` is set.
    """

    class State(enum.Enum):
        AWAITING_ACK = "awaiting_ack"
        AWAITING_FINALITY = "awaiting_finality"
        FINALIZED = "finalized"
        ERRORED = "errored"

    def __init__(self, request_id: int = REQUEST_TRANSFER, strict: bool = False) -> None:
        self.request_id = request_id
        self.strict = strict
        self.state = self.State.AWAITING_ACK

    @property
    def done(self) -> bool:
        return self.state in (self.State.FINALIZED, self.State.ERRORED)

    def handle(self, frame: Frame, sink: Sink, log: logging.Logger | logging.LoggerAdapter) -> None:
        if self.done:
            log.debug("Ignoring frame after completion: %s", frame.payload)
            return

        if frame.kind is FrameKind.RESPONSE and frame.id == self.request_id:
            self._on_ack(frame, sink, log)
        elif frame.method == EXTRINSIC_UPDATE_NOTIFICATION:
            self._on_status(frame, sink, log)
        else:
            log.error("Unsupported method in extrinsic watch: %s", frame.payload)

    def _on_ack(self, frame: Frame, sink: Sink, log: logging.Logger | logging.LoggerAdapter) -> None:
        if frame.error is not None:
            log.error("Extrinsic submission error: %s", frame.error)
            if self.strict:
                self.state = self.State.ERRORED
                sink.fail(NodeRpcError(frame.error))
                sink.close()
            return
        log.debug("Extrinsic accepted, watch id %s", frame.result)
        if self.state is self.State.AWAITING_ACK:
            self.state = self.State.AWAITING_FINALITY

    def _on_status(self, frame: Frame, sink: Sink, log: logging.Logger | logging.LoggerAdapter) -> None:
        status = frame.notification_result()
        self.state = self.State.AWAITING_FINALITY
        if isinstance(status, str):
            log.info("Extrinsic status: %s", status)
            return
        if isinstance(status, dict) and "finalized" in status:
            block_hash = status["finalized"]
            log.info("Extrinsic finalized in block %s", block_hash)
            self.state = self.State.FINALIZED
            sink.deliver(block_hash)
            sink.close()
            return
        log.info("Extrinsic status: %s", status)


class MessageRouter:
    """Feed raw frames to a completion strategy, in arrival order."""

    def __init__(self, strategy, logger: Optional[logging.Logger | logging.LoggerAdapter] = None) -> None:
        self.strategy = strategy
        self.logger = logger or logging.getLogger(__name__)

    @property
    def done(self) -> bool:
        return self.strategy.done

    def on_message(self, text: str | bytes, sink: Sink) -> None:
        self.logger.debug("<< %s", text)
        try:
            frame = parse_frame(text)
        except ProtocolError as exc:
            self.logger.error("%s", exc)
            sink.fail(exc)
            sink.close()
            return
        self.strategy.handle(frame, sink, self.logger)
