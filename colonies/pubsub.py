"""Streaming subscriptions over the server's WebSocket endpoint.

A subscription sends one signed envelope as the opening text frame, then
reads reply envelopes until one of:

- the consumer asks to stop (``DRAINING`` → ``CLOSED``),
- the server sends an empty batch or closes normally (``CLOSED``),
- the overall deadline passes (``TIMED_OUT``),
- the server reports an error or the socket breaks (``FAILED``, raises).

``CLOSED`` and ``TIMED_OUT`` are ordinary outcomes; callers read them from
``SubscriptionResult.state`` rather than catching exceptions.
"""

from __future__ import annotations

import enum
import json
import logging
import time
from contextlib import closing
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from websockets.exceptions import ConnectionClosedOK, WebSocketException
from websockets.sync.client import connect

from .config import ColoniesConfig
from .envelope import compose, decode_payload, parse_failure, parse_reply
from .errors import EnvelopeError, RPCConnectionError, RPCFailure

logger = logging.getLogger(__name__)

# Added to the caller's timeout to cover connection setup.
CONNECT_GRACE = 5.0
_STREAM_FAILURE_STATUS = 500

Batch = list[Any]
Consumer = Callable[[Batch], bool]


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    SENDING = "sending"
    LISTENING = "listening"
    DRAINING = "draining"
    TIMED_OUT = "timed_out"
    CLOSED = "closed"
    FAILED = "failed"


_TERMINAL = {SessionState.TIMED_OUT, SessionState.CLOSED, SessionState.FAILED}


@dataclass
class SubscriptionResult:
    records: list[Any] = field(default_factory=list)
    state: SessionState = SessionState.CLOSED

    @property
    def timed_out(self) -> bool:
        return self.state is SessionState.TIMED_OUT


def _as_batch(text: str) -> Batch:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise EnvelopeError(f"Streamed payload is not valid JSON: {e}") from e
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


class Session:
    """One open subscription; iterate it to receive batches.

    Iteration is single-use. Received batches are also accumulated in
    ``records``. Calling :meth:`stop` while iterating closes the socket
    gracefully before the next frame is read.
    """

    def __init__(self, config: ColoniesConfig, wire_body: str, timeout: float):
        self.url = config.ws_url
        self.timeout = timeout
        self.records: list[Any] = []
        self.state = SessionState.CONNECTING
        self._wire_body = wire_body
        self._deadline = 0.0
        self._ws = None
        self._started = False

    def __iter__(self) -> Iterator[Batch]:
        if self._started:
            raise RuntimeError("Subscription sessions cannot be restarted")
        self._started = True
        return self._run()

    def stop(self) -> None:
        if self.state is SessionState.LISTENING:
            self._transition(SessionState.DRAINING)

    def _transition(self, state: SessionState) -> None:
        logger.debug("Subscription %s: %s -> %s", self.url, self.state.value, state.value)
        self.state = state

    def _remaining(self) -> float:
        return self._deadline - time.monotonic()

    def _fail(self, exc: Exception) -> Exception:
        self._transition(SessionState.FAILED)
        return exc

    def _run(self) -> Iterator[Batch]:
        self._deadline = time.monotonic() + self.timeout + CONNECT_GRACE
        try:
            self._ws = connect(self.url, open_timeout=max(self._remaining(), 0.0))
        except (OSError, WebSocketException) as e:
            raise self._fail(
                RPCConnectionError(f"WebSocket connect to {self.url} failed: {e}")
            ) from e

        try:
            self._transition(SessionState.SENDING)
            try:
                self._ws.send(self._wire_body)
            except (OSError, WebSocketException) as e:
                raise self._fail(
                    RPCConnectionError(f"Sending subscription to {self.url} failed: {e}")
                ) from e

            self._transition(SessionState.LISTENING)
            while self.state is SessionState.LISTENING:
                frame = self._receive()
                if frame is None:
                    break
                batch = self._decode(frame)
                if not batch:
                    self._transition(SessionState.CLOSED)
                    break
                self.records.extend(batch)
                yield batch
        finally:
            self._close()

    def _receive(self) -> str | None:
        remaining = self._remaining()
        if remaining <= 0:
            self._transition(SessionState.TIMED_OUT)
            return None
        try:
            frame = self._ws.recv(timeout=remaining)
        except TimeoutError:
            self._transition(SessionState.TIMED_OUT)
            return None
        except ConnectionClosedOK:
            self._transition(SessionState.CLOSED)
            return None
        except (OSError, WebSocketException) as e:
            raise self._fail(
                RPCConnectionError(f"Subscription stream {self.url} broke: {e}")
            ) from e
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8", errors="replace")
        return frame

    def _decode(self, frame: str) -> Batch:
        try:
            reply = parse_reply(frame)
            text = decode_payload(reply["payload"])
            if reply["error"]:
                status, message = parse_failure(text, _STREAM_FAILURE_STATUS)
                logger.warning("Subscription rejected (%d): %s", status, message)
                raise RPCFailure(status, message)
            return _as_batch(text)
        except (EnvelopeError, RPCFailure) as e:
            raise self._fail(e) from None

    def _close(self) -> None:
        if self._ws is not None:
            try:
                self._ws.close()
            except (OSError, WebSocketException) as e:
                logger.debug("Closing %s failed: %s", self.url, e)
            self._ws = None
        if self.state not in _TERMINAL:
            self._transition(SessionState.CLOSED)


def subscribe(
    config: ColoniesConfig,
    payload_type: str,
    payload: dict[str, Any],
    prvkey: str,
    timeout: float,
    consumer: Consumer | None = None,
) -> SubscriptionResult:
    """Open a subscription and drain it through *consumer*.

    *consumer* is called with each non-empty batch; returning a falsy value
    ends the subscription. Without a consumer every batch is accepted until
    the stream closes or times out.

    Raises:
        RPCConnectionError: Connect, send or stream transport failure.
        RPCFailure: The server replied with an error frame.
    """
    session = Session(config, compose(payload_type, payload, prvkey), timeout)
    with closing(iter(session)) as batches:
        for batch in batches:
            if consumer is not None and not consumer(batch):
                session.stop()
    return SubscriptionResult(records=session.records, state=session.state)
