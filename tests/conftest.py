"""Shared fakes for the HTTP and WebSocket transports."""

import pytest
from websockets.exceptions import ConnectionClosedOK

from colonies.config import ColoniesConfig
from colonies.crypto import generate_key


class FakeResponse:
    def __init__(self, status_code: int, text: str):
        self.status_code = status_code
        self.text = text


class FakeWebSocket:
    """Replays scripted frames; exception instances in *frames* are raised."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.sent = []
        self.closed = False
        self.recv_timeouts = []

    def send(self, message):
        self.sent.append(message)

    def recv(self, timeout=None):
        self.recv_timeouts.append(timeout)
        if not self.frames:
            raise ConnectionClosedOK(None, None)
        frame = self.frames.pop(0)
        if isinstance(frame, BaseException):
            raise frame
        return frame

    def close(self):
        self.closed = True


@pytest.fixture
def config():
    return ColoniesConfig(server_url="http://colonies.test:50080/api", timeout=5)


@pytest.fixture
def prvkey():
    return generate_key()


@pytest.fixture
def http(monkeypatch):
    """Record POSTs and answer them with a scripted FakeResponse."""

    class Recorder:
        response = FakeResponse(200, "")
        error = None
        calls = []

        def post(self, url, **kwargs):
            self.calls.append((url, kwargs))
            if self.error is not None:
                raise self.error
            return self.response

    recorder = Recorder()
    recorder.calls = []
    monkeypatch.setattr("colonies.rpc.requests.post", recorder.post)
    return recorder


@pytest.fixture
def websocket(monkeypatch):
    """Install a connect() that hands out a FakeWebSocket with given frames."""

    class Factory:
        frames = []
        error = None
        ws = None
        urls = []

        def connect(self, url, **kwargs):
            self.urls.append(url)
            if self.error is not None:
                raise self.error
            self.ws = FakeWebSocket(self.frames)
            return self.ws

    factory = Factory()
    factory.urls = []
    monkeypatch.setattr("colonies.pubsub.connect", factory.connect)
    return factory
