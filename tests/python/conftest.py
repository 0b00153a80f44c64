"""Pytest configuration and fixtures."""

import asyncio
import json
import os
import sys

import pytest

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from websockets.exceptions import ConnectionClosedOK
from websockets.protocol import State


def pytest_configure(config):
    """Configure pytest."""
    os.environ['SIGNAL_LOG_LEVEL'] = 'WARNING'
    # Register asyncio marker
    config.addinivalue_line("markers", "asyncio: mark test as async")


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    """Stand-in for ConnectionHandle when testing the router without a transport."""

    def __init__(self, remote: str = "127.0.0.1:50000"):
        self.remote = remote
        self.client_id = None
        self.is_open = True
        self.frames = []

    def send(self, payload) -> bool:
        if not self.is_open:
            return False
        self.frames.append(payload if isinstance(payload, str) else json.dumps(payload))
        return True

    @property
    def received(self):
        return [json.loads(frame) for frame in self.frames]

    def of_type(self, message_type):
        return [m for m in self.received if m.get("type") == message_type]


class FakeWebSocket:
    """In-memory server-side websocket: feed() inbound frames, inspect sent."""

    def __init__(self, remote=("127.0.0.1", 50000)):
        self.remote_address = remote
        self.state = State.OPEN
        self.sent = []
        self.close_code = None
        self._inbox = asyncio.Queue()

    def feed(self, message) -> None:
        self._inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def disconnect(self) -> None:
        """Simulate the peer going away."""
        self.state = State.CLOSED
        self._inbox.put_nowait(None)

    async def send(self, data) -> None:
        if self.state is not State.OPEN:
            raise ConnectionClosedOK(None, None)
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_code = code
        self.disconnect()

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._inbox.get()
        if frame is None:
            raise StopAsyncIteration
        return frame

    @property
    def received(self):
        return [json.loads(data) for data in self.sent]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_handle():
    """Factory for FakeHandle instances."""
    counter = iter(range(50000, 60000))

    def _make():
        return FakeHandle(remote=f"127.0.0.1:{next(counter)}")

    return _make


@pytest.fixture
def make_websocket():
    """Factory for FakeWebSocket instances."""
    counter = iter(range(50000, 60000))

    def _make():
        return FakeWebSocket(remote=("127.0.0.1", next(counter)))

    return _make


@pytest.fixture
def eventually():
    """Poll a predicate until it holds, failing after a timeout."""
    async def _eventually(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.01)
    return _eventually
