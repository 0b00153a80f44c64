"""End-to-end tests for the signaling server over real websockets."""

import asyncio
import json
import os
import sys

import pytest
from websockets.asyncio.client import connect

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from signal_relay.config import SignalingConfig
from signal_relay.metrics import MetricsCollector
from signal_relay.websocket.server import SignalingServer


async def recv_json(ws, timeout: float = 2.0):
    return json.loads(await asyncio.wait_for(ws.recv(), timeout=timeout))


async def register(ws, client_id):
    await ws.send(json.dumps({"type": "register", "userId": client_id}))
    reply = await recv_json(ws)
    assert reply == {"type": "registered", "success": True, "clientId": client_id}


@pytest.fixture
def config():
    return SignalingConfig(host="127.0.0.1", port=0, stats_interval=0)


class TestSignalingServer:
    """Test the server with real client connections."""

    @pytest.mark.asyncio
    async def test_call_lifecycle(self, config):
        """Register, ring, accept, exchange an offer, end."""
        server = SignalingServer(config, metrics=MetricsCollector())
        await server.start()
        url = f"ws://127.0.0.1:{server.port}"
        try:
            async with connect(url) as a, connect(url) as b:
                await register(a, "A")
                await register(b, "B")

                await a.send(json.dumps({"type": "call-request", "from": "A", "to": "B", "callId": "c1"}))
                assert await recv_json(b) == {"type": "incoming-call", "from": "A", "callId": "c1"}

                await b.send(json.dumps({"type": "call-accept", "from": "B", "to": "A", "callId": "c1"}))
                assert (await recv_json(a))["type"] == "call-accepted"

                offer = '{"type": "offer", "to": "B", "from": "A", "sdp": "v=0\\r\\n"}'
                await a.send(offer)
                assert await asyncio.wait_for(b.recv(), timeout=2.0) == offer

                await a.send(json.dumps({"type": "call-end", "callId": "c1"}))
                ended_a = await recv_json(a)
                ended_b = await recv_json(b)
                assert ended_a == ended_b
                assert ended_a["reason"] == "ended_by_user"
                assert ended_a["duration"] >= 0
                assert len(server.sessions) == 0
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_unavailable_receiver(self, config):
        """A call to an unregistered client fails immediately."""
        server = SignalingServer(config, metrics=MetricsCollector())
        await server.start()
        try:
            async with connect(f"ws://127.0.0.1:{server.port}") as a:
                await register(a, "A")
                await a.send(json.dumps({"type": "call-request", "from": "A", "to": "B", "callId": "c1"}))

                assert await recv_json(a) == {"type": "call-failed", "reason": "user_unavailable", "callId": "c1"}
                assert len(server.sessions) == 0
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_disconnect_ends_call(self, config, eventually):
        """Closing the caller's socket ends the call for the receiver."""
        server = SignalingServer(config, metrics=MetricsCollector())
        await server.start()
        url = f"ws://127.0.0.1:{server.port}"
        try:
            async with connect(url) as b:
                await register(b, "B")
                a = await connect(url)
                await register(a, "A")
                await a.send(json.dumps({"type": "call-request", "from": "A", "to": "B", "callId": "c1"}))
                await recv_json(b)

                await a.close()

                ended = await recv_json(b)
                assert ended["type"] == "call-ended"
                assert ended["reason"] == "participant_disconnected"
                await eventually(lambda: server.registry.lookup("A") is None)
                assert len(server.sessions) == 0
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_stop_closes_clients(self, config, eventually):
        """Shutdown closes every client connection."""
        server = SignalingServer(config, metrics=MetricsCollector())
        await server.start()
        a = await connect(f"ws://127.0.0.1:{server.port}")
        await register(a, "A")

        await server.stop()

        await asyncio.wait_for(a.wait_closed(), timeout=2.0)
        assert a.close_code == 1001
        assert server.is_running is False

    @pytest.mark.asyncio
    async def test_stats(self, config):
        """get_stats reports clients and calls."""
        server = SignalingServer(config, metrics=MetricsCollector())
        await server.start()
        try:
            async with connect(f"ws://127.0.0.1:{server.port}") as a:
                await register(a, "A")
                stats = server.get_stats()
                assert stats["clients"] == 1
                assert stats["active_calls"] == 0
                assert stats["connections"] == 1
        finally:
            await server.stop()
