"""
Signaling server.

Owns the connection registry, the call session store and the router, and
runs one ConnectionLifecycle per accepted websocket:
- WebSocket listener (websockets asyncio server)
- Periodic stats logging
- Optional Prometheus exporter and health endpoints
- Graceful shutdown closing every client connection
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from websockets.asyncio.server import Server, serve

from ..config import SignalingConfig, get_config
from ..core.call_session import CallSessionStore
from ..core.registry import ConnectionRegistry
from ..core.router import MessageRouter
from ..core.task_registry import TaskRegistry
from ..health import HealthChecker
from ..metrics import MetricsCollector, get_metrics
from .lifecycle import ConnectionLifecycle

logger = logging.getLogger("signal_relay.server")


class SignalingServer:
    """WebRTC call signaling relay."""

    def __init__(
        self,
        config: Optional[SignalingConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or get_config()
        self.metrics = metrics or get_metrics()

        self.registry = ConnectionRegistry()
        self.sessions = CallSessionStore()
        self.router = MessageRouter(
            self.registry,
            self.sessions,
            relay_direct_messages=self.config.relay_direct_messages,
            metrics=self.metrics,
        )
        self.tasks = TaskRegistry()

        self._server: Optional[Server] = None
        self._health: Optional[HealthChecker] = None
        self._lifecycles: Set[ConnectionLifecycle] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def port(self) -> Optional[int]:
        """Bound port (useful when configured with port 0)."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    async def handler(self, websocket: Any) -> None:
        """Run one connection to completion."""
        lifecycle = ConnectionLifecycle(
            websocket,
            self.router,
            self.tasks,
            outbox_maxsize=self.config.outbox_maxsize,
            debug=self.config.debug,
            metrics=self.metrics,
        )
        self._lifecycles.add(lifecycle)
        self.metrics.connection_change(1)
        try:
            await lifecycle.run()
        finally:
            self._lifecycles.discard(lifecycle)
            self.metrics.connection_change(-1)

    async def start(self) -> None:
        """Start listening."""
        if self._running:
            return

        self._server = await serve(
            self.handler,
            self.config.host,
            self.config.port,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
            max_size=self.config.max_message_size,
        )
        self._running = True

        logger.info("=" * 60)
        logger.info(f"Signaling server running on port {self.port}")
        logger.info(f"WebSocket endpoint: {self.config.ws_url}")
        logger.info("=" * 60)

        if self.config.stats_interval > 0:
            self.tasks.spawn("stats", self._stats_loop())

        if self.config.metrics_enabled:
            self.metrics.port = self.config.metrics_port
            self.metrics.start()

        if self.config.health_enabled:
            self._health = HealthChecker(
                port=self.config.health_port,
                host=self.config.host,
                stats_fn=self.get_stats,
            )
            self._health.register_check("websocket", lambda: self._running)
            await self._health.start()

    async def stop(self) -> None:
        """Close every client connection and stop the listener."""
        if not self._running:
            return
        self._running = False
        logger.info("Shutting down signaling server...")

        lifecycles = list(self._lifecycles)
        if lifecycles:
            await asyncio.gather(
                *(lc.handle.close(1001, "server shutdown") for lc in lifecycles),
                return_exceptions=True,
            )

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

        if self._health is not None:
            await self._health.stop()
            self._health = None

        await self.tasks.shutdown(timeout=self.config.shutdown_timeout)
        logger.info("Server closed")

    async def _stats_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.config.stats_interval)
            logger.info(
                f"Server stats: {len(self.registry)} clients, "
                f"{len(self.sessions)} active calls"
            )

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics."""
        return {
            "connections": len(self._lifecycles),
            "clients": len(self.registry),
            "active_calls": len(self.sessions),
            "tasks": self.tasks.active_count,
            "failed_tasks": self.tasks.failed_count,
        }
