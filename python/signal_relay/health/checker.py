"""
Health Check HTTP Server.

Endpoints for liveness and readiness probes:
- /health/live - 200 while the process is running
- /health/ready - 200 only when every registered check passes
- /health - readiness plus server stats (clients, active calls)
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("signal_relay.health")

try:
    from aiohttp import web
    AIOHTTP_AVAILABLE = True
except ImportError:
    AIOHTTP_AVAILABLE = False
    web = None  # type: ignore


class HealthChecker:
    """HTTP health endpoints for the signaling server."""

    def __init__(
        self,
        port: int = 8080,
        host: str = "0.0.0.0",
        stats_fn: Optional[Callable[[], Dict[str, Any]]] = None,
    ):
        """
        Args:
            port: HTTP port to listen on
            host: Host to bind to
            stats_fn: Returns a stats dict included in /health
        """
        if not AIOHTTP_AVAILABLE:
            raise ImportError("aiohttp is required for health checks. pip install aiohttp")

        self.port = port
        self.host = host
        self.stats_fn = stats_fn
        self._checks: Dict[str, Callable[[], bool]] = {}
        self._runner: Optional["web.AppRunner"] = None

    def register_check(self, name: str, check_fn: Callable[[], bool]) -> None:
        """
        Register a health check.

        Args:
            name: Component name
            check_fn: Returns True if healthy
        """
        self._checks[name] = check_fn

    def check_all(self) -> Dict[str, bool]:
        """Run every check; a check that raises counts as unhealthy."""
        results = {}
        for name, check_fn in self._checks.items():
            try:
                results[name] = bool(check_fn())
            except Exception as e:
                logger.warning(f"Health check '{name}' failed: {e}")
                results[name] = False
        return results

    def _readiness(self) -> Dict[str, Any]:
        results = self.check_all()
        healthy = all(results.values()) if results else True
        return {"status": "healthy" if healthy else "unhealthy", "components": results}

    async def _live_handler(self, request: "web.Request") -> "web.Response":
        return web.Response(text="OK", status=200)

    async def _ready_handler(self, request: "web.Request") -> "web.Response":
        body = self._readiness()
        return web.json_response(body, status=200 if body["status"] == "healthy" else 503)

    async def _health_handler(self, request: "web.Request") -> "web.Response":
        body = self._readiness()
        if self.stats_fn is not None:
            body["stats"] = self.stats_fn()
        return web.json_response(body, status=200 if body["status"] == "healthy" else 503)

    def build_app(self) -> "web.Application":
        app = web.Application()
        app.router.add_get("/health", self._health_handler)
        app.router.add_get("/health/live", self._live_handler)
        app.router.add_get("/health/ready", self._ready_handler)
        return app

    async def start(self) -> None:
        """Start the health check HTTP server."""
        if self._runner is not None:
            return

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Health check server started on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the health check server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Health check server stopped")
