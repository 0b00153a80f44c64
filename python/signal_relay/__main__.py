"""
Signaling server entry point.

Usage:
    python -m signal_relay

Environment Variables:
    SIGNAL_HOST - Listen address (default: 0.0.0.0)
    SIGNAL_PORT - WebSocket port (default: 3006)
    SIGNAL_METRICS_ENABLED - Start the Prometheus exporter (true/false)
    SIGNAL_HEALTH_ENABLED - Start the health check server (true/false)
    SIGNAL_LOG_LEVEL - Log level (DEBUG, INFO, WARNING, ERROR)
"""

import asyncio
import signal
import sys

from .config import get_config, setup_logging
from .websocket import SignalingServer

# Initialize logging
logger = setup_logging()


async def main() -> int:
    """
    Main entry point.

    Returns:
        Process exit status (non-zero if the listener could not start)
    """
    config = get_config()
    server = SignalingServer(config)

    # Handle shutdown signals
    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown requested...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(signal_handler))

    try:
        await server.start()
        await shutdown_event.wait()
    except OSError as e:
        logger.error(f"Failed to start server on {config.host}:{config.port}: {e}")
        return 1
    finally:
        await server.stop()
    return 0


def run():
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
