"""WebSocket transport: connection handles, per-connection lifecycle, server."""
from .connection import ConnectionHandle
from .lifecycle import ConnectionLifecycle
from .server import SignalingServer

__all__ = ["ConnectionHandle", "ConnectionLifecycle", "SignalingServer"]
