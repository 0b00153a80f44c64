"""
Signal Relay - WebSocket signaling server for peer-to-peer calls.

Brokers the call handshake between registered clients:
- Client registration (identifier -> live connection)
- Call lifecycle (request, accept, reject, end) with exactly-once
  call-ended delivery, including when a participant disconnects
- Verbatim forwarding of offers, answers and ICE candidates

Media never passes through the server.

Usage:
    python -m signal_relay

Environment Variables:
    SIGNAL_HOST - Listen address (default: 0.0.0.0)
    SIGNAL_PORT - WebSocket port (default: 3006)
    SIGNAL_LOG_LEVEL - Log level (default: INFO)
"""

__version__ = "1.0.0"

from .config import SignalingConfig, get_config
from .websocket import SignalingServer

__all__ = [
    "SignalingConfig",
    "get_config",
    "SignalingServer",
]
