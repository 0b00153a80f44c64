"""
Signaling server configuration with environment variable support.

Environment Variables:
    SIGNAL_HOST - Listen address (default: 0.0.0.0)
    SIGNAL_PORT - WebSocket port (default: 3006)
    SIGNAL_OUTBOX_MAXSIZE - Per-connection outbound queue bound (default: 256)
    SIGNAL_STATS_INTERVAL - Seconds between stats log lines, 0 disables (default: 30)
    SIGNAL_RELAY_DIRECT_MESSAGES - Relay untyped direct messages (true/false)
    SIGNAL_METRICS_ENABLED / SIGNAL_METRICS_PORT - Prometheus exporter
    SIGNAL_HEALTH_ENABLED / SIGNAL_HEALTH_PORT - Health check HTTP server
    SIGNAL_DEBUG - Log frame contents (true/false)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: str = "false") -> bool:
    """Read a true/false environment variable."""
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SignalingConfig:
    """Signaling server configuration."""

    # Listener
    host: str = field(default_factory=lambda: os.getenv("SIGNAL_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("SIGNAL_PORT", "3006")))

    # WebSocket transport
    ping_interval: float = field(
        default_factory=lambda: float(os.getenv("SIGNAL_PING_INTERVAL", "20.0"))
    )
    ping_timeout: float = field(
        default_factory=lambda: float(os.getenv("SIGNAL_PING_TIMEOUT", "20.0"))
    )
    max_message_size: int = field(
        default_factory=lambda: int(os.getenv("SIGNAL_MAX_MESSAGE_SIZE", str(1024 * 1024)))
    )
    outbox_maxsize: int = field(
        default_factory=lambda: int(os.getenv("SIGNAL_OUTBOX_MAXSIZE", "256"))
    )

    # Routing
    relay_direct_messages: bool = field(
        default_factory=lambda: _env_bool("SIGNAL_RELAY_DIRECT_MESSAGES")
    )

    # Housekeeping
    stats_interval: float = field(
        default_factory=lambda: float(os.getenv("SIGNAL_STATS_INTERVAL", "30"))
    )
    shutdown_timeout: float = field(
        default_factory=lambda: float(os.getenv("SIGNAL_SHUTDOWN_TIMEOUT", "5.0"))
    )

    # Observability
    metrics_enabled: bool = field(
        default_factory=lambda: _env_bool("SIGNAL_METRICS_ENABLED")
    )
    metrics_port: int = field(
        default_factory=lambda: int(os.getenv("SIGNAL_METRICS_PORT", "9090"))
    )
    health_enabled: bool = field(
        default_factory=lambda: _env_bool("SIGNAL_HEALTH_ENABLED")
    )
    health_port: int = field(
        default_factory=lambda: int(os.getenv("SIGNAL_HEALTH_PORT", "8080"))
    )

    # Debug
    debug: bool = field(default_factory=lambda: _env_bool("SIGNAL_DEBUG"))

    def __post_init__(self):
        """Validate values after initialization."""
        logger = logging.getLogger("signal_relay.config")

        if self.outbox_maxsize < 1:
            logger.warning(
                f"SIGNAL_OUTBOX_MAXSIZE={self.outbox_maxsize} is invalid, using 1"
            )
            self.outbox_maxsize = 1

        if self.stats_interval < 0:
            self.stats_interval = 0

    @property
    def ws_url(self) -> str:
        """URL clients should connect to."""
        host = "localhost" if self.host in ("0.0.0.0", "") else self.host
        return f"ws://{host}:{self.port}"


# Singleton config instance
_config: Optional[SignalingConfig] = None


def get_config() -> SignalingConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = SignalingConfig()
    return _config


def reset_config():
    """Reset the global config (useful for testing)."""
    global _config
    _config = None
