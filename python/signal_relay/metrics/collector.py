"""
Prometheus Metrics Collector for the signaling server.

Provides metrics for monitoring:
- Open websocket connections and registered clients
- Active calls, call outcomes and call duration
- Inbound/outbound message counts by type
- Failed deliveries and malformed frames
"""

import logging
from typing import Optional

logger = logging.getLogger("signal_relay.metrics")

try:
    from prometheus_client import Counter, Histogram, Gauge, start_http_server
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.warning("prometheus_client not installed, metrics disabled. pip install prometheus-client")


if PROMETHEUS_AVAILABLE:
    # Connection metrics
    CONNECTIONS = Gauge(
        'signal_connections',
        'Number of open websocket connections'
    )
    REGISTERED_CLIENTS = Gauge(
        'signal_registered_clients',
        'Number of registered client identifiers'
    )

    # Call metrics
    ACTIVE_CALLS = Gauge(
        'signal_active_calls',
        'Number of live call sessions'
    )
    CALLS_TOTAL = Counter(
        'signal_calls_total',
        'Call attempts by outcome',
        ['outcome']  # 'started', 'user_unavailable', 'rejected', 'ended_by_user', 'participant_disconnected'
    )
    CALL_DURATION = Histogram(
        'signal_call_duration_seconds',
        'Connected duration of finished calls in seconds',
        buckets=[0, 10, 30, 60, 120, 300, 600, 1800, 3600]
    )

    # Message metrics
    MESSAGES_RECEIVED = Counter(
        'signal_messages_received_total',
        'Inbound messages by type',
        ['type']
    )
    MESSAGES_SENT = Counter(
        'signal_messages_sent_total',
        'Outbound frames queued by type',
        ['type']
    )
    DELIVERIES_FAILED = Counter(
        'signal_deliveries_failed_total',
        'Outbound frames dropped because the recipient was unavailable',
        ['type']
    )
    MALFORMED_FRAMES = Counter(
        'signal_malformed_frames_total',
        'Inbound frames that could not be parsed or were missing fields'
    )


class MetricsCollector:
    """
    Centralized metrics collector for the signaling server.

    Every recording method is a no-op when prometheus_client is missing.
    """

    def __init__(self, port: int = 9090, host: str = "0.0.0.0"):
        """
        Initialize metrics collector.

        Args:
            port: Port for Prometheus HTTP server
            host: Host to bind to
        """
        self.port = port
        self.host = host
        self._started = False

    def start(self) -> bool:
        """
        Start the Prometheus HTTP server.

        Returns:
            True if started successfully, False if prometheus not available
        """
        if not PROMETHEUS_AVAILABLE:
            logger.warning("Prometheus not available, metrics server not started")
            return False

        if self._started:
            return True

        try:
            start_http_server(self.port, addr=self.host)
            self._started = True
            logger.info(f"Prometheus metrics server started on {self.host}:{self.port}")
            return True
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False

    # Connection metrics
    def connection_change(self, delta: int) -> None:
        """Record a websocket connection opening (+1) or closing (-1)."""
        if PROMETHEUS_AVAILABLE:
            CONNECTIONS.inc(delta)

    def clients_changed(self, registered: int) -> None:
        if PROMETHEUS_AVAILABLE:
            REGISTERED_CLIENTS.set(registered)

    # Call metrics
    def call_started(self, active: int) -> None:
        if PROMETHEUS_AVAILABLE:
            CALLS_TOTAL.labels(outcome="started").inc()
            ACTIVE_CALLS.set(active)

    def call_failed(self, reason: str) -> None:
        """Record a call that never rang."""
        if PROMETHEUS_AVAILABLE:
            CALLS_TOTAL.labels(outcome=reason).inc()

    def call_ended(self, duration: Optional[float], reason: str, active: int) -> None:
        """Record a call leaving the session store. Duration is None if it never connected."""
        if PROMETHEUS_AVAILABLE:
            CALLS_TOTAL.labels(outcome=reason).inc()
            if duration is not None:
                CALL_DURATION.observe(duration)
            ACTIVE_CALLS.set(active)

    # Message metrics
    def message_received(self, message_type: str) -> None:
        if PROMETHEUS_AVAILABLE:
            MESSAGES_RECEIVED.labels(type=message_type).inc()

    def message_sent(self, message_type: str) -> None:
        if PROMETHEUS_AVAILABLE:
            MESSAGES_SENT.labels(type=message_type).inc()

    def delivery_failed(self, message_type: str) -> None:
        if PROMETHEUS_AVAILABLE:
            DELIVERIES_FAILED.labels(type=message_type).inc()

    def malformed_frame(self) -> None:
        if PROMETHEUS_AVAILABLE:
            MALFORMED_FRAMES.inc()

    @property
    def is_available(self) -> bool:
        """Check if Prometheus is available."""
        return PROMETHEUS_AVAILABLE


# Global instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
