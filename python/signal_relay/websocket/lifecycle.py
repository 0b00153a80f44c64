"""Per-connection receive loop: parse, route, deliver, clean up on close."""

import logging
from typing import TYPE_CHECKING, Any, Optional, Union

from websockets.exceptions import ConnectionClosed

from ..core.errors import MalformedMessage, SignalingError
from ..core.messages import parse_message
from ..core.router import MessageRouter, PeerState
from .connection import ConnectionHandle

if TYPE_CHECKING:
    from ..core.task_registry import TaskRegistry
    from ..metrics import MetricsCollector

logger = logging.getLogger("signal_relay.lifecycle")


class ConnectionLifecycle:
    """
    Owns one accepted connection for its whole life.

    Frames are handled one at a time in arrival order. A malformed or
    unroutable frame is logged and the connection stays open. When the
    transport closes the client is deregistered and its calls are ended.
    """

    def __init__(
        self,
        websocket: Any,
        router: MessageRouter,
        tasks: "TaskRegistry",
        outbox_maxsize: int = 256,
        debug: bool = False,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.router = router
        self.tasks = tasks
        self.debug = debug
        self.metrics = metrics
        self.handle = ConnectionHandle(websocket, outbox_maxsize=outbox_maxsize, debug=debug)
        self.state = PeerState(connection=self.handle)
        self._closed = False

    @property
    def client_id(self) -> Optional[str]:
        return self.state.client_id

    async def run(self) -> None:
        """Receive until the transport closes, then clean up."""
        websocket = self.handle.websocket
        self.handle.start(self.tasks)
        logger.info(f"New client connected: {self.handle.remote}")

        try:
            async for frame in websocket:
                self.handle_frame(frame)
        except ConnectionClosed as e:
            logger.debug(f"Connection {self.handle.remote} closed: {e}")
        finally:
            self.close()

    def handle_frame(self, frame: Union[str, bytes]) -> int:
        """
        Process one inbound frame.

        Returns:
            Number of outbound frames queued
        """
        try:
            message = parse_message(frame)
        except MalformedMessage as e:
            logger.warning(f"Malformed frame from {self.client_id or self.handle.remote}: {e.reason}")
            if self.metrics:
                self.metrics.malformed_frame()
            return 0

        if self.debug:
            logger.debug(f"Received from {self.client_id or self.handle.remote}: {message.raw}")
        else:
            logger.debug(
                f"Received {message.type} from {message.sender or self.client_id} "
                f"to {message.to}"
            )

        try:
            self.state, deliveries = self.router.route(self.state, message)
        except MalformedMessage as e:
            logger.warning(f"Invalid {message.type} from {self.client_id or self.handle.remote}: {e.reason}")
            if self.metrics:
                self.metrics.malformed_frame()
            return 0
        except SignalingError as e:
            logger.warning(f"Dropped message from {self.client_id or self.handle.remote}: {e}")
            return 0
        except Exception:
            logger.exception(f"Error processing {message.type} from {self.client_id or self.handle.remote}")
            return 0

        return self.router.deliver(self.state, deliveries)

    def close(self) -> int:
        """
        Invalidate the handle and run disconnect cleanup.

        Returns:
            Number of call-ended notifications queued for other parties
        """
        if self._closed:
            return 0
        self._closed = True

        self.handle.invalidate()
        deliveries = self.router.disconnect(self.state)
        if self.client_id is None:
            logger.info(f"Unregistered client disconnected: {self.handle.remote}")
        return self.router.deliver(self.state, deliveries)
