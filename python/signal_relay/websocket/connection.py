"""
Connection handle for one signaling peer.

Outbound frames go through a bounded FIFO outbox drained by a single writer
task, so frames to one peer leave in the order they were queued and routing
never waits on the network. Once the transport closes the handle is invalid
and ``send`` returns False instead of raising.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ..core.messages import encode

if TYPE_CHECKING:
    from ..core.task_registry import TaskRegistry

logger = logging.getLogger("signal_relay.connection")


def _format_remote(address: Any) -> str:
    if isinstance(address, (tuple, list)) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return str(address) if address else "unknown"


class ConnectionHandle:
    """Owned wrapper around one server-side websocket."""

    def __init__(self, websocket: Any, outbox_maxsize: int = 256, debug: bool = False):
        """
        Args:
            websocket: websockets ServerConnection (or any object with
                ``send``, ``close`` and ``state``)
            outbox_maxsize: Frames queued before sends start failing
            debug: Log every outgoing frame
        """
        self.websocket = websocket
        self.remote = _format_remote(getattr(websocket, "remote_address", None))
        self.client_id: Optional[str] = None
        self.debug = debug

        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_maxsize)
        self._writer: Optional[asyncio.Task] = None
        self._closed = False
        self._sent_count = 0
        self._dropped_count = 0

    def __repr__(self) -> str:
        return f"<ConnectionHandle {self.client_id or '-'} {self.remote}>"

    @property
    def is_open(self) -> bool:
        """True until the transport closes or the handle is invalidated."""
        if self._closed:
            return False
        return getattr(self.websocket, "state", None) is State.OPEN

    @property
    def sent_count(self) -> int:
        return self._sent_count

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def pending(self) -> int:
        """Frames queued but not yet written."""
        return self._outbox.qsize()

    def start(self, tasks: "TaskRegistry") -> None:
        """Start the writer task."""
        if self._writer is None:
            self._writer = tasks.spawn(f"writer:{self.remote}", self._write_loop())

    def send(self, payload: Union[Dict[str, Any], str]) -> bool:
        """
        Queue a frame for this peer.

        Args:
            payload: Message dict, or an already-encoded frame

        Returns:
            True if the frame was queued; False if the handle is closed or
            the outbox is full
        """
        if not self.is_open:
            return False

        data = payload if isinstance(payload, str) else encode(payload)
        try:
            self._outbox.put_nowait(data)
        except asyncio.QueueFull:
            self._dropped_count += 1
            logger.warning(
                f"Outbox full for {self.client_id or self.remote}, "
                f"dropped={self._dropped_count}"
            )
            return False
        return True

    async def _write_loop(self) -> None:
        while True:
            data = await self._outbox.get()
            try:
                await self.websocket.send(data)
                self._sent_count += 1
                if self.debug:
                    logger.debug(f"Sent to {self.client_id or self.remote}: {data}")
            except ConnectionClosed:
                logger.debug(f"Send to {self.client_id or self.remote} failed: connection closed")
                self._closed = True
                self._drain_outbox()
                return
            except Exception as e:
                logger.error(f"Send error ({self.client_id or self.remote}): {e}")
            finally:
                self._outbox.task_done()

    def _drain_outbox(self) -> None:
        while True:
            try:
                self._outbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._dropped_count += 1
            self._outbox.task_done()

    async def flush(self, timeout: float = 1.0) -> bool:
        """
        Wait until every queued frame has been written.

        Returns:
            False if the timeout expired first
        """
        if self._writer is None or self._writer.done():
            return self._outbox.empty()
        try:
            await asyncio.wait_for(self._outbox.join(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def invalidate(self) -> None:
        """Mark the handle closed and stop the writer; queued frames are discarded."""
        self._closed = True
        if self._writer is not None and not self._writer.done():
            self._writer.cancel()
        self._drain_outbox()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Flush pending frames, then close the transport."""
        if not self._closed:
            await self.flush()
        self.invalidate()
        try:
            await self.websocket.close(code, reason)
        except Exception as e:
            logger.debug(f"Close error ({self.client_id or self.remote}): {e}")
