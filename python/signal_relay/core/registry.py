"""Live connection registry: client identifier -> connection handle."""
import logging
import threading
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from ..websocket.connection import ConnectionHandle

logger = logging.getLogger("signal_relay.registry")


class ConnectionRegistry:
    """Thread-safe mapping of registered clients to their open connections."""

    def __init__(self):
        self._clients: Dict[str, "ConnectionHandle"] = {}
        self._lock = threading.Lock()

    def register(self, client_id: str, handle: "ConnectionHandle") -> Optional["ConnectionHandle"]:
        """
        Insert or replace the mapping for a client.

        Args:
            client_id: Identifier supplied by the peer
            handle: Connection the peer registered from

        Returns:
            The handle previously registered under this id, if any
        """
        with self._lock:
            previous = self._clients.get(client_id)
            self._clients[client_id] = handle
        if previous is not None and previous is not handle:
            logger.info(f"Client {client_id} re-registered, replacing previous connection")
        return previous

    def lookup(self, client_id: Optional[str]) -> Optional["ConnectionHandle"]:
        """Get the handle registered for a client."""
        if client_id is None:
            return None
        with self._lock:
            return self._clients.get(client_id)

    def remove(self, client_id: str, handle: Optional["ConnectionHandle"] = None) -> bool:
        """
        Remove a client's mapping.

        Args:
            client_id: Client to remove
            handle: If given, only remove when the entry still refers to this handle

        Returns:
            True if an entry was removed
        """
        with self._lock:
            current = self._clients.get(client_id)
            if current is None:
                return False
            if handle is not None and current is not handle:
                return False
            del self._clients[client_id]
            return True

    def is_online(self, client_id: Optional[str]) -> bool:
        """True if the client is registered and its connection is open."""
        handle = self.lookup(client_id)
        return handle is not None and handle.is_open

    def client_ids(self) -> List[str]:
        with self._lock:
            return list(self._clients)

    def handles(self) -> List["ConnectionHandle"]:
        with self._lock:
            return list(self._clients.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def __contains__(self, client_id: str) -> bool:
        with self._lock:
            return client_id in self._clients
