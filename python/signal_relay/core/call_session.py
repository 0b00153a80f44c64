"""Call session state and the store that owns live sessions."""
import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import DuplicateCallId

logger = logging.getLogger("signal_relay.call_session")


class CallStatus(str, Enum):
    """Call lifecycle status. ENDED is terminal and never stored."""
    RINGING = "ringing"
    CONNECTED = "connected"
    ENDED = "ended"


@dataclass(frozen=True)
class CallSession:
    """One call attempt between two clients."""
    call_id: str
    caller: str
    receiver: str
    status: CallStatus = CallStatus.RINGING
    start_time: float = 0.0
    connect_time: Optional[float] = None
    # callId as the caller sent it (e.g. a JSON number)
    wire_call_id: Any = None

    @property
    def echo_call_id(self) -> Any:
        return self.call_id if self.wire_call_id is None else self.wire_call_id

    def involves(self, client_id: str) -> bool:
        return client_id in (self.caller, self.receiver)

    def other_party(self, client_id: str) -> str:
        """The participant that is not ``client_id``."""
        return self.receiver if client_id == self.caller else self.caller

    def duration_ms(self, now: float) -> int:
        """Milliseconds since connect, 0 if the call never connected."""
        if self.connect_time is None:
            return 0
        return max(0, int((now - self.connect_time) * 1000))


class CallSessionStore:
    """
    Thread-safe store of live call sessions.

    Sessions are immutable snapshots; every read-modify-write runs under the
    store lock, and removal is an atomic pop so exactly one caller receives a
    removed session.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._sessions: Dict[str, CallSession] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def create(
        self,
        call_id: str,
        caller: str,
        receiver: str,
        wire_call_id: Any = None,
    ) -> CallSession:
        """
        Create a ringing session.

        Args:
            call_id: Normalized key
            caller: Calling client id
            receiver: Called client id
            wire_call_id: callId as received, echoed back in call-ended

        Raises:
            DuplicateCallId: If a live session already holds this id
        """
        with self._lock:
            if call_id in self._sessions:
                raise DuplicateCallId(call_id)
            session = CallSession(
                call_id=call_id,
                caller=caller,
                receiver=receiver,
                status=CallStatus.RINGING,
                start_time=self._clock(),
                wire_call_id=wire_call_id,
            )
            self._sessions[call_id] = session
        logger.debug(f"Session created: {call_id} ({caller} -> {receiver})")
        return session

    def get(self, call_id: Optional[str]) -> Optional[CallSession]:
        if call_id is None:
            return None
        with self._lock:
            return self._sessions.get(call_id)

    def update(
        self,
        call_id: str,
        mutator: Callable[[CallSession], CallSession],
    ) -> Optional[CallSession]:
        """
        Atomically replace a session with ``mutator(session)``.

        Returns:
            The updated session, or None if no session holds this id
        """
        with self._lock:
            session = self._sessions.get(call_id)
            if session is None:
                return None
            updated = mutator(session)
            self._sessions[call_id] = updated
            return updated

    def connect(self, call_id: str) -> Optional[CallSession]:
        """
        Transition a ringing session to CONNECTED and stamp connect_time.

        Returns:
            The connected session, or None if the call is gone or was
            already answered
        """
        with self._lock:
            session = self._sessions.get(call_id)
            if session is None or session.status is not CallStatus.RINGING:
                return None
            connected = replace(session, status=CallStatus.CONNECTED, connect_time=self._clock())
            self._sessions[call_id] = connected
            return connected

    def delete(self, call_id: Optional[str]) -> Optional[CallSession]:
        """Remove and return a session; None if it was already gone."""
        if call_id is None:
            return None
        with self._lock:
            return self._sessions.pop(call_id, None)

    def pop_for_participant(self, client_id: str) -> List[CallSession]:
        """Remove and return every session where the client is caller or receiver."""
        with self._lock:
            call_ids = [cid for cid, s in self._sessions.items() if s.involves(client_id)]
            return [self._sessions.pop(cid) for cid in call_ids]

    def sessions(self) -> List[CallSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, call_id: str) -> bool:
        with self._lock:
            return call_id in self._sessions
