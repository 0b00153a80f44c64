"""
Message router and call state machine.

``MessageRouter.route`` maps ``(peer state, message)`` to
``(peer state, deliveries)``: it mutates the registry and session store and
returns the outbound frames to send, without touching the network.
``MessageRouter.deliver`` hands those frames to the recipients' connections.

Call session transitions:
    ringing -> connected -> (removed)
    ringing -> (removed)      reject, unavailable receiver, disconnect
    connected -> (removed)    end, disconnect
"""

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from . import messages
from .call_session import CallSession, CallSessionStore
from .errors import DuplicateCallId, MalformedMessage, RecipientUnavailable, UnknownMessageType
from .messages import FORWARD_TYPES, MessageType, SignalMessage
from .registry import ConnectionRegistry

if TYPE_CHECKING:
    from ..metrics import MetricsCollector
    from ..websocket.connection import ConnectionHandle

logger = logging.getLogger("signal_relay.router")

Payload = Union[Dict[str, Any], str]


@dataclass(frozen=True)
class PeerState:
    """Per-connection routing state."""
    connection: "ConnectionHandle"
    client_id: Optional[str] = None


@dataclass(frozen=True)
class Delivery:
    """
    One outbound frame.

    ``target`` is a client id resolved through the registry at delivery time;
    None means the sender's own connection. ``silent`` deliveries are dropped
    without a warning when the target is gone.
    """
    target: Optional[str]
    payload: Payload
    silent: bool = False
    label: Optional[str] = None

    @classmethod
    def reply(cls, payload: Payload) -> "Delivery":
        return cls(target=None, payload=payload)

    @property
    def message_type(self) -> str:
        if self.label:
            return self.label
        if isinstance(self.payload, dict):
            return str(self.payload.get("type", "unknown"))
        return "forward"


class MessageRouter:
    """Dispatch inbound signaling messages by type."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        sessions: CallSessionStore,
        relay_direct_messages: bool = False,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.registry = registry
        self.sessions = sessions
        self.relay_direct_messages = relay_direct_messages
        self.metrics = metrics

        self._handlers = {
            MessageType.REGISTER.value: self._on_register,
            MessageType.CALL_REQUEST.value: self._on_call_request,
            MessageType.CALL_ACCEPT.value: self._on_call_accept,
            MessageType.CALL_REJECT.value: self._on_call_reject,
            MessageType.CALL_END.value: self._on_call_end,
        }

    def route(
        self, state: PeerState, message: SignalMessage
    ) -> Tuple[PeerState, List[Delivery]]:
        """
        Apply one inbound message.

        Raises:
            MalformedMessage: Required fields are missing
            UnknownMessageType: No handler and direct relay is disabled
        """
        if self.metrics:
            self.metrics.message_received(message.type)

        handler = self._handlers.get(message.type)
        if handler is not None:
            return handler(state, message)

        if message.type in FORWARD_TYPES:
            return state, self._forward(message, silent=True)

        if self.relay_direct_messages and message.to:
            return state, self._relay_direct(message)

        raise UnknownMessageType(message.type)

    # Registration

    def _on_register(self, state: PeerState, message: SignalMessage):
        client_id = message.user_id
        if client_id is None:
            raise MalformedMessage("register requires 'userId'")

        # A connection holds at most one identifier; releasing the old one
        # ends its calls as if it had disconnected
        released: List[Delivery] = []
        old_id = state.client_id
        if old_id is not None and old_id != client_id:
            if self.registry.remove(old_id, state.connection):
                logger.info(f"Client {old_id} re-registered as {client_id}")
                released = self._end_all(old_id, messages.REASON_PARTICIPANT_DISCONNECTED)

        self.registry.register(client_id, state.connection)
        state.connection.client_id = client_id
        logger.info(f"Client registered: {client_id} ({state.connection.remote})")
        if self.metrics:
            self.metrics.clients_changed(len(self.registry))

        deliveries = [Delivery.reply(messages.registered(client_id))] + released
        return replace(state, client_id=client_id), deliveries

    # Call lifecycle

    def _on_call_request(self, state: PeerState, message: SignalMessage):
        caller = message.sender or state.client_id
        receiver = message.to
        call_id = message.call_id
        if caller is None or receiver is None or call_id is None:
            raise MalformedMessage("call-request requires 'from', 'to' and 'callId'")

        logger.info(f"Call request: {caller} -> {receiver} ({call_id})")

        try:
            self.sessions.create(call_id, caller, receiver, wire_call_id=message.echo("callId"))
        except DuplicateCallId:
            logger.warning(f"Call {call_id} already active, rejecting duplicate request from {caller}")
            return state, [Delivery.reply(
                messages.call_failed(message.echo("callId"), messages.REASON_DUPLICATE_CALL_ID)
            )]

        try:
            self._require_online(receiver)
        except RecipientUnavailable:
            self.sessions.delete(call_id)
            logger.info(f"Receiver {receiver} not available for call {call_id}")
            if self.metrics:
                self.metrics.call_failed(messages.REASON_USER_UNAVAILABLE)
            return state, [Delivery.reply(
                messages.call_failed(message.echo("callId"), messages.REASON_USER_UNAVAILABLE)
            )]

        if self.metrics:
            self.metrics.call_started(len(self.sessions))
        return state, [Delivery(receiver, messages.incoming_call(message, caller))]

    def _on_call_accept(self, state: PeerState, message: SignalMessage):
        call_id = message.call_id
        session = self.sessions.connect(call_id) if call_id else None
        if session is None:
            logger.warning(f"Accept for unknown or already answered call {call_id}, ignoring")
            return state, []

        logger.info(f"Call accepted: {call_id}")
        # 'to' carries the original caller in an accept
        target = message.to or session.caller
        return state, [Delivery(target, messages.call_accepted(message, message.sender or state.client_id))]

    def _on_call_reject(self, state: PeerState, message: SignalMessage):
        call_id = message.call_id
        session = self.sessions.delete(call_id)
        if session is not None:
            logger.info(f"Call rejected: {call_id}")
            if self.metrics:
                self.metrics.call_ended(None, "rejected", len(self.sessions))
        else:
            logger.info(f"Reject for unknown call {call_id}, notifying {message.to}")

        # 'to' carries the original caller in a reject
        target = message.to or (session.caller if session else None)
        if target is None:
            logger.warning(f"Cannot deliver call-rejected for {call_id}: no 'to'")
            return state, []
        return state, [Delivery(target, messages.call_rejected(message, state.client_id))]

    def _on_call_end(self, state: PeerState, message: SignalMessage):
        return state, self.end_call(message.call_id, messages.REASON_ENDED_BY_USER)

    def end_call(
        self,
        call_id: Optional[str],
        reason: str,
        exclude: Optional[str] = None,
    ) -> List[Delivery]:
        """
        Remove a call and notify its participants.

        Args:
            call_id: Call to terminate
            reason: Reason reported in call-ended
            exclude: Participant not to notify (e.g. the one that disconnected)
        """
        session = self.sessions.delete(call_id)
        if session is None:
            logger.debug(f"End for unknown call {call_id}, ignoring")
            return []
        return self._ended(session, reason, exclude)

    def _end_all(self, client_id: str, reason: str) -> List[Delivery]:
        """End every call the client is part of, notifying the other parties."""
        deliveries: List[Delivery] = []
        for session in self.sessions.pop_for_participant(client_id):
            deliveries.extend(self._ended(session, reason, exclude=client_id))
        return deliveries

    def _ended(self, session: CallSession, reason: str, exclude: Optional[str]) -> List[Delivery]:
        duration = session.duration_ms(self.sessions.now())
        logger.info(f"Call ended: {session.call_id} ({reason}, {duration} ms)")
        if self.metrics:
            seconds = duration / 1000.0 if session.connect_time is not None else None
            self.metrics.call_ended(seconds, reason, len(self.sessions))

        payload = messages.call_ended(session.echo_call_id, reason, duration)
        return [
            Delivery(participant, payload)
            for participant in (session.caller, session.receiver)
            if participant != exclude
        ]

    # Relaying

    def _forward(self, message: SignalMessage, silent: bool) -> List[Delivery]:
        target = message.to
        if target is None:
            logger.warning(f"Cannot forward {message.type}: no 'to'")
            return []
        return [Delivery(target, message.raw, silent=silent, label=message.type)]

    def _require_online(self, client_id: Optional[str]) -> None:
        if not self.registry.is_online(client_id):
            raise RecipientUnavailable(client_id)

    def _relay_direct(self, message: SignalMessage) -> List[Delivery]:
        try:
            self._require_online(message.to)
        except RecipientUnavailable:
            logger.info(f"Recipient {message.to} not available for {message.type}")
            return [Delivery.reply(messages.recipient_unavailable(message))]
        return [Delivery(message.to, message.raw, label=message.type)]

    # Disconnect

    def disconnect(self, state: PeerState) -> List[Delivery]:
        """
        Clean up after a connection closes.

        Removes the registry entry if this connection still owns it and ends
        every call the client was part of, notifying only the other party.
        A connection superseded by a newer registration leaves the newer
        connection's entry and calls alone.
        """
        client_id = state.client_id
        if client_id is None:
            return []

        if not self.registry.remove(client_id, state.connection):
            logger.info(f"Superseded connection for {client_id} closed")
            return []

        logger.info(f"Client disconnected: {client_id}")
        if self.metrics:
            self.metrics.clients_changed(len(self.registry))

        return self._end_all(client_id, messages.REASON_PARTICIPANT_DISCONNECTED)

    # Delivery

    def deliver(self, state: PeerState, deliveries: List[Delivery]) -> int:
        """
        Hand deliveries to the recipients' connections.

        Returns:
            Number of frames accepted for sending
        """
        sent = 0
        for delivery in deliveries:
            if delivery.target is None:
                handle = state.connection
            else:
                handle = self.registry.lookup(delivery.target)

            if handle is None or not handle.is_open:
                if delivery.silent:
                    logger.info(f"Cannot forward {delivery.message_type} to {delivery.target} - not connected")
                else:
                    logger.warning(f"Dropped {delivery.message_type} for {delivery.target} - not connected")
                if self.metrics:
                    self.metrics.delivery_failed(delivery.message_type)
                continue

            if handle.send(delivery.payload):
                sent += 1
                if self.metrics:
                    self.metrics.message_sent(delivery.message_type)
            elif self.metrics:
                self.metrics.delivery_failed(delivery.message_type)
        return sent
