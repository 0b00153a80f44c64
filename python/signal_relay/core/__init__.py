"""Core signaling components."""
from .call_session import CallSession, CallSessionStore, CallStatus
from .errors import (
    DuplicateCallId,
    MalformedMessage,
    RecipientUnavailable,
    SignalingError,
    UnknownMessageType,
)
from .messages import MessageType, SignalMessage, parse_message
from .registry import ConnectionRegistry
from .router import Delivery, MessageRouter, PeerState
from .task_registry import TaskRegistry

__all__ = [
    "CallSession",
    "CallSessionStore",
    "CallStatus",
    "DuplicateCallId",
    "MalformedMessage",
    "RecipientUnavailable",
    "SignalingError",
    "UnknownMessageType",
    "MessageType",
    "SignalMessage",
    "parse_message",
    "ConnectionRegistry",
    "Delivery",
    "MessageRouter",
    "PeerState",
    "TaskRegistry",
]
