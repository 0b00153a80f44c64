"""
Signaling wire protocol.

Every frame is a UTF-8 JSON object with a ``type`` field. Inbound frames are
parsed into ``SignalMessage``; outbound frames are built by the helpers below
as plain dicts ready for ``json.dumps``.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import MalformedMessage


class MessageType(str, Enum):
    """Message types understood by the router."""
    # Inbound
    REGISTER = "register"
    CALL_REQUEST = "call-request"
    CALL_ACCEPT = "call-accept"
    CALL_REJECT = "call-reject"
    CALL_END = "call-end"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    # Outbound
    REGISTERED = "registered"
    INCOMING_CALL = "incoming-call"
    CALL_FAILED = "call-failed"
    CALL_ACCEPTED = "call-accepted"
    CALL_REJECTED = "call-rejected"
    CALL_ENDED = "call-ended"
    ERROR = "error"


# Media negotiation payloads are forwarded verbatim and never reported back
FORWARD_TYPES = frozenset({
    MessageType.OFFER.value,
    MessageType.ANSWER.value,
    MessageType.ICE_CANDIDATE.value,
})

# call-ended / call-failed reasons
REASON_ENDED_BY_USER = "ended_by_user"
REASON_PARTICIPANT_DISCONNECTED = "participant_disconnected"
REASON_USER_UNAVAILABLE = "user_unavailable"
REASON_DUPLICATE_CALL_ID = "duplicate_call_id"

ERROR_RECIPIENT_UNAVAILABLE = "recipient_unavailable"


@dataclass
class SignalMessage:
    """Parsed inbound frame."""
    type: str
    fields: Dict[str, Any] = field(default_factory=dict)
    raw: str = ""

    @property
    def sender(self) -> Optional[str]:
        return _as_id(self.fields.get("from"))

    @property
    def to(self) -> Optional[str]:
        return _as_id(self.fields.get("to"))

    @property
    def call_id(self) -> Optional[str]:
        return _as_id(self.fields.get("callId"))

    @property
    def user_id(self) -> Optional[str]:
        return _as_id(self.fields.get("userId"))

    @property
    def data(self) -> Any:
        return self.fields.get("data")

    @property
    def has_data(self) -> bool:
        return "data" in self.fields

    def echo(self, key: str) -> Any:
        """Identifier field as the client sent it, or None if it is not a valid id."""
        value = self.fields.get(key)
        return value if _as_id(value) is not None else None


def _as_id(value: Any) -> Optional[str]:
    """Normalized identifier key; numbers are accepted and stringified."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


def parse_message(frame: Union[str, bytes]) -> SignalMessage:
    """
    Parse one inbound frame.

    Args:
        frame: Text frame, or binary frame holding UTF-8 JSON

    Returns:
        Parsed message

    Raises:
        MalformedMessage: If the frame is not a JSON object with a string type
    """
    if isinstance(frame, (bytes, bytearray, memoryview)):
        try:
            frame = bytes(frame).decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedMessage("frame is not valid UTF-8")

    try:
        payload = json.loads(frame)
    except ValueError as e:
        raise MalformedMessage(f"invalid JSON: {e}", raw=frame)

    if not isinstance(payload, dict):
        raise MalformedMessage("frame is not a JSON object", raw=frame)

    message_type = payload.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise MalformedMessage("missing or non-string 'type'", raw=frame)

    return SignalMessage(type=message_type, fields=payload, raw=frame)


def encode(message: Dict[str, Any]) -> str:
    """Serialize an outbound message."""
    return json.dumps(message, ensure_ascii=False)


# Outbound message builders
#
# Identifiers are echoed with the JSON type the client used; ``sender`` is
# only used when the message carried no 'from'.

def _from(message: SignalMessage, sender: Optional[str]) -> Any:
    if message.sender is not None:
        return message.echo("from")
    return sender


def registered(client_id: str) -> Dict[str, Any]:
    return {"type": MessageType.REGISTERED.value, "success": True, "clientId": client_id}


def incoming_call(message: SignalMessage, sender: Optional[str] = None) -> Dict[str, Any]:
    result = {
        "type": MessageType.INCOMING_CALL.value,
        "from": _from(message, sender),
        "callId": message.echo("callId"),
    }
    if message.has_data:
        result["data"] = message.data
    return result


def call_failed(call_id: Any, reason: str) -> Dict[str, Any]:
    return {"type": MessageType.CALL_FAILED.value, "reason": reason, "callId": call_id}


def call_accepted(message: SignalMessage, sender: Optional[str] = None) -> Dict[str, Any]:
    result = {
        "type": MessageType.CALL_ACCEPTED.value,
        "from": _from(message, sender),
        "callId": message.echo("callId"),
    }
    if message.has_data:
        result["data"] = message.data
    return result


def call_rejected(message: SignalMessage, sender: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": MessageType.CALL_REJECTED.value,
        "from": _from(message, sender),
        "callId": message.echo("callId"),
    }


def call_ended(call_id: Any, reason: str, duration_ms: int) -> Dict[str, Any]:
    return {
        "type": MessageType.CALL_ENDED.value,
        "callId": call_id,
        "reason": reason,
        "duration": duration_ms,
    }


def recipient_unavailable(message: SignalMessage) -> Dict[str, Any]:
    return {
        "type": MessageType.ERROR.value,
        "error": ERROR_RECIPIENT_UNAVAILABLE,
        "originalMessage": message.fields,
    }
