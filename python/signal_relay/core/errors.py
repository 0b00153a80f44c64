"""Signaling error taxonomy.

None of these are fatal: each is raised where the condition is detected and
handled inside the connection task that triggered it.
"""

from typing import Any, Optional


class SignalingError(Exception):
    """Base class for signaling errors."""


class MalformedMessage(SignalingError):
    """Inbound frame is not a JSON object with a string ``type``."""

    def __init__(self, reason: str, raw: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.raw = raw


class RecipientUnavailable(SignalingError):
    """Target client is not registered or its connection is closed."""

    def __init__(self, client_id: Optional[str]):
        super().__init__(f"Recipient unavailable: {client_id}")
        self.client_id = client_id


class DuplicateCallId(SignalingError):
    """A live call session already holds this call id."""

    def __init__(self, call_id: str):
        super().__init__(f"Call already exists: {call_id}")
        self.call_id = call_id


class UnknownMessageType(SignalingError):
    """Inbound message type has no handler."""

    def __init__(self, message_type: Any):
        super().__init__(f"Unknown message type: {message_type!r}")
        self.message_type = message_type
