"""Tests for the signaling wire protocol."""

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from signal_relay.core import messages
from signal_relay.core.errors import MalformedMessage
from signal_relay.core.messages import parse_message


class TestParseMessage:
    """Test inbound frame parsing."""

    def test_parse_call_request(self):
        """Fields are exposed through properties."""
        frame = json.dumps({"type": "call-request", "from": "a", "to": "b", "callId": "c1", "data": {"video": True}})

        message = parse_message(frame)

        assert message.type == "call-request"
        assert message.sender == "a"
        assert message.to == "b"
        assert message.call_id == "c1"
        assert message.data == {"video": True}
        assert message.raw == frame

    def test_parse_binary_frame(self):
        """UTF-8 binary frames are accepted."""
        message = parse_message(b'{"type": "register", "userId": "alice"}')
        assert message.user_id == "alice"

    def test_numeric_ids_stringified(self):
        """Numeric identifiers become strings."""
        message = parse_message('{"type": "register", "userId": 42}')
        assert message.user_id == "42"

    def test_echo_keeps_original_type(self):
        """echo returns the id as sent, and None for invalid ids."""
        message = parse_message('{"type": "call-end", "callId": 7, "from": true}')
        assert message.echo("callId") == 7
        assert message.echo("from") is None

    @pytest.mark.parametrize("frame", [
        "not json",
        "[1, 2, 3]",
        '{"no": "type"}',
        '{"type": 7}',
        b"\xff\xfe",
    ])
    def test_malformed(self, frame):
        """Unparsable frames raise MalformedMessage."""
        with pytest.raises(MalformedMessage):
            parse_message(frame)


class TestBuilders:
    """Test outbound message builders."""

    def test_incoming_call_omits_absent_data(self):
        """data is only present when the request carried it."""
        message = parse_message('{"type": "call-request", "from": "a", "to": "b", "callId": "c1"}')

        result = messages.incoming_call(message)

        assert result == {"type": "incoming-call", "from": "a", "callId": "c1"}

    def test_incoming_call_echoes_numeric_ids(self):
        """Numeric from/callId are not stringified on the way out."""
        message = parse_message('{"type": "call-request", "from": 5, "to": "b", "callId": 123}')

        result = messages.incoming_call(message, "5")

        assert result == {"type": "incoming-call", "from": 5, "callId": 123}

    def test_incoming_call_keeps_data(self):
        """data is passed through untouched."""
        message = parse_message('{"type": "call-request", "from": "a", "to": "b", "callId": "c1", "data": null}')
        assert "data" in messages.incoming_call(message)

    def test_call_ended_shape(self):
        """call-ended carries id, reason and duration."""
        assert messages.call_ended("c1", "ended_by_user", 1500) == {
            "type": "call-ended",
            "callId": "c1",
            "reason": "ended_by_user",
            "duration": 1500,
        }

    def test_recipient_unavailable_embeds_original(self):
        """The error echoes the original message."""
        message = parse_message('{"type": "chat", "to": "b", "text": "hi"}')

        result = messages.recipient_unavailable(message)

        assert result["type"] == "error"
        assert result["error"] == "recipient_unavailable"
        assert result["originalMessage"] == {"type": "chat", "to": "b", "text": "hi"}
