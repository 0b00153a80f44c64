"""Tests for the server entry point."""

import os
import socket
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from signal_relay.__main__ import main
from signal_relay.config import reset_config


class TestMain:
    """Test main() exit status."""

    def teardown_method(self):
        for key in ('SIGNAL_HOST', 'SIGNAL_PORT', 'SIGNAL_STATS_INTERVAL'):
            os.environ.pop(key, None)
        reset_config()

    @pytest.mark.asyncio
    async def test_port_in_use_exits_non_zero(self):
        """A failed bind is reported through the exit status."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
            busy.bind(("127.0.0.1", 0))
            busy.listen(1)
            os.environ['SIGNAL_HOST'] = '127.0.0.1'
            os.environ['SIGNAL_PORT'] = str(busy.getsockname()[1])
            os.environ['SIGNAL_STATS_INTERVAL'] = '0'
            reset_config()

            assert await main() == 1
