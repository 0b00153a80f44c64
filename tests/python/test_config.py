"""Tests for configuration module."""

import logging
import os
import pytest
import sys

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from signal_relay.config import SignalingConfig, get_config, reset_config, setup_logging


class TestSignalingConfig:
    """Test SignalingConfig class."""

    def setup_method(self):
        """Reset config before each test."""
        reset_config()
        # Clear relevant env vars
        for key in list(os.environ.keys()):
            if key.startswith('SIGNAL_') and key != 'SIGNAL_LOG_LEVEL':
                del os.environ[key]

    def test_default_values(self):
        """Test default configuration values."""
        config = SignalingConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 3006
        assert config.stats_interval == 30
        assert config.outbox_maxsize == 256
        assert config.relay_direct_messages is False
        assert config.metrics_enabled is False
        assert config.health_enabled is False

    def test_env_var_override(self):
        """Test environment variable overrides."""
        os.environ['SIGNAL_PORT'] = '9000'
        os.environ['SIGNAL_HOST'] = '127.0.0.1'
        os.environ['SIGNAL_RELAY_DIRECT_MESSAGES'] = 'true'

        config = SignalingConfig()

        assert config.port == 9000
        assert config.host == '127.0.0.1'
        assert config.relay_direct_messages is True

    def test_invalid_outbox_size_clamped(self):
        """Test that a non-positive outbox size falls back to 1."""
        os.environ['SIGNAL_OUTBOX_MAXSIZE'] = '0'

        config = SignalingConfig()

        assert config.outbox_maxsize == 1

    def test_ws_url_uses_localhost_for_wildcard(self):
        """Test ws_url for a wildcard listen address."""
        config = SignalingConfig(host="0.0.0.0", port=4000)
        assert config.ws_url == "ws://localhost:4000"

    def test_singleton_get_config(self):
        """Test singleton pattern of get_config."""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2

    def test_reset_config(self):
        """Test config reset."""
        config1 = get_config()
        reset_config()
        config2 = get_config()

        assert config1 is not config2


class TestSetupLogging:
    """Test logging setup."""

    def test_level_and_single_handler(self):
        """setup_logging applies the level and replaces earlier handlers."""
        setup_logging(level="DEBUG", name="signal_relay.test")
        logger = setup_logging(level="ERROR", name="signal_relay.test")

        assert logger.level == logging.ERROR
        assert len(logger.handlers) == 1


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
