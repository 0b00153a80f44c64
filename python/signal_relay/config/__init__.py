"""Configuration module."""
from .settings import SignalingConfig, get_config, reset_config
from .logging import setup_logging

__all__ = ["SignalingConfig", "get_config", "reset_config", "setup_logging"]
