"""Core runtime primitives."""

from .config import AppConfig, ConfigError, LogConfig, load_config
from .exceptions import ChannelActionsError, PermanentError, TransientError
from .logging_utils import log_event, setup_rotating_logger

__all__ = [
    "AppConfig",
    "ChannelActionsError",
    "ConfigError",
    "LogConfig",
    "PermanentError",
    "TransientError",
    "load_config",
    "log_event",
    "setup_rotating_logger",
]
