"""Shared error hierarchy.

Adapter layers compose these base classes so retry and severity behavior is
classified the same way everywhere.
"""

from __future__ import annotations

from typing import Optional


class ChannelActionsError(Exception):
    """Base error for the channel-actions package."""

    recoverable: bool = False
    severity: str = "error"

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class TransientError(ChannelActionsError):
    """Failure that may succeed when retried (rate limits, network blips)."""

    recoverable = True
    severity = "warning"


class PermanentError(ChannelActionsError):
    """Failure that will not succeed on retry (validation, auth, policy)."""

    recoverable = False
    severity = "error"


class ConfigError(PermanentError):
    """Raised when configuration files are missing or invalid."""
