from __future__ import annotations

from typing import Optional

from ...core.exceptions import ChannelActionsError, PermanentError, TransientError
from ..actions.errors import UpstreamProviderError


class DiscordError(ChannelActionsError):
    """Base Discord integration error."""


class DiscordConfigError(DiscordError, PermanentError):
    """Discord integration configuration error."""


class DiscordAPIError(DiscordError, UpstreamProviderError):
    """Discord API request error."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: Optional[float] = None,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
    ) -> None:
        if user_message is None:
            user_message = "Discord API request failed."
        super().__init__(message, user_message=user_message)
        self.retry_after = retry_after
        self.status_code = status_code


class DiscordTransientError(DiscordAPIError, TransientError):
    """Retryable Discord API error (rate limits, network issues)."""


class DiscordPermanentError(DiscordAPIError, PermanentError):
    """Non-retryable Discord API error (auth failures, invalid requests)."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity
