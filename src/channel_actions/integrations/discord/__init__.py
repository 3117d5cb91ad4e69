"""Discord provider for channel actions."""

from .config import DiscordActionsConfig
from .constants import (
    DISCORD_API_BASE_URL,
    DISCORD_MAX_MESSAGE_LENGTH,
    DISCORD_PROVIDER_ID,
    DISCORD_THREAD_ARCHIVE_DURATIONS,
)
from .errors import (
    DiscordAPIError,
    DiscordConfigError,
    DiscordError,
    DiscordPermanentError,
    DiscordTransientError,
)
from .executor import DiscordActionExecutor
from .guild_admin import GUILD_ADMIN_ACTIONS
from .handle_action import (
    MESSAGE_ACTIONS,
    build_discord_action_chain,
    handle_discord_message_action,
)
from .rest import DiscordRestClient

__all__ = [
    "DISCORD_API_BASE_URL",
    "DISCORD_MAX_MESSAGE_LENGTH",
    "DISCORD_PROVIDER_ID",
    "DISCORD_THREAD_ARCHIVE_DURATIONS",
    "GUILD_ADMIN_ACTIONS",
    "MESSAGE_ACTIONS",
    "DiscordAPIError",
    "DiscordActionExecutor",
    "DiscordActionsConfig",
    "DiscordConfigError",
    "DiscordError",
    "DiscordPermanentError",
    "DiscordRestClient",
    "DiscordTransientError",
    "build_discord_action_chain",
    "handle_discord_message_action",
]
