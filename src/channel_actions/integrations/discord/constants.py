from __future__ import annotations

DISCORD_API_BASE_URL = "https://discord.com/api/v10"

DISCORD_PROVIDER_ID = "discord"
DISCORD_PROVIDER_LABEL = "Discord"

# Discord hard limit for message content.
DISCORD_MAX_MESSAGE_LENGTH = 2000

# Auto-archive durations accepted by the thread endpoints, in minutes.
DISCORD_THREAD_ARCHIVE_DURATIONS = (60, 1440, 4320, 10080)

# Channel types (https://discord.com/developers/docs/resources/channel#channel-object-channel-types).
DISCORD_CHANNEL_TYPE_GUILD_CATEGORY = 4
DISCORD_CHANNEL_TYPE_PUBLIC_THREAD = 11

# Permission bitflags used when resolving effective channel permissions.
DISCORD_PERMISSION_ADMINISTRATOR = 1 << 3
DISCORD_PERMISSION_NAMES = {
    "CREATE_INSTANT_INVITE": 1 << 0,
    "KICK_MEMBERS": 1 << 1,
    "BAN_MEMBERS": 1 << 2,
    "ADMINISTRATOR": 1 << 3,
    "MANAGE_CHANNELS": 1 << 4,
    "MANAGE_GUILD": 1 << 5,
    "ADD_REACTIONS": 1 << 6,
    "VIEW_CHANNEL": 1 << 10,
    "SEND_MESSAGES": 1 << 11,
    "MANAGE_MESSAGES": 1 << 13,
    "EMBED_LINKS": 1 << 14,
    "ATTACH_FILES": 1 << 15,
    "READ_MESSAGE_HISTORY": 1 << 16,
    "MENTION_EVERYONE": 1 << 17,
    "MANAGE_ROLES": 1 << 28,
    "MANAGE_THREADS": 1 << 34,
    "CREATE_PUBLIC_THREADS": 1 << 35,
    "SEND_MESSAGES_IN_THREADS": 1 << 38,
    "MODERATE_MEMBERS": 1 << 40,
}
