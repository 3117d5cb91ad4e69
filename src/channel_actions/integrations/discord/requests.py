"""Normalized Discord operation requests, one dataclass per operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..actions.models import UNSPECIFIED, FieldUpdate, OperationRequest

# Messaging catalog


@dataclass(frozen=True)
class SendMessage(OperationRequest):
    action = "sendMessage"
    group = "messages"

    to: str
    content: str
    media_url: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class Poll(OperationRequest):
    action = "poll"
    group = "polls"

    to: str
    question: str
    answers: tuple[str, ...]
    allow_multiselect: Optional[bool] = None
    duration_hours: Optional[int] = None
    content: Optional[str] = None


@dataclass(frozen=True)
class React(OperationRequest):
    action = "react"
    group = "reactions"

    channel_id: str
    message_id: str
    emoji: Optional[str] = None
    remove: Optional[bool] = None


@dataclass(frozen=True)
class Reactions(OperationRequest):
    action = "reactions"
    group = "reactions"

    channel_id: str
    message_id: str
    limit: Optional[int] = None


@dataclass(frozen=True)
class ReadMessages(OperationRequest):
    action = "readMessages"
    group = "messages"

    channel_id: str
    limit: Optional[int] = None
    before: Optional[str] = None
    after: Optional[str] = None
    around: Optional[str] = None


@dataclass(frozen=True)
class EditMessage(OperationRequest):
    action = "editMessage"
    group = "messages"

    channel_id: str
    message_id: str
    content: str


@dataclass(frozen=True)
class DeleteMessage(OperationRequest):
    action = "deleteMessage"
    group = "messages"

    channel_id: str
    message_id: str


@dataclass(frozen=True)
class PinMessage(OperationRequest):
    action = "pinMessage"
    group = "pins"

    channel_id: str
    message_id: str


@dataclass(frozen=True)
class UnpinMessage(OperationRequest):
    action = "unpinMessage"
    group = "pins"

    channel_id: str
    message_id: str


@dataclass(frozen=True)
class ListPins(OperationRequest):
    action = "listPins"
    group = "pins"

    channel_id: str


@dataclass(frozen=True)
class Permissions(OperationRequest):
    action = "permissions"
    group = "permissions"

    channel_id: str


@dataclass(frozen=True)
class ThreadCreate(OperationRequest):
    action = "threadCreate"
    group = "threads"

    channel_id: str
    name: str
    message_id: Optional[str] = None
    auto_archive_minutes: Optional[int] = None
    type: Optional[int] = None


@dataclass(frozen=True)
class ThreadDelete(OperationRequest):
    action = "threadDelete"
    group = "threads"
    thread_scoped = True

    channel_id: str


@dataclass(frozen=True)
class ThreadRename(OperationRequest):
    action = "threadRename"
    group = "threads"
    thread_scoped = True

    channel_id: str
    name: str


@dataclass(frozen=True)
class Sticker(OperationRequest):
    action = "sticker"
    group = "stickers"

    to: str
    sticker_ids: tuple[str, ...]
    content: Optional[str] = None


# Guild administration catalog


@dataclass(frozen=True)
class MemberInfo(OperationRequest):
    action = "memberInfo"
    group = "memberInfo"

    guild_id: str
    user_id: str


@dataclass(frozen=True)
class RoleInfo(OperationRequest):
    action = "roleInfo"
    group = "roleInfo"

    guild_id: str


@dataclass(frozen=True)
class RoleAdd(OperationRequest):
    action = "roleAdd"
    group = "roles"

    guild_id: str
    user_id: str
    role_id: str


@dataclass(frozen=True)
class RoleRemove(OperationRequest):
    action = "roleRemove"
    group = "roles"

    guild_id: str
    user_id: str
    role_id: str


@dataclass(frozen=True)
class EmojiList(OperationRequest):
    action = "emojiList"
    group = "emojiList"

    guild_id: str


@dataclass(frozen=True)
class ChannelInfo(OperationRequest):
    action = "channelInfo"
    group = "channelInfo"

    channel_id: str


@dataclass(frozen=True)
class ChannelList(OperationRequest):
    action = "channelList"
    group = "channelInfo"

    guild_id: str


@dataclass(frozen=True)
class ChannelCreate(OperationRequest):
    action = "channelCreate"
    group = "channels"

    guild_id: str
    name: str
    type: Optional[int] = None
    parent_id: Optional[str] = None
    topic: Optional[str] = None
    position: Optional[int] = None
    nsfw: Optional[bool] = None


@dataclass(frozen=True)
class ChannelEdit(OperationRequest):
    action = "channelEdit"
    group = "channels"

    channel_id: str
    name: Optional[str] = None
    topic: Optional[str] = None
    position: Optional[int] = None
    parent_id: FieldUpdate[str] = UNSPECIFIED
    nsfw: Optional[bool] = None
    rate_limit_per_user: Optional[int] = None


@dataclass(frozen=True)
class ChannelDelete(OperationRequest):
    action = "channelDelete"
    group = "channels"

    channel_id: str


@dataclass(frozen=True)
class ChannelMove(OperationRequest):
    action = "channelMove"
    group = "channels"

    guild_id: str
    channel_id: str
    parent_id: FieldUpdate[str] = UNSPECIFIED
    position: Optional[int] = None


@dataclass(frozen=True)
class CategoryCreate(OperationRequest):
    action = "categoryCreate"
    group = "channels"

    guild_id: str
    name: str
    position: Optional[int] = None


@dataclass(frozen=True)
class CategoryDelete(OperationRequest):
    action = "categoryDelete"
    group = "channels"

    category_id: str


@dataclass(frozen=True)
class ThreadList(OperationRequest):
    action = "threadList"
    group = "threads"

    guild_id: str
    channel_id: Optional[str] = None


@dataclass(frozen=True)
class ThreadReply(OperationRequest):
    action = "threadReply"
    group = "threads"

    channel_id: str
    content: str
    media_url: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class EventList(OperationRequest):
    action = "eventList"
    group = "events"

    guild_id: str


@dataclass(frozen=True)
class Timeout(OperationRequest):
    action = "timeout"
    group = "moderation"

    guild_id: str
    user_id: str
    duration_minutes: Optional[int] = None
    until: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class Kick(OperationRequest):
    action = "kick"
    group = "moderation"

    guild_id: str
    user_id: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class Ban(OperationRequest):
    action = "ban"
    group = "moderation"

    guild_id: str
    user_id: str
    reason: Optional[str] = None
    delete_message_days: Optional[int] = None


@dataclass(frozen=True)
class SearchMessages(OperationRequest):
    action = "searchMessages"
    group = "search"

    guild_id: str
    content: str
    channel_ids: Optional[tuple[str, ...]] = None
    author_ids: Optional[tuple[str, ...]] = None
    limit: Optional[int] = None
