"""Guild administration actions, consulted after the messaging catalog.

Normalizers here reuse the channel resolver and the parent-id reader the
router hands over, so both stages interpret ``channelId``/``to`` and
``parentId``/``clearParent`` the same way.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..actions.chain import ActionCapabilities, ActionRegistry
from ..actions.errors import MissingRequiredParameter
from ..actions.params import (
    read_bool_flag,
    read_number_param,
    read_string_array_param,
    read_string_param,
)
from . import requests as req

GUILD_ADMIN_ACTIONS = ActionRegistry("discord.guild-admin")

Params = Mapping[str, Any]


def _optional_int(params: Params, key: str) -> Optional[int]:
    value = read_number_param(params, key, integer=True)
    return int(value) if value is not None else None


def _guild_id(params: Params) -> str:
    return read_string_param(params, "guildId", required=True)  # type: ignore[return-value]


def _user_id(params: Params) -> str:
    return read_string_param(params, "userId", required=True)  # type: ignore[return-value]


def _id_list(params: Params, plural: str, singular: str) -> Optional[tuple[str, ...]]:
    values = read_string_array_param(params, plural) or read_string_array_param(
        params, singular
    )
    return tuple(values) if values else None


@GUILD_ADMIN_ACTIONS.action("member-info")
def _member_info(params: Params, caps: ActionCapabilities) -> req.MemberInfo:
    return req.MemberInfo(guild_id=_guild_id(params), user_id=_user_id(params))


@GUILD_ADMIN_ACTIONS.action("role-info")
def _role_info(params: Params, caps: ActionCapabilities) -> req.RoleInfo:
    return req.RoleInfo(guild_id=_guild_id(params))


def _role_fields(params: Params) -> dict[str, Any]:
    return {
        "guild_id": _guild_id(params),
        "user_id": _user_id(params),
        "role_id": read_string_param(params, "roleId", required=True),
    }


@GUILD_ADMIN_ACTIONS.action("role-add")
def _role_add(params: Params, caps: ActionCapabilities) -> req.RoleAdd:
    return req.RoleAdd(**_role_fields(params))


@GUILD_ADMIN_ACTIONS.action("role-remove")
def _role_remove(params: Params, caps: ActionCapabilities) -> req.RoleRemove:
    return req.RoleRemove(**_role_fields(params))


@GUILD_ADMIN_ACTIONS.action("emoji-list")
def _emoji_list(params: Params, caps: ActionCapabilities) -> req.EmojiList:
    return req.EmojiList(guild_id=_guild_id(params))


@GUILD_ADMIN_ACTIONS.action("channel-info")
def _channel_info(params: Params, caps: ActionCapabilities) -> req.ChannelInfo:
    return req.ChannelInfo(channel_id=caps.resolve_channel_id())


@GUILD_ADMIN_ACTIONS.action("channel-list")
def _channel_list(params: Params, caps: ActionCapabilities) -> req.ChannelList:
    return req.ChannelList(guild_id=_guild_id(params))


@GUILD_ADMIN_ACTIONS.action("channel-create")
def _channel_create(params: Params, caps: ActionCapabilities) -> req.ChannelCreate:
    return req.ChannelCreate(
        guild_id=_guild_id(params),
        name=read_string_param(params, "name", required=True),
        type=_optional_int(params, "type"),
        parent_id=read_string_param(params, "parentId"),
        topic=read_string_param(params, "topic"),
        position=_optional_int(params, "position"),
        nsfw=read_bool_flag(params, "nsfw"),
    )


@GUILD_ADMIN_ACTIONS.action("channel-edit")
def _channel_edit(params: Params, caps: ActionCapabilities) -> req.ChannelEdit:
    return req.ChannelEdit(
        channel_id=read_string_param(params, "channelId", required=True),
        name=read_string_param(params, "name"),
        topic=read_string_param(params, "topic"),
        position=_optional_int(params, "position"),
        parent_id=caps.read_parent_id(params),
        nsfw=read_bool_flag(params, "nsfw"),
        rate_limit_per_user=_optional_int(params, "rateLimitPerUser"),
    )


@GUILD_ADMIN_ACTIONS.action("channel-delete")
def _channel_delete(params: Params, caps: ActionCapabilities) -> req.ChannelDelete:
    return req.ChannelDelete(
        channel_id=read_string_param(params, "channelId", required=True)
    )


@GUILD_ADMIN_ACTIONS.action("channel-move")
def _channel_move(params: Params, caps: ActionCapabilities) -> req.ChannelMove:
    return req.ChannelMove(
        guild_id=_guild_id(params),
        channel_id=read_string_param(params, "channelId", required=True),
        parent_id=caps.read_parent_id(params),
        position=_optional_int(params, "position"),
    )


@GUILD_ADMIN_ACTIONS.action("category-create")
def _category_create(params: Params, caps: ActionCapabilities) -> req.CategoryCreate:
    return req.CategoryCreate(
        guild_id=_guild_id(params),
        name=read_string_param(params, "name", required=True),
        position=_optional_int(params, "position"),
    )


@GUILD_ADMIN_ACTIONS.action("category-delete")
def _category_delete(params: Params, caps: ActionCapabilities) -> req.CategoryDelete:
    return req.CategoryDelete(
        category_id=read_string_param(params, "categoryId", required=True)
    )


@GUILD_ADMIN_ACTIONS.action("thread-list")
def _thread_list(params: Params, caps: ActionCapabilities) -> req.ThreadList:
    return req.ThreadList(
        guild_id=_guild_id(params),
        channel_id=read_string_param(params, "channelId"),
    )


@GUILD_ADMIN_ACTIONS.action("thread-reply")
def _thread_reply(params: Params, caps: ActionCapabilities) -> req.ThreadReply:
    content = read_string_param(params, "message", required=True)
    return req.ThreadReply(
        channel_id=caps.resolve_channel_id(),
        content=content,
        media_url=read_string_param(params, "media", trim=False),
        reply_to=read_string_param(params, "replyTo"),
    )


@GUILD_ADMIN_ACTIONS.action("event-list")
def _event_list(params: Params, caps: ActionCapabilities) -> req.EventList:
    return req.EventList(guild_id=_guild_id(params))


@GUILD_ADMIN_ACTIONS.action("timeout")
def _timeout(params: Params, caps: ActionCapabilities) -> req.Timeout:
    guild_id = _guild_id(params)
    user_id = _user_id(params)
    duration_minutes = _optional_int(params, "durationMin")
    until = read_string_param(params, "until")
    if duration_minutes is None and until is None:
        raise MissingRequiredParameter("durationMin or until required", key="durationMin")
    return req.Timeout(
        guild_id=guild_id,
        user_id=user_id,
        duration_minutes=duration_minutes,
        until=until,
        reason=read_string_param(params, "reason"),
    )


@GUILD_ADMIN_ACTIONS.action("kick")
def _kick(params: Params, caps: ActionCapabilities) -> req.Kick:
    return req.Kick(
        guild_id=_guild_id(params),
        user_id=_user_id(params),
        reason=read_string_param(params, "reason"),
    )


@GUILD_ADMIN_ACTIONS.action("ban")
def _ban(params: Params, caps: ActionCapabilities) -> req.Ban:
    return req.Ban(
        guild_id=_guild_id(params),
        user_id=_user_id(params),
        reason=read_string_param(params, "reason"),
        delete_message_days=_optional_int(params, "deleteDays"),
    )


@GUILD_ADMIN_ACTIONS.action("search")
def _search(params: Params, caps: ActionCapabilities) -> req.SearchMessages:
    return req.SearchMessages(
        guild_id=_guild_id(params),
        content=read_string_param(params, "query", required=True),
        channel_ids=_id_list(params, "channelIds", "channelId"),
        author_ids=_id_list(params, "authorIds", "authorId"),
        limit=_optional_int(params, "limit"),
    )
