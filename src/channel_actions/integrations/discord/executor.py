"""Executes normalized Discord operation requests against the REST API."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional

from ...core.logging_utils import log_event
from ..actions.errors import (
    ActionDisabledError,
    InvalidParameterType,
    MissingRequiredParameter,
)
from ..actions.models import (
    ActionResult,
    Cleared,
    OperationRequest,
    ThreadInfo,
    Value,
    json_result,
)
from . import requests as req
from .config import DiscordActionsConfig
from .constants import (
    DISCORD_CHANNEL_TYPE_GUILD_CATEGORY,
    DISCORD_CHANNEL_TYPE_PUBLIC_THREAD,
    DISCORD_MAX_MESSAGE_LENGTH,
)
from .permissions import summarize_channel_permissions
from .rest import DiscordRestClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_DURATION_HOURS = 24
_THREAD_CHANNEL_TYPES = frozenset({10, 11, 12})

Handler = Callable[[DiscordRestClient, Any], Awaitable[dict[str, Any]]]
_HANDLERS: dict[type[OperationRequest], Handler] = {}


def _handles(*request_types: type[OperationRequest]) -> Callable[[Handler], Handler]:
    def decorator(handler: Handler) -> Handler:
        for request_type in request_types:
            _HANDLERS[request_type] = handler
        return handler

    return decorator


def parse_target(to: str) -> tuple[str, str]:
    """Split ``channel:<id>`` / ``user:<id>`` targets; bare ids are channels."""
    raw = to.strip()
    kind, sep, rest = raw.partition(":")
    if sep and kind in {"channel", "user"}:
        target_id = rest.strip()
        if not target_id:
            raise InvalidParameterType(
                f"Discord target {to!r} is missing an id", key="to"
            )
        return kind, target_id
    return "channel", raw


async def _resolve_target_channel(client: DiscordRestClient, to: str) -> str:
    kind, target_id = parse_target(to)
    if kind == "user":
        dm = await client.create_dm_channel(recipient_id=target_id)
        return str(dm.get("id") or "")
    return target_id


def _chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LENGTH) -> list[str]:
    if len(text) <= limit:
        return [text]
    chunks: list[str] = []
    remaining = text
    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(remaining[:cut])
        remaining = remaining[cut:].lstrip("\n")
    if remaining:
        chunks.append(remaining)
    return chunks


async def _send_text(
    client: DiscordRestClient,
    *,
    channel_id: str,
    content: str,
    media_url: Optional[str],
    reply_to: Optional[str],
) -> dict[str, Any]:
    chunks = _chunk_text(content)
    first: dict[str, Any] = {"content": chunks[0]} if chunks[0] else {}
    if reply_to:
        first["message_reference"] = {"message_id": reply_to, "fail_if_not_exists": False}
    if media_url:
        data, filename, content_type = await client.download_media(media_url)
        message = await client.create_channel_message_with_attachment(
            channel_id=channel_id,
            data=data,
            filename=filename,
            payload=first,
            content_type=content_type,
        )
    else:
        message = await client.create_channel_message(channel_id=channel_id, payload=first)
    for chunk in chunks[1:]:
        await client.create_channel_message(channel_id=channel_id, payload={"content": chunk})
    return {"ok": True, "messageId": message.get("id"), "channelId": channel_id}


@_handles(req.SendMessage)
async def _send_message(client: DiscordRestClient, request: req.SendMessage) -> dict[str, Any]:
    channel_id = await _resolve_target_channel(client, request.to)
    return await _send_text(
        client,
        channel_id=channel_id,
        content=request.content,
        media_url=request.media_url,
        reply_to=request.reply_to,
    )


@_handles(req.ThreadReply)
async def _thread_reply(client: DiscordRestClient, request: req.ThreadReply) -> dict[str, Any]:
    return await _send_text(
        client,
        channel_id=request.channel_id,
        content=request.content,
        media_url=request.media_url,
        reply_to=request.reply_to,
    )


@_handles(req.Poll)
async def _poll(client: DiscordRestClient, request: req.Poll) -> dict[str, Any]:
    channel_id = await _resolve_target_channel(client, request.to)
    poll: dict[str, Any] = {
        "question": {"text": request.question},
        "answers": [{"poll_media": {"text": answer}} for answer in request.answers],
        "duration": request.duration_hours or DEFAULT_POLL_DURATION_HOURS,
        "allow_multiselect": bool(request.allow_multiselect),
    }
    payload: dict[str, Any] = {"poll": poll}
    if request.content:
        payload["content"] = request.content
    message = await client.create_channel_message(channel_id=channel_id, payload=payload)
    return {"ok": True, "messageId": message.get("id"), "channelId": channel_id}


@_handles(req.Sticker)
async def _sticker(client: DiscordRestClient, request: req.Sticker) -> dict[str, Any]:
    channel_id = await _resolve_target_channel(client, request.to)
    payload: dict[str, Any] = {"sticker_ids": list(request.sticker_ids)}
    if request.content:
        payload["content"] = request.content
    message = await client.create_channel_message(channel_id=channel_id, payload=payload)
    return {"ok": True, "messageId": message.get("id"), "channelId": channel_id}


def _emoji_key(emoji: Mapping[str, Any]) -> str:
    name = str(emoji.get("name") or "")
    emoji_id = emoji.get("id")
    return f"{name}:{emoji_id}" if emoji_id else name


@_handles(req.React)
async def _react(client: DiscordRestClient, request: req.React) -> dict[str, Any]:
    if request.emoji is None and not request.remove:
        raise MissingRequiredParameter("emoji required", key="emoji")
    if request.remove and request.emoji:
        await client.remove_own_reaction(
            channel_id=request.channel_id,
            message_id=request.message_id,
            emoji=request.emoji,
        )
        return {"ok": True, "removed": [request.emoji]}
    # An empty emoji clears every reaction the bot left on the message.
    if not request.emoji:
        message = await client.get_channel_message(
            channel_id=request.channel_id, message_id=request.message_id
        )
        removed: list[str] = []
        for reaction in message.get("reactions") or []:
            if not reaction.get("me"):
                continue
            key = _emoji_key(reaction.get("emoji") or {})
            await client.remove_own_reaction(
                channel_id=request.channel_id,
                message_id=request.message_id,
                emoji=key,
            )
            removed.append(key)
        return {"ok": True, "removed": removed}
    await client.add_reaction(
        channel_id=request.channel_id,
        message_id=request.message_id,
        emoji=request.emoji,
    )
    return {"ok": True, "added": request.emoji}


@_handles(req.Reactions)
async def _reactions(client: DiscordRestClient, request: req.Reactions) -> dict[str, Any]:
    message = await client.get_channel_message(
        channel_id=request.channel_id, message_id=request.message_id
    )
    summary: list[dict[str, Any]] = []
    for reaction in message.get("reactions") or []:
        emoji = reaction.get("emoji") or {}
        users = await client.list_reaction_users(
            channel_id=request.channel_id,
            message_id=request.message_id,
            emoji=_emoji_key(emoji),
            limit=request.limit,
        )
        summary.append(
            {
                "emoji": emoji,
                "count": reaction.get("count"),
                "users": [
                    {"id": user.get("id"), "username": user.get("username")}
                    for user in users
                ],
            }
        )
    return {"ok": True, "reactions": summary}


@_handles(req.ReadMessages)
async def _read_messages(client: DiscordRestClient, request: req.ReadMessages) -> dict[str, Any]:
    messages = await client.list_channel_messages(
        channel_id=request.channel_id,
        limit=request.limit,
        before=request.before,
        after=request.after,
        around=request.around,
    )
    return {"ok": True, "messages": messages}


@_handles(req.EditMessage)
async def _edit_message(client: DiscordRestClient, request: req.EditMessage) -> dict[str, Any]:
    message = await client.edit_channel_message(
        channel_id=request.channel_id,
        message_id=request.message_id,
        payload={"content": request.content},
    )
    return {"ok": True, "message": message}


@_handles(req.DeleteMessage)
async def _delete_message(client: DiscordRestClient, request: req.DeleteMessage) -> dict[str, Any]:
    await client.delete_channel_message(
        channel_id=request.channel_id, message_id=request.message_id
    )
    return {"ok": True}


@_handles(req.PinMessage)
async def _pin_message(client: DiscordRestClient, request: req.PinMessage) -> dict[str, Any]:
    await client.pin_message(channel_id=request.channel_id, message_id=request.message_id)
    return {"ok": True}


@_handles(req.UnpinMessage)
async def _unpin_message(client: DiscordRestClient, request: req.UnpinMessage) -> dict[str, Any]:
    await client.unpin_message(channel_id=request.channel_id, message_id=request.message_id)
    return {"ok": True}


@_handles(req.ListPins)
async def _list_pins(client: DiscordRestClient, request: req.ListPins) -> dict[str, Any]:
    return {"ok": True, "pinned": await client.list_pins(channel_id=request.channel_id)}


@_handles(req.Permissions)
async def _permissions(client: DiscordRestClient, request: req.Permissions) -> dict[str, Any]:
    channel = await client.get_channel(channel_id=request.channel_id)
    guild_id = channel.get("guild_id")
    if not guild_id:
        return {"ok": True, "channelId": request.channel_id, "isDirectMessage": True}
    overwrite_source = None
    parent_id = channel.get("parent_id")
    if channel.get("type") in _THREAD_CHANNEL_TYPES and parent_id:
        overwrite_source = await client.get_channel(channel_id=str(parent_id))
    guild = await client.get_guild(guild_id=str(guild_id))
    roles = await client.list_guild_roles(guild_id=str(guild_id))
    me = await client.get_current_user()
    user_id = str(me.get("id") or "")
    member = await client.get_guild_member(guild_id=str(guild_id), user_id=user_id)
    summary = summarize_channel_permissions(
        channel=channel,
        guild=guild,
        roles=roles,
        member=member,
        user_id=user_id,
        overwrite_source=overwrite_source,
    )
    return {"ok": True, **summary}


@_handles(req.ThreadCreate)
async def _thread_create(client: DiscordRestClient, request: req.ThreadCreate) -> dict[str, Any]:
    payload: dict[str, Any] = {"name": request.name}
    if request.auto_archive_minutes is not None:
        payload["auto_archive_duration"] = request.auto_archive_minutes
    if request.message_id:
        thread = await client.start_thread_from_message(
            channel_id=request.channel_id,
            message_id=request.message_id,
            payload=payload,
        )
    else:
        payload["type"] = (
            request.type if request.type is not None else DISCORD_CHANNEL_TYPE_PUBLIC_THREAD
        )
        thread = await client.start_thread(channel_id=request.channel_id, payload=payload)
    return {"ok": True, "thread": thread}


@_handles(req.ThreadDelete)
async def _thread_delete(client: DiscordRestClient, request: req.ThreadDelete) -> dict[str, Any]:
    await client.delete_channel(channel_id=request.channel_id)
    return {"ok": True, "deleted": request.channel_id}


@_handles(req.ThreadRename)
async def _thread_rename(client: DiscordRestClient, request: req.ThreadRename) -> dict[str, Any]:
    thread = await client.modify_channel(
        channel_id=request.channel_id, payload={"name": request.name}
    )
    return {"ok": True, "thread": thread}


@_handles(req.ThreadList)
async def _thread_list(client: DiscordRestClient, request: req.ThreadList) -> dict[str, Any]:
    active = await client.list_active_threads(guild_id=request.guild_id)
    threads = [item for item in active.get("threads") or [] if isinstance(item, dict)]
    if request.channel_id:
        threads = [item for item in threads if item.get("parent_id") == request.channel_id]
    return {"ok": True, "threads": threads}


@_handles(req.MemberInfo)
async def _member_info(client: DiscordRestClient, request: req.MemberInfo) -> dict[str, Any]:
    member = await client.get_guild_member(guild_id=request.guild_id, user_id=request.user_id)
    return {"ok": True, "member": member}


@_handles(req.RoleInfo)
async def _role_info(client: DiscordRestClient, request: req.RoleInfo) -> dict[str, Any]:
    return {"ok": True, "roles": await client.list_guild_roles(guild_id=request.guild_id)}


@_handles(req.RoleAdd)
async def _role_add(client: DiscordRestClient, request: req.RoleAdd) -> dict[str, Any]:
    await client.add_guild_member_role(
        guild_id=request.guild_id, user_id=request.user_id, role_id=request.role_id
    )
    return {"ok": True}


@_handles(req.RoleRemove)
async def _role_remove(client: DiscordRestClient, request: req.RoleRemove) -> dict[str, Any]:
    await client.remove_guild_member_role(
        guild_id=request.guild_id, user_id=request.user_id, role_id=request.role_id
    )
    return {"ok": True}


@_handles(req.EmojiList)
async def _emoji_list(client: DiscordRestClient, request: req.EmojiList) -> dict[str, Any]:
    return {"ok": True, "emojis": await client.list_guild_emojis(guild_id=request.guild_id)}


@_handles(req.ChannelInfo)
async def _channel_info(client: DiscordRestClient, request: req.ChannelInfo) -> dict[str, Any]:
    return {"ok": True, "channel": await client.get_channel(channel_id=request.channel_id)}


@_handles(req.ChannelList)
async def _channel_list(client: DiscordRestClient, request: req.ChannelList) -> dict[str, Any]:
    return {
        "ok": True,
        "channels": await client.list_guild_channels(guild_id=request.guild_id),
    }


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


def _apply_parent_update(payload: dict[str, Any], update: Any) -> None:
    if isinstance(update, Cleared):
        payload["parent_id"] = None
    elif isinstance(update, Value):
        payload["parent_id"] = update.value


@_handles(req.ChannelCreate)
async def _channel_create(client: DiscordRestClient, request: req.ChannelCreate) -> dict[str, Any]:
    payload = _drop_none(
        {
            "name": request.name,
            "type": request.type,
            "parent_id": request.parent_id,
            "topic": request.topic,
            "position": request.position,
            "nsfw": request.nsfw,
        }
    )
    channel = await client.create_guild_channel(guild_id=request.guild_id, payload=payload)
    return {"ok": True, "channel": channel}


@_handles(req.ChannelEdit)
async def _channel_edit(client: DiscordRestClient, request: req.ChannelEdit) -> dict[str, Any]:
    payload = _drop_none(
        {
            "name": request.name,
            "topic": request.topic,
            "position": request.position,
            "nsfw": request.nsfw,
            "rate_limit_per_user": request.rate_limit_per_user,
        }
    )
    _apply_parent_update(payload, request.parent_id)
    channel = await client.modify_channel(channel_id=request.channel_id, payload=payload)
    return {"ok": True, "channel": channel}


@_handles(req.ChannelDelete)
async def _channel_delete(client: DiscordRestClient, request: req.ChannelDelete) -> dict[str, Any]:
    await client.delete_channel(channel_id=request.channel_id)
    return {"ok": True, "deleted": request.channel_id}


@_handles(req.ChannelMove)
async def _channel_move(client: DiscordRestClient, request: req.ChannelMove) -> dict[str, Any]:
    entry: dict[str, Any] = {"id": request.channel_id}
    if request.position is not None:
        entry["position"] = request.position
    _apply_parent_update(entry, request.parent_id)
    await client.modify_guild_channel_positions(guild_id=request.guild_id, payload=[entry])
    return {"ok": True}


@_handles(req.CategoryCreate)
async def _category_create(client: DiscordRestClient, request: req.CategoryCreate) -> dict[str, Any]:
    payload = _drop_none(
        {
            "name": request.name,
            "type": DISCORD_CHANNEL_TYPE_GUILD_CATEGORY,
            "position": request.position,
        }
    )
    category = await client.create_guild_channel(guild_id=request.guild_id, payload=payload)
    return {"ok": True, "category": category}


@_handles(req.CategoryDelete)
async def _category_delete(client: DiscordRestClient, request: req.CategoryDelete) -> dict[str, Any]:
    await client.delete_channel(channel_id=request.category_id)
    return {"ok": True, "deleted": request.category_id}


@_handles(req.EventList)
async def _event_list(client: DiscordRestClient, request: req.EventList) -> dict[str, Any]:
    return {"ok": True, "events": await client.list_scheduled_events(guild_id=request.guild_id)}


@_handles(req.Timeout)
async def _timeout(client: DiscordRestClient, request: req.Timeout) -> dict[str, Any]:
    until = request.until
    if until is None and request.duration_minutes:
        until = (
            datetime.now(timezone.utc) + timedelta(minutes=request.duration_minutes)
        ).isoformat()
    member = await client.modify_guild_member(
        guild_id=request.guild_id,
        user_id=request.user_id,
        payload={"communication_disabled_until": until},
        reason=request.reason,
    )
    return {"ok": True, "member": member}


@_handles(req.Kick)
async def _kick(client: DiscordRestClient, request: req.Kick) -> dict[str, Any]:
    await client.remove_guild_member(
        guild_id=request.guild_id, user_id=request.user_id, reason=request.reason
    )
    return {"ok": True}


@_handles(req.Ban)
async def _ban(client: DiscordRestClient, request: req.Ban) -> dict[str, Any]:
    delete_seconds = (
        request.delete_message_days * 86400
        if request.delete_message_days is not None
        else None
    )
    await client.create_guild_ban(
        guild_id=request.guild_id,
        user_id=request.user_id,
        delete_message_seconds=delete_seconds,
        reason=request.reason,
    )
    return {"ok": True}


@_handles(req.SearchMessages)
async def _search_messages(client: DiscordRestClient, request: req.SearchMessages) -> dict[str, Any]:
    params: list[tuple[str, Any]] = [("content", request.content)]
    params.extend(("channel_id", channel_id) for channel_id in request.channel_ids or ())
    params.extend(("author_id", author_id) for author_id in request.author_ids or ())
    if request.limit is not None:
        params.append(("limit", request.limit))
    results = await client.search_guild_messages(guild_id=request.guild_id, params=params)
    return {"ok": True, "results": results}


def coerce_config(cfg: Any, default: DiscordActionsConfig) -> DiscordActionsConfig:
    if isinstance(cfg, DiscordActionsConfig):
        return cfg
    if isinstance(cfg, Mapping):
        section = cfg.get("discord") if "discord" in cfg else cfg
        return DiscordActionsConfig.from_raw(dict(section) if isinstance(section, Mapping) else {})
    return default


class DiscordActionExecutor:
    """Provider executor for Discord.

    One REST client is kept per bot token environment variable and transport
    settings, so accounts never share credentials and a per-call config with
    a different timeout or retry budget gets its own client.
    """

    def __init__(
        self,
        config: Optional[DiscordActionsConfig] = None,
        *,
        client_factory: Callable[..., DiscordRestClient] = DiscordRestClient,
    ) -> None:
        self._config = config or DiscordActionsConfig()
        self._client_factory = client_factory
        self._clients: dict[tuple[str, float, int], DiscordRestClient] = {}

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.close()

    async def __aenter__(self) -> "DiscordActionExecutor":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    def _client_for(
        self, config: DiscordActionsConfig, account_id: Optional[str]
    ) -> DiscordRestClient:
        key = (
            config.token_env_for(account_id),
            config.timeout_seconds,
            config.max_retries,
        )
        client = self._clients.get(key)
        if client is None:
            client = self._client_factory(
                bot_token=config.resolve_bot_token(account_id),
                timeout_seconds=config.timeout_seconds,
                max_retries=config.max_retries,
            )
            self._clients[key] = client
        return client

    async def fetch_thread_info(
        self,
        thread_id: str,
        *,
        account_id: Optional[str] = None,
        cfg: Any = None,
    ) -> ThreadInfo:
        config = coerce_config(cfg, self._config)
        client = self._client_for(config, account_id)
        channel = await client.get_channel(channel_id=thread_id)
        return ThreadInfo.from_payload(channel)

    async def execute(
        self,
        request: OperationRequest,
        cfg: Any,
        *,
        account_id: Optional[str] = None,
    ) -> ActionResult:
        config = coerce_config(cfg, self._config)
        if not config.is_action_enabled(request.group):
            raise ActionDisabledError(
                f"Discord {request.group} actions are disabled "
                f"(enable discord.actions.{request.group})."
            )
        handler = _HANDLERS.get(type(request))
        if handler is None:
            raise TypeError(f"No Discord handler for {type(request).__name__}")
        client = self._client_for(config, account_id)
        log_event(
            logger,
            logging.DEBUG,
            "discord.action.execute",
            action=request.action,
            account_id=account_id,
            request=request.to_payload(),
        )
        payload = await handler(client, request)
        return json_result(payload)
