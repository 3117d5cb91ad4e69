"""Routes agent message actions to normalized Discord operations.

The base catalog below covers messaging, reactions, pins, polls and thread
lifecycle. Anything it does not recognize is offered to the guild
administration stage, and the chain fails with ``UnsupportedAction`` when no
stage claims the action.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..actions.chain import (
    ActionCapabilities,
    ActionExecutor,
    ActionRegistry,
    DelegationChain,
    RegistryStage,
)
from ..actions.isolation import ThreadIsolationGuard
from ..actions.models import ActionRequestContext, ActionResult
from ..actions.params import (
    read_bool_flag,
    read_number_param,
    read_string_array_param,
    read_string_param,
)
from . import requests as req
from .constants import DISCORD_PROVIDER_ID, DISCORD_PROVIDER_LABEL
from .guild_admin import GUILD_ADMIN_ACTIONS

MESSAGE_ACTIONS = ActionRegistry("discord.messages")

Params = Mapping[str, Any]


def _optional_int(params: Params, key: str) -> Optional[int]:
    value = read_number_param(params, key, integer=True)
    return int(value) if value is not None else None


@MESSAGE_ACTIONS.action("send")
def _send(params: Params, caps: ActionCapabilities) -> req.SendMessage:
    to = read_string_param(params, "to", required=True)
    content = read_string_param(params, "message", required=True, allow_empty=True)
    return req.SendMessage(
        to=to,
        content=content,
        media_url=read_string_param(params, "media", trim=False),
        reply_to=read_string_param(params, "replyTo"),
    )


@MESSAGE_ACTIONS.action("poll")
def _poll(params: Params, caps: ActionCapabilities) -> req.Poll:
    to = read_string_param(params, "to", required=True)
    question = read_string_param(params, "pollQuestion", required=True)
    answers = read_string_array_param(params, "pollOption", required=True) or []
    return req.Poll(
        to=to,
        question=question,
        answers=tuple(answers),
        allow_multiselect=read_bool_flag(params, "pollMulti"),
        duration_hours=_optional_int(params, "pollDurationHours"),
        content=read_string_param(params, "message"),
    )


@MESSAGE_ACTIONS.action("react")
def _react(params: Params, caps: ActionCapabilities) -> req.React:
    message_id = read_string_param(params, "messageId", required=True)
    emoji = read_string_param(params, "emoji", allow_empty=True)
    remove = read_bool_flag(params, "remove")
    return req.React(
        channel_id=caps.resolve_channel_id(),
        message_id=message_id,
        emoji=emoji,
        remove=remove,
    )


@MESSAGE_ACTIONS.action("reactions")
def _reactions(params: Params, caps: ActionCapabilities) -> req.Reactions:
    message_id = read_string_param(params, "messageId", required=True)
    limit = _optional_int(params, "limit")
    return req.Reactions(
        channel_id=caps.resolve_channel_id(), message_id=message_id, limit=limit
    )


@MESSAGE_ACTIONS.action("read")
def _read(params: Params, caps: ActionCapabilities) -> req.ReadMessages:
    limit = _optional_int(params, "limit")
    return req.ReadMessages(
        channel_id=caps.resolve_channel_id(),
        limit=limit,
        before=read_string_param(params, "before"),
        after=read_string_param(params, "after"),
        around=read_string_param(params, "around"),
    )


@MESSAGE_ACTIONS.action("edit")
def _edit(params: Params, caps: ActionCapabilities) -> req.EditMessage:
    message_id = read_string_param(params, "messageId", required=True)
    content = read_string_param(params, "message", required=True)
    return req.EditMessage(
        channel_id=caps.resolve_channel_id(), message_id=message_id, content=content
    )


@MESSAGE_ACTIONS.action("delete")
def _delete(params: Params, caps: ActionCapabilities) -> req.DeleteMessage:
    message_id = read_string_param(params, "messageId", required=True)
    return req.DeleteMessage(channel_id=caps.resolve_channel_id(), message_id=message_id)


@MESSAGE_ACTIONS.action("pin")
def _pin(params: Params, caps: ActionCapabilities) -> req.PinMessage:
    message_id = read_string_param(params, "messageId", required=True)
    return req.PinMessage(channel_id=caps.resolve_channel_id(), message_id=message_id)


@MESSAGE_ACTIONS.action("unpin")
def _unpin(params: Params, caps: ActionCapabilities) -> req.UnpinMessage:
    message_id = read_string_param(params, "messageId", required=True)
    return req.UnpinMessage(channel_id=caps.resolve_channel_id(), message_id=message_id)


@MESSAGE_ACTIONS.action("list-pins")
def _list_pins(params: Params, caps: ActionCapabilities) -> req.ListPins:
    return req.ListPins(channel_id=caps.resolve_channel_id())


@MESSAGE_ACTIONS.action("permissions")
def _permissions(params: Params, caps: ActionCapabilities) -> req.Permissions:
    return req.Permissions(channel_id=caps.resolve_channel_id())


@MESSAGE_ACTIONS.action("thread-create")
def _thread_create(params: Params, caps: ActionCapabilities) -> req.ThreadCreate:
    name = read_string_param(params, "threadName", required=True)
    message_id = read_string_param(params, "messageId")
    auto_archive_minutes = _optional_int(params, "autoArchiveMin")
    thread_type: Optional[int] = None
    if message_id is None:
        thread_type = _optional_int(params, "type")
        if thread_type is None:
            thread_type = _optional_int(params, "threadType")
    return req.ThreadCreate(
        channel_id=caps.resolve_channel_id(),
        name=name,
        message_id=message_id,
        auto_archive_minutes=auto_archive_minutes,
        type=thread_type,
    )


@MESSAGE_ACTIONS.action("thread-delete")
def _thread_delete(params: Params, caps: ActionCapabilities) -> req.ThreadDelete:
    thread_id = read_string_param(params, "threadId", required=True)
    return req.ThreadDelete(channel_id=thread_id)


@MESSAGE_ACTIONS.action("thread-rename")
def _thread_rename(params: Params, caps: ActionCapabilities) -> req.ThreadRename:
    thread_id = read_string_param(params, "threadId", required=True)
    name = read_string_param(params, "threadName")
    if name is None:
        name = read_string_param(params, "name", required=True)
    return req.ThreadRename(channel_id=thread_id, name=name)


@MESSAGE_ACTIONS.action("sticker")
def _sticker(params: Params, caps: ActionCapabilities) -> req.Sticker:
    sticker_ids = (
        read_string_array_param(params, "stickerId", required=True, label="sticker-id")
        or []
    )
    return req.Sticker(
        to=read_string_param(params, "to", required=True),
        sticker_ids=tuple(sticker_ids),
        content=read_string_param(params, "message"),
    )


def build_discord_action_chain(executor: ActionExecutor) -> DelegationChain:
    guard = ThreadIsolationGuard(
        executor.fetch_thread_info, provider_label=DISCORD_PROVIDER_LABEL
    )
    return DelegationChain(
        provider=DISCORD_PROVIDER_ID,
        stages=(
            RegistryStage(MESSAGE_ACTIONS, executor, guard=guard),
            RegistryStage(GUILD_ADMIN_ACTIONS, executor, guard=guard),
        ),
    )


async def handle_discord_message_action(
    ctx: ActionRequestContext, *, executor: ActionExecutor
) -> ActionResult:
    return await build_discord_action_chain(executor).perform_action(ctx)
