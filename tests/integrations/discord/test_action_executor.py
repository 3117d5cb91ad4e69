from __future__ import annotations

import json
import logging
from typing import Any, Optional

import pytest

from channel_actions.integrations.actions.errors import (
    ActionDisabledError,
    MissingRequiredParameter,
)
from channel_actions.integrations.actions.models import (
    CLEARED,
    ActionRequestContext,
    BoundContext,
    OperationRequest,
    ThreadInfo,
    Value,
)
from channel_actions.integrations.discord import requests as req
from channel_actions.integrations.discord.config import (
    ACTION_GROUP_DEFAULTS,
    DiscordAccountConfig,
    DiscordActionsConfig,
)
from channel_actions.integrations.discord.errors import DiscordConfigError
from channel_actions.integrations.discord.executor import (
    _HANDLERS,
    DiscordActionExecutor,
    _chunk_text,
    parse_target,
)
from channel_actions.integrations.discord.handle_action import (
    handle_discord_message_action,
)


class _FakeRestClient:
    def __init__(self, **kwargs: Any) -> None:
        self.init_kwargs = kwargs
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False
        self.channels: dict[str, dict[str, Any]] = {}
        self.message: dict[str, Any] = {}

    def _record(self, name: str, **kwargs: Any) -> None:
        self.calls.append((name, kwargs))

    async def close(self) -> None:
        self.closed = True

    async def get_channel(self, *, channel_id: str) -> dict[str, Any]:
        self._record("get_channel", channel_id=channel_id)
        return self.channels.get(channel_id, {"id": channel_id})

    async def modify_channel(self, *, channel_id: str, payload, reason=None):
        self._record("modify_channel", channel_id=channel_id, payload=payload)
        return {"id": channel_id, **payload}

    async def delete_channel(self, *, channel_id: str):
        self._record("delete_channel", channel_id=channel_id)
        return {}

    async def create_dm_channel(self, *, recipient_id: str):
        self._record("create_dm_channel", recipient_id=recipient_id)
        return {"id": f"dm-{recipient_id}"}

    async def create_channel_message(self, *, channel_id: str, payload):
        self._record("create_channel_message", channel_id=channel_id, payload=payload)
        return {"id": f"msg-{len(self.calls)}"}

    async def get_channel_message(self, *, channel_id: str, message_id: str):
        self._record("get_channel_message", channel_id=channel_id, message_id=message_id)
        return self.message

    async def add_reaction(self, *, channel_id: str, message_id: str, emoji: str):
        self._record("add_reaction", channel_id=channel_id, message_id=message_id, emoji=emoji)

    async def remove_own_reaction(self, *, channel_id: str, message_id: str, emoji: str):
        self._record(
            "remove_own_reaction", channel_id=channel_id, message_id=message_id, emoji=emoji
        )

    async def start_thread(self, *, channel_id: str, payload):
        self._record("start_thread", channel_id=channel_id, payload=payload)
        return {"id": "t-1", **payload}

    async def start_thread_from_message(self, *, channel_id: str, message_id: str, payload):
        self._record(
            "start_thread_from_message",
            channel_id=channel_id,
            message_id=message_id,
            payload=payload,
        )
        return {"id": "t-2", **payload}

    async def modify_guild_channel_positions(self, *, guild_id: str, payload):
        self._record("modify_guild_channel_positions", guild_id=guild_id, payload=payload)

    async def create_guild_ban(self, *, guild_id, user_id, delete_message_seconds=None, reason=None):
        self._record(
            "create_guild_ban",
            guild_id=guild_id,
            user_id=user_id,
            delete_message_seconds=delete_message_seconds,
            reason=reason,
        )

    async def list_active_threads(self, *, guild_id: str):
        self._record("list_active_threads", guild_id=guild_id)
        return {
            "threads": [
                {"id": "t1", "parent_id": "5"},
                {"id": "t2", "parent_id": "6"},
            ]
        }

    async def search_guild_messages(self, *, guild_id: str, params):
        self._record("search_guild_messages", guild_id=guild_id, params=params)
        return {"total_results": 0, "messages": []}


class _ClientFactory:
    def __init__(self) -> None:
        self.clients: list[_FakeRestClient] = []
        self.channels: dict[str, dict[str, Any]] = {}
        self.message: dict[str, Any] = {}

    def __call__(self, **kwargs: Any) -> _FakeRestClient:
        client = _FakeRestClient(**kwargs)
        client.channels = self.channels
        client.message = self.message
        self.clients.append(client)
        return client


@pytest.fixture()
def token_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_DISCORD_TOKEN", "token-main")
    monkeypatch.setenv("TEST_DISCORD_TOKEN_ALT", "token-alt")


def _config(**overrides: Any) -> DiscordActionsConfig:
    base: dict[str, Any] = {
        "bot_token_env": "TEST_DISCORD_TOKEN",
        "accounts": {
            "alt": DiscordAccountConfig(account_id="alt", bot_token_env="TEST_DISCORD_TOKEN_ALT")
        },
    }
    base.update(overrides)
    return DiscordActionsConfig(**base)


def _executor(config: Optional[DiscordActionsConfig] = None):
    factory = _ClientFactory()
    return DiscordActionExecutor(config or _config(), client_factory=factory), factory


def test_parse_target() -> None:
    assert parse_target("channel:123") == ("channel", "123")
    assert parse_target("user:42") == ("user", "42")
    assert parse_target(" 123 ") == ("channel", "123")


def test_chunk_text_prefers_newlines() -> None:
    text = "a" * 1500 + "\n" + "b" * 1500
    assert _chunk_text(text) == ["a" * 1500, "b" * 1500]
    assert _chunk_text("x" * 4500) == ["x" * 2000, "x" * 2000, "x" * 500]


@pytest.mark.anyio
async def test_send_to_user_opens_dm(token_env) -> None:
    executor, factory = _executor()

    result = await executor.execute(
        req.SendMessage(to="user:42", content="hi", reply_to="7"), None
    )

    client = factory.clients[0]
    assert client.init_kwargs["bot_token"] == "token-main"
    assert client.calls[0] == ("create_dm_channel", {"recipient_id": "42"})
    assert client.calls[1] == (
        "create_channel_message",
        {
            "channel_id": "dm-42",
            "payload": {
                "content": "hi",
                "message_reference": {"message_id": "7", "fail_if_not_exists": False},
            },
        },
    )
    assert result.details["ok"] is True
    assert result.details["channelId"] == "dm-42"
    assert json.loads(result.content[0]["text"]) == result.details


@pytest.mark.anyio
async def test_long_messages_are_split(token_env) -> None:
    executor, factory = _executor()

    await executor.execute(req.SendMessage(to="channel:5", content="x" * 2500), None)

    sent = [kwargs["payload"]["content"] for name, kwargs in factory.clients[0].calls]
    assert sent == ["x" * 2000, "x" * 500]


@pytest.mark.anyio
async def test_react_remove_clears_own_reactions(token_env) -> None:
    executor, factory = _executor()
    factory.message["reactions"] = [
        {"me": True, "emoji": {"name": "✅", "id": None}},
        {"me": False, "emoji": {"name": "👀", "id": None}},
        {"me": True, "emoji": {"name": "party", "id": "123"}},
    ]

    result = await executor.execute(
        req.React(channel_id="5", message_id="7", remove=True), None
    )

    assert result.details == {"ok": True, "removed": ["✅", "party:123"]}


@pytest.mark.anyio
async def test_react_empty_emoji_clears_own_reactions(token_env) -> None:
    executor, factory = _executor()
    factory.message["reactions"] = [{"me": True, "emoji": {"name": "✅", "id": None}}]

    result = await executor.execute(
        req.React(channel_id="5", message_id="7", emoji=""), None
    )

    assert result.details == {"ok": True, "removed": ["✅"]}
    assert [name for name, _ in factory.clients[0].calls] == [
        "get_channel_message",
        "remove_own_reaction",
    ]


@pytest.mark.anyio
async def test_react_without_emoji_or_remove_is_rejected(token_env) -> None:
    executor, factory = _executor()

    with pytest.raises(MissingRequiredParameter, match="emoji required"):
        await executor.execute(req.React(channel_id="5", message_id="7"), None)

    assert factory.clients[0].calls == []


@pytest.mark.anyio
async def test_thread_create_without_message_defaults_to_public_thread(token_env) -> None:
    executor, factory = _executor()

    await executor.execute(
        req.ThreadCreate(channel_id="5", name="Topic", auto_archive_minutes=60), None
    )

    assert factory.clients[0].calls == [
        (
            "start_thread",
            {
                "channel_id": "5",
                "payload": {"name": "Topic", "auto_archive_duration": 60, "type": 11},
            },
        )
    ]


@pytest.mark.anyio
async def test_thread_rename_and_delete(token_env) -> None:
    executor, factory = _executor()

    renamed = await executor.execute(req.ThreadRename(channel_id="999", name="New"), None)
    deleted = await executor.execute(req.ThreadDelete(channel_id="999"), None)

    assert renamed.details["thread"] == {"id": "999", "name": "New"}
    assert deleted.details == {"ok": True, "deleted": "999"}
    assert len(factory.clients) == 1


@pytest.mark.anyio
async def test_fetch_thread_info_reads_parent(token_env) -> None:
    executor, factory = _executor()
    factory.channels["999"] = {"id": "999", "parent_id": "111"}

    info = await executor.fetch_thread_info("999", account_id="alt")

    assert isinstance(info, ThreadInfo)
    assert info.parent_id == "111"
    assert factory.clients[0].init_kwargs["bot_token"] == "token-alt"


@pytest.mark.anyio
async def test_accounts_get_separate_clients(token_env) -> None:
    executor, factory = _executor()

    await executor.execute(req.ThreadDelete(channel_id="1"), None)
    await executor.execute(req.ThreadDelete(channel_id="2"), None, account_id="alt")
    await executor.execute(req.ThreadDelete(channel_id="3"), None, account_id="alt")

    assert [client.init_kwargs["bot_token"] for client in factory.clients] == [
        "token-main",
        "token-alt",
    ]
    await executor.aclose()
    assert all(client.closed for client in factory.clients)


@pytest.mark.anyio
async def test_transport_settings_get_separate_clients(token_env) -> None:
    executor, factory = _executor()
    fast = {"discord": {"bot_token_env": "TEST_DISCORD_TOKEN", "timeout_seconds": 5}}

    await executor.execute(req.ThreadDelete(channel_id="1"), None)
    await executor.execute(req.ThreadDelete(channel_id="2"), fast)
    await executor.execute(req.ThreadDelete(channel_id="3"), fast)

    assert len(factory.clients) == 2
    assert factory.clients[1].init_kwargs["timeout_seconds"] == 5
    assert factory.clients[0].init_kwargs["timeout_seconds"] != 5


@pytest.mark.anyio
async def test_per_call_account_is_used_for_the_thread_lookup(
    token_env, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TEST_DISCORD_TOKEN_WORK", "token-work")
    executor, factory = _executor()
    factory.channels["999"] = {"id": "999", "parent_id": "111"}
    ctx = ActionRequestContext(
        action="thread-rename",
        params={"threadId": "999", "threadName": "New name"},
        cfg={
            "discord": {
                "bot_token_env": "TEST_DISCORD_TOKEN",
                "accounts": {"work": {"bot_token_env": "TEST_DISCORD_TOKEN_WORK"}},
            }
        },
        account_id="work",
        tool_context=BoundContext(current_channel_id="111"),
    )

    result = await handle_discord_message_action(ctx, executor=executor)

    assert result.details["thread"] == {"id": "999", "name": "New name"}
    assert [client.init_kwargs["bot_token"] for client in factory.clients] == [
        "token-work"
    ]
    assert [name for name, _ in factory.clients[0].calls] == [
        "get_channel",
        "modify_channel",
    ]


@pytest.mark.anyio
async def test_execute_logs_the_request_payload(
    token_env, caplog: pytest.LogCaptureFixture
) -> None:
    executor, _ = _executor()
    caplog.set_level(logging.DEBUG, logger="channel_actions.integrations.discord.executor")

    await executor.execute(req.ThreadRename(channel_id="999", name="New"), None)

    events = [
        json.loads(record.getMessage())
        for record in caplog.records
        if record.name == "channel_actions.integrations.discord.executor"
    ]
    assert events == [
        {
            "event": "discord.action.execute",
            "action": "threadRename",
            "request": {"action": "threadRename", "channelId": "999", "name": "New"},
        }
    ]


@pytest.mark.anyio
async def test_unknown_account_is_a_config_error(token_env) -> None:
    executor, _ = _executor()
    with pytest.raises(DiscordConfigError, match="Unknown Discord account"):
        await executor.execute(req.ThreadDelete(channel_id="1"), None, account_id="nope")


@pytest.mark.anyio
async def test_missing_token_is_a_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TEST_DISCORD_TOKEN", raising=False)
    executor, _ = _executor()
    with pytest.raises(DiscordConfigError, match="TEST_DISCORD_TOKEN"):
        await executor.execute(req.ThreadDelete(channel_id="1"), None)


@pytest.mark.anyio
async def test_moderation_is_disabled_by_default(token_env) -> None:
    executor, factory = _executor()
    with pytest.raises(ActionDisabledError, match="discord.actions.moderation"):
        await executor.execute(req.Ban(guild_id="g", user_id="u"), None)
    assert factory.clients == []


@pytest.mark.anyio
async def test_cfg_mapping_overrides_gates(token_env) -> None:
    executor, factory = _executor()
    cfg = {
        "discord": {
            "bot_token_env": "TEST_DISCORD_TOKEN",
            "actions": {"moderation": True, "threads": False},
        }
    }

    await executor.execute(
        req.Ban(guild_id="g", user_id="u", delete_message_days=2, reason="spam"), cfg
    )
    with pytest.raises(ActionDisabledError):
        await executor.execute(req.ThreadDelete(channel_id="1"), cfg)

    assert factory.clients[0].calls == [
        (
            "create_guild_ban",
            {
                "guild_id": "g",
                "user_id": "u",
                "delete_message_seconds": 172800,
                "reason": "spam",
            },
        )
    ]


@pytest.mark.anyio
async def test_channel_move_renders_parent_updates(token_env) -> None:
    executor, factory = _executor(_config(action_gates={"channels": True}))

    await executor.execute(
        req.ChannelMove(guild_id="g", channel_id="5", parent_id=CLEARED), None
    )
    await executor.execute(
        req.ChannelMove(guild_id="g", channel_id="5", parent_id=Value("7"), position=2),
        None,
    )
    await executor.execute(req.ChannelMove(guild_id="g", channel_id="5"), None)

    payloads = [kwargs["payload"] for _, kwargs in factory.clients[0].calls]
    assert payloads == [
        [{"id": "5", "parent_id": None}],
        [{"id": "5", "position": 2, "parent_id": "7"}],
        [{"id": "5"}],
    ]


@pytest.mark.anyio
async def test_channel_edit_clears_parent(token_env) -> None:
    executor, factory = _executor(_config(action_gates={"channels": True}))

    await executor.execute(
        req.ChannelEdit(channel_id="5", name="ops", parent_id=CLEARED), None
    )

    assert factory.clients[0].calls == [
        ("modify_channel", {"channel_id": "5", "payload": {"name": "ops", "parent_id": None}})
    ]


@pytest.mark.anyio
async def test_thread_list_filters_by_parent(token_env) -> None:
    executor, _ = _executor()

    result = await executor.execute(req.ThreadList(guild_id="g", channel_id="5"), None)

    assert result.details == {"ok": True, "threads": [{"id": "t1", "parent_id": "5"}]}


@pytest.mark.anyio
async def test_search_repeats_filter_params(token_env) -> None:
    executor, factory = _executor()

    await executor.execute(
        req.SearchMessages(
            guild_id="g", content="deploy", channel_ids=("5", "6"), author_ids=("9",), limit=3
        ),
        None,
    )

    assert factory.clients[0].calls[0][1]["params"] == [
        ("content", "deploy"),
        ("channel_id", "5"),
        ("channel_id", "6"),
        ("author_id", "9"),
        ("limit", 3),
    ]


def test_every_request_variant_has_a_handler_and_gate() -> None:
    variants = [
        value
        for value in vars(req).values()
        if isinstance(value, type)
        and issubclass(value, OperationRequest)
        and value is not OperationRequest
    ]
    assert len(variants) == 35
    assert [v.__name__ for v in variants if v not in _HANDLERS] == []
    assert [v.__name__ for v in variants if v.group not in ACTION_GROUP_DEFAULTS] == []
