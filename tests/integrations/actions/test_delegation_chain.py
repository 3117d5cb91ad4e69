from __future__ import annotations

from typing import Any, Optional

import pytest

from channel_actions.integrations.actions.chain import (
    NOT_HANDLED,
    ActionRegistry,
    DelegationChain,
    RegistryStage,
    build_capabilities,
)
from channel_actions.integrations.actions.errors import (
    MissingRequiredParameter,
    ThreadIsolationViolation,
    UnsupportedAction,
)
from channel_actions.integrations.actions.isolation import ThreadIsolationGuard
from channel_actions.integrations.actions.models import (
    ActionRequestContext,
    BoundContext,
    ThreadInfo,
    json_result,
)
from channel_actions.integrations.discord import requests as req


class _FakeExecutor:
    def __init__(self, parent_id: Optional[str] = None) -> None:
        self.parent_id = parent_id
        self.executed: list[tuple[Any, Any, Optional[str]]] = []
        self.lookups: list[str] = []

    async def execute(self, request, cfg, *, account_id=None):
        self.executed.append((request, cfg, account_id))
        return json_result({"ok": True, "action": request.action})

    async def fetch_thread_info(self, thread_id, *, account_id=None, cfg=None):
        self.lookups.append(thread_id)
        return ThreadInfo(parent_id=self.parent_id)


class _RecordingStage:
    def __init__(self, name: str, handles: bool) -> None:
        self.name = name
        self.handles = handles
        self.calls = 0

    async def try_handle(self, ctx, capabilities):
        self.calls += 1
        if not self.handles:
            return NOT_HANDLED
        return json_result({"stage": self.name})


def _registry() -> ActionRegistry:
    registry = ActionRegistry("test")

    @registry.action("pins", "list-pins")
    def _pins(params, caps):
        return req.ListPins(channel_id=caps.resolve_channel_id())

    @registry.action("thread-delete")
    def _thread_delete(params, caps):
        return req.ThreadDelete(channel_id=params["threadId"])

    return registry


def test_registry_rejects_duplicate_actions() -> None:
    registry = _registry()
    assert "pins" in registry
    assert "list-pins" in registry
    assert len(registry) == 3
    with pytest.raises(ValueError, match="already registered"):
        registry.register("pins", lambda params, caps: None)


def test_capabilities_prefer_channel_id_over_to() -> None:
    ctx = ActionRequestContext(action="x", params={"channelId": " 5 ", "to": "7"})
    assert build_capabilities(ctx).resolve_channel_id() == "5"
    ctx = ActionRequestContext(action="x", params={"to": "channel:7"})
    assert build_capabilities(ctx).resolve_channel_id() == "channel:7"


def test_capabilities_require_a_channel() -> None:
    ctx = ActionRequestContext(action="x", params={})
    with pytest.raises(MissingRequiredParameter, match="to required"):
        build_capabilities(ctx).resolve_channel_id()


@pytest.mark.anyio
async def test_first_handling_stage_wins() -> None:
    first = _RecordingStage("first", handles=False)
    second = _RecordingStage("second", handles=True)
    third = _RecordingStage("third", handles=True)
    chain = DelegationChain(provider="test", stages=[first, second, third])

    result = await chain.perform_action(ActionRequestContext(action="x", params={}))

    assert result.details == {"stage": "second"}
    assert (first.calls, second.calls, third.calls) == (1, 1, 0)


@pytest.mark.anyio
async def test_unrecognized_action_is_unsupported() -> None:
    chain = DelegationChain(
        provider="discord", stages=[_RecordingStage("only", handles=False)]
    )
    with pytest.raises(UnsupportedAction) as excinfo:
        await chain.perform_action(ActionRequestContext(action="teleport", params={}))
    assert str(excinfo.value) == "Action teleport is not supported for provider discord."


@pytest.mark.anyio
async def test_with_stage_appends_without_mutating() -> None:
    base = DelegationChain(provider="test", stages=[])
    extended = base.with_stage(_RecordingStage("late", handles=True))
    assert len(base.stages) == 0
    assert len(extended.stages) == 1
    result = await extended.perform_action(ActionRequestContext(action="x", params={}))
    assert result.details == {"stage": "late"}


@pytest.mark.anyio
async def test_registry_stage_passes_cfg_and_account() -> None:
    executor = _FakeExecutor()
    chain = DelegationChain(
        provider="test", stages=[RegistryStage(_registry(), executor)]
    )
    ctx = ActionRequestContext(
        action="list-pins", params={"to": "42"}, cfg={"k": 1}, account_id="acc"
    )

    await chain.perform_action(ctx)

    request, cfg, account_id = executor.executed[0]
    assert request == req.ListPins(channel_id="42")
    assert cfg == {"k": 1}
    assert account_id == "acc"


@pytest.mark.anyio
async def test_registry_stage_guards_thread_scoped_requests() -> None:
    executor = _FakeExecutor(parent_id="222")
    guard = ThreadIsolationGuard(executor.fetch_thread_info, provider_label="Test")
    stage = RegistryStage(_registry(), executor, guard=guard)
    chain = DelegationChain(provider="test", stages=[stage])
    ctx = ActionRequestContext(
        action="thread-delete",
        params={"threadId": "999"},
        tool_context=BoundContext(current_channel_id="111"),
    )

    with pytest.raises(ThreadIsolationViolation):
        await chain.perform_action(ctx)
    assert executor.lookups == ["999"]
    assert executor.executed == []


@pytest.mark.anyio
async def test_thread_scoped_request_without_guard_fails_loudly() -> None:
    executor = _FakeExecutor()
    chain = DelegationChain(
        provider="test", stages=[RegistryStage(_registry(), executor)]
    )
    with pytest.raises(RuntimeError, match="no isolation guard"):
        await chain.perform_action(
            ActionRequestContext(action="thread-delete", params={"threadId": "9"})
        )
    assert executor.executed == []
