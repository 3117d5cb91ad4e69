"""Action catalogs and the delegation chain that consults them in order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
)

from .errors import UnsupportedAction
from .isolation import ThreadIsolationGuard
from .models import (
    CLEARED,
    UNSPECIFIED,
    ActionRequestContext,
    ActionResult,
    FieldUpdate,
    OperationRequest,
    ThreadInfo,
    Value,
)
from .params import read_string_param


class NotHandled:
    """Marker returned by a stage that does not recognize the action."""

    _instance: Optional["NotHandled"] = None

    def __new__(cls) -> "NotHandled":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_HANDLED"


NOT_HANDLED = NotHandled()

StageOutcome = Union[ActionResult, NotHandled]


@dataclass(frozen=True)
class ActionCapabilities:
    """Helpers shared with every stage so normalization is not duplicated."""

    resolve_channel_id: Callable[[], str]
    read_parent_id: Callable[[Mapping[str, Any]], FieldUpdate[str]]


Normalizer = Callable[[Mapping[str, Any], ActionCapabilities], OperationRequest]


class ActionExecutor(Protocol):
    async def execute(
        self,
        request: OperationRequest,
        cfg: Any,
        *,
        account_id: Optional[str] = None,
    ) -> ActionResult: ...

    async def fetch_thread_info(
        self,
        thread_id: str,
        *,
        account_id: Optional[str] = None,
        cfg: Any = None,
    ) -> ThreadInfo: ...


class ActionStage(Protocol):
    async def try_handle(
        self, ctx: ActionRequestContext, capabilities: ActionCapabilities
    ) -> StageOutcome: ...


def read_parent_id_param(params: Mapping[str, Any]) -> FieldUpdate[str]:
    if params.get("clearParent") is True:
        return CLEARED
    if "parentId" in params and params["parentId"] is None:
        return CLEARED
    parent_id = read_string_param(params, "parentId")
    if parent_id is None:
        return UNSPECIFIED
    return Value(parent_id)


def build_capabilities(ctx: ActionRequestContext) -> ActionCapabilities:
    params = ctx.params

    def resolve_channel_id() -> str:
        channel_id = read_string_param(params, "channelId")
        if channel_id is not None:
            return channel_id
        return read_string_param(params, "to", required=True)  # type: ignore[return-value]

    return ActionCapabilities(
        resolve_channel_id=resolve_channel_id,
        read_parent_id=read_parent_id_param,
    )


class ActionRegistry:
    """Maps action identifiers to normalizer functions."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._normalizers: dict[str, Normalizer] = {}

    def register(self, action: str, normalizer: Normalizer) -> Normalizer:
        if action in self._normalizers:
            raise ValueError(f"action {action!r} already registered in {self.name}")
        self._normalizers[action] = normalizer
        return normalizer

    def action(self, *names: str) -> Callable[[Normalizer], Normalizer]:
        def decorator(normalizer: Normalizer) -> Normalizer:
            for name in names:
                self.register(name, normalizer)
            return normalizer

        return decorator

    def get(self, action: str) -> Optional[Normalizer]:
        return self._normalizers.get(action)

    def __contains__(self, action: object) -> bool:
        return action in self._normalizers

    def __iter__(self) -> Iterator[str]:
        return iter(self._normalizers)

    def __len__(self) -> int:
        return len(self._normalizers)


class RegistryStage:
    """Stage that normalizes via one registry and hands off to the executor.

    Thread-scoped requests pass through the isolation guard first; the
    executor is never called when the guard raises.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        executor: ActionExecutor,
        *,
        guard: Optional[ThreadIsolationGuard] = None,
    ) -> None:
        self.registry = registry
        self._executor = executor
        self._guard = guard

    async def try_handle(
        self, ctx: ActionRequestContext, capabilities: ActionCapabilities
    ) -> StageOutcome:
        normalizer = self.registry.get(ctx.action)
        if normalizer is None:
            return NOT_HANDLED
        request = normalizer(ctx.params, capabilities)
        thread_id = request.target_thread_id
        if thread_id is not None:
            if self._guard is None:
                raise RuntimeError(
                    f"{request.action} is thread-scoped but stage "
                    f"{self.registry.name} has no isolation guard"
                )
            await self._guard.check(
                thread_id,
                tool_context=ctx.tool_context,
                account_id=ctx.account_id,
                cfg=ctx.cfg,
            )
        return await self._executor.execute(
            request, ctx.cfg, account_id=ctx.account_id
        )


class DelegationChain:
    """Ordered stages consulted until one handles the action."""

    def __init__(
        self,
        *,
        provider: str,
        stages: Iterable[ActionStage],
        capabilities_factory: Callable[
            [ActionRequestContext], ActionCapabilities
        ] = build_capabilities,
    ) -> None:
        self.provider = provider
        self._stages: tuple[ActionStage, ...] = tuple(stages)
        self._capabilities_factory = capabilities_factory

    @property
    def stages(self) -> Sequence[ActionStage]:
        return self._stages

    def with_stage(self, stage: ActionStage) -> "DelegationChain":
        return DelegationChain(
            provider=self.provider,
            stages=(*self._stages, stage),
            capabilities_factory=self._capabilities_factory,
        )

    async def perform_action(self, ctx: ActionRequestContext) -> ActionResult:
        capabilities = self._capabilities_factory(ctx)
        for stage in self._stages:
            outcome = await stage.try_handle(ctx, capabilities)
            if not isinstance(outcome, NotHandled):
                return outcome
        raise UnsupportedAction(action=str(ctx.action), provider=self.provider)
