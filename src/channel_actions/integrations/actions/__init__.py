"""Provider-neutral routing of agent channel actions."""

from .chain import (
    NOT_HANDLED,
    ActionCapabilities,
    ActionExecutor,
    ActionRegistry,
    ActionStage,
    DelegationChain,
    NotHandled,
    RegistryStage,
    build_capabilities,
    read_parent_id_param,
)
from .errors import (
    ActionDisabledError,
    ActionParameterError,
    ActionRouterError,
    InvalidParameterType,
    MissingRequiredParameter,
    ThreadIsolationViolation,
    UnresolvedThreadParent,
    UnsupportedAction,
    UpstreamProviderError,
)
from .isolation import ThreadIsolationGuard, resolve_bound_channel_id
from .models import (
    CLEARED,
    UNSPECIFIED,
    ActionRequestContext,
    ActionResult,
    BoundContext,
    Cleared,
    FieldUpdate,
    OperationRequest,
    ThreadInfo,
    Unspecified,
    Value,
    json_result,
)

__all__ = [
    "CLEARED",
    "NOT_HANDLED",
    "UNSPECIFIED",
    "ActionCapabilities",
    "ActionDisabledError",
    "ActionExecutor",
    "ActionParameterError",
    "ActionRegistry",
    "ActionRequestContext",
    "ActionResult",
    "ActionRouterError",
    "ActionStage",
    "BoundContext",
    "Cleared",
    "DelegationChain",
    "FieldUpdate",
    "InvalidParameterType",
    "MissingRequiredParameter",
    "NotHandled",
    "OperationRequest",
    "RegistryStage",
    "ThreadInfo",
    "ThreadIsolationGuard",
    "ThreadIsolationViolation",
    "Unspecified",
    "UnresolvedThreadParent",
    "UnsupportedAction",
    "UpstreamProviderError",
    "Value",
    "build_capabilities",
    "json_result",
    "read_parent_id_param",
    "resolve_bound_channel_id",
]
