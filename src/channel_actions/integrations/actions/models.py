"""Platform-agnostic models for routing channel actions.

A request context carries the loosely-typed parameter bag an agent produced.
Routing turns it into exactly one ``OperationRequest`` variant, which is fully
validated and handed to a provider executor as-is.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Mapping, Optional, TypeVar, Union

T = TypeVar("T")

CHANNEL_TARGET_PREFIX = "channel:"


@dataclass(frozen=True)
class BoundContext:
    """The conversation an invoking agent is currently scoped to."""

    current_channel_id: Optional[str] = None


@dataclass(frozen=True)
class ActionRequestContext:
    """One inbound ``perform action`` call."""

    action: str
    params: Mapping[str, Any]
    cfg: Any = None
    account_id: Optional[str] = None
    tool_context: Optional[BoundContext] = None


@dataclass(frozen=True)
class ThreadInfo:
    """Minimal view of a thread as returned by the provider's read side."""

    parent_id: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ThreadInfo":
        if not isinstance(payload, Mapping):
            return cls()
        return cls(parent_id=payload.get("parent_id"))


@dataclass(frozen=True)
class ActionResult:
    content: tuple[dict[str, Any], ...]
    details: Any = None


def json_result(payload: Any) -> ActionResult:
    """Wrap ``payload`` as a single pretty-printed JSON text block."""
    text = json.dumps(payload, indent=2, default=str)
    return ActionResult(content=({"type": "text", "text": text},), details=payload)


class Unspecified:
    """The caller said nothing about the field; leave it untouched."""

    _instance: ClassVar[Optional["Unspecified"]] = None

    def __new__(cls) -> "Unspecified":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSPECIFIED"


class Cleared:
    """The caller explicitly asked to clear the field."""

    _instance: ClassVar[Optional["Cleared"]] = None

    def __new__(cls) -> "Cleared":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLEARED"


@dataclass(frozen=True)
class Value(Generic[T]):
    """The caller supplied an explicit value."""

    value: T


UNSPECIFIED = Unspecified()
CLEARED = Cleared()

FieldUpdate = Union[Unspecified, Cleared, Value[T]]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _render(value: Any) -> Any:
    if isinstance(value, Value):
        return _render(value.value)
    if isinstance(value, tuple):
        return [_render(item) for item in value]
    return value


@dataclass(frozen=True)
class OperationRequest:
    """Base class for normalized operation request variants.

    Subclasses set ``action`` to the provider-side operation name and
    ``group`` to the configuration gate the operation belongs to. Variants
    that mutate a thread named independently of the current channel set
    ``thread_scoped`` and carry the thread id in ``channel_id``.
    """

    action: ClassVar[str] = ""
    group: ClassVar[str] = ""
    thread_scoped: ClassVar[bool] = False

    @property
    def target_thread_id(self) -> Optional[str]:
        if not self.thread_scoped:
            return None
        return getattr(self, "channel_id", None)

    def to_payload(self) -> dict[str, Any]:
        """Render the provider-ready mapping, dropping unsupplied fields."""
        payload: dict[str, Any] = {"action": self.action}
        for item in dataclasses.fields(self):
            value = getattr(self, item.name)
            if value is None or isinstance(value, Unspecified):
                continue
            payload[_camel(item.name)] = (
                None if isinstance(value, Cleared) else _render(value)
            )
        return payload
