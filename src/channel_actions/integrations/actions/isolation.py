"""Guard that keeps an agent inside the channel it is bound to.

An agent conversing in channel A must not delete or rename a thread that
hangs off channel B. Callers without a bound channel are not checked.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from .errors import ThreadIsolationViolation, UnresolvedThreadParent
from .models import CHANNEL_TARGET_PREFIX, BoundContext, ThreadInfo

ThreadInfoFetcher = Callable[..., Awaitable[Union[ThreadInfo, Mapping[str, Any]]]]


def resolve_bound_channel_id(tool_context: Optional[BoundContext]) -> Optional[str]:
    """Return the canonical bound channel id, or ``None`` when unbound."""
    if tool_context is None:
        return None
    raw = (tool_context.current_channel_id or "").strip()
    if not raw:
        return None
    if raw.startswith(CHANNEL_TARGET_PREFIX):
        return raw[len(CHANNEL_TARGET_PREFIX) :].strip() or None
    return raw


class ThreadIsolationGuard:
    def __init__(
        self, fetch_thread_info: ThreadInfoFetcher, *, provider_label: str
    ) -> None:
        self._fetch_thread_info = fetch_thread_info
        self._provider_label = provider_label

    async def check(
        self,
        thread_id: str,
        *,
        tool_context: Optional[BoundContext],
        account_id: Optional[str] = None,
        cfg: Any = None,
    ) -> None:
        """Return when the action may proceed, raise otherwise.

        ``account_id`` and ``cfg`` are forwarded to the lookup so it runs with
        the same credentials as the mutation it protects.
        """
        current_channel_id = resolve_bound_channel_id(tool_context)
        if current_channel_id is None:
            return
        if thread_id == current_channel_id:
            return

        fetched = await self._fetch_thread_info(
            thread_id, account_id=account_id, cfg=cfg
        )
        info = fetched if isinstance(fetched, ThreadInfo) else ThreadInfo.from_payload(fetched)
        parent_id = info.parent_id
        if not isinstance(parent_id, str) or not parent_id.strip():
            raise UnresolvedThreadParent(
                provider_label=self._provider_label, thread_id=thread_id
            )
        if parent_id != current_channel_id:
            raise ThreadIsolationViolation(
                provider_label=self._provider_label,
                thread_id=thread_id,
                parent_id=parent_id,
                expected_channel_id=current_channel_id,
            )
