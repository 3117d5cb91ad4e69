"""Error taxonomy for channel action routing.

Every error aborts the dispatch that raised it. The router never retries or
logs these; callers decide what to surface.
"""

from __future__ import annotations

from ...core.exceptions import ChannelActionsError, PermanentError


class ActionRouterError(ChannelActionsError):
    """Base error raised while routing a channel action."""


class ActionParameterError(ActionRouterError, PermanentError, ValueError):
    """A parameter bag could not be normalized."""

    def __init__(self, message: str, *, key: str) -> None:
        super().__init__(message, user_message=message)
        self.key = key


class MissingRequiredParameter(ActionParameterError):
    """A required parameter is absent, or empty where empty is not allowed."""


class InvalidParameterType(ActionParameterError):
    """A parameter is present but has the wrong semantic type."""


class ThreadIsolationViolation(ActionRouterError, PermanentError):
    """The target thread belongs to a channel other than the bound one."""

    def __init__(
        self,
        *,
        provider_label: str,
        thread_id: str,
        parent_id: str,
        expected_channel_id: str,
    ) -> None:
        message = (
            f'Refusing to act on {provider_label} thread "{thread_id}": '
            f'it belongs to channel "{parent_id}", but the current channel is '
            f'"{expected_channel_id}".'
        )
        super().__init__(message, user_message=message)
        self.thread_id = thread_id
        self.parent_id = parent_id
        self.expected_channel_id = expected_channel_id


class UnresolvedThreadParent(ActionRouterError, PermanentError):
    """The thread lookup did not return a usable parent channel id."""

    def __init__(self, *, provider_label: str, thread_id: str) -> None:
        message = (
            f'Refusing to act on {provider_label} thread "{thread_id}": '
            "unable to resolve its parent channel."
        )
        super().__init__(message, user_message=message)
        self.thread_id = thread_id


class UnsupportedAction(ActionRouterError, PermanentError):
    """No stage of the delegation chain recognizes the action."""

    def __init__(self, *, action: str, provider: str) -> None:
        super().__init__(f"Action {action} is not supported for provider {provider}.")
        self.action = action
        self.provider = provider


class ActionDisabledError(ActionRouterError, PermanentError):
    """The action group is switched off in the provider configuration."""


class UpstreamProviderError(ActionRouterError):
    """Failure reported by the provider executor, surfaced unchanged."""
