from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .errors import DiscordConfigError

DEFAULT_BOT_TOKEN_ENV = "CHANNEL_ACTIONS_DISCORD_BOT_TOKEN"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 3

# Action groups that can be switched off under `discord.actions`. Moderation
# and role changes are opt-in; everything else defaults to enabled.
ACTION_GROUP_DEFAULTS: dict[str, bool] = {
    "messages": True,
    "reactions": True,
    "polls": True,
    "pins": True,
    "permissions": True,
    "threads": True,
    "stickers": True,
    "search": True,
    "memberInfo": True,
    "roleInfo": True,
    "emojiList": True,
    "channelInfo": True,
    "events": True,
    "channels": False,
    "roles": False,
    "moderation": False,
}


@dataclass(frozen=True)
class DiscordAccountConfig:
    account_id: str
    bot_token_env: str


@dataclass(frozen=True)
class DiscordActionsConfig:
    bot_token_env: str = DEFAULT_BOT_TOKEN_ENV
    default_account: Optional[str] = None
    accounts: Mapping[str, DiscordAccountConfig] = field(default_factory=dict)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    action_gates: Mapping[str, bool] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "DiscordActionsConfig":
        cfg: dict[str, Any] = raw if isinstance(raw, dict) else {}
        bot_token_env = str(cfg.get("bot_token_env", DEFAULT_BOT_TOKEN_ENV)).strip()
        if not bot_token_env:
            raise DiscordConfigError("discord.bot_token_env must be non-empty")

        accounts: dict[str, DiscordAccountConfig] = {}
        accounts_raw = cfg.get("accounts")
        if accounts_raw is not None and not isinstance(accounts_raw, dict):
            raise DiscordConfigError("discord.accounts must be a mapping")
        for account_id, account_raw in (accounts_raw or {}).items():
            key = str(account_id).strip()
            if not key:
                raise DiscordConfigError("discord.accounts keys must be non-empty")
            account_cfg = account_raw if isinstance(account_raw, dict) else {}
            token_env = str(account_cfg.get("bot_token_env", "")).strip()
            if not token_env:
                raise DiscordConfigError(
                    f"discord.accounts.{key}.bot_token_env must be non-empty"
                )
            accounts[key] = DiscordAccountConfig(account_id=key, bot_token_env=token_env)

        default_account_raw = cfg.get("default_account")
        default_account = (
            str(default_account_raw).strip() if default_account_raw is not None else None
        )
        if default_account and default_account not in accounts:
            raise DiscordConfigError(
                f"discord.default_account {default_account!r} is not a configured account"
            )

        timeout_seconds = _parse_positive_float_or_default(
            cfg.get("timeout_seconds"),
            default=DEFAULT_TIMEOUT_SECONDS,
            key="discord.timeout_seconds",
        )
        max_retries = _parse_non_negative_int_or_default(
            cfg.get("max_retries"),
            default=DEFAULT_MAX_RETRIES,
            key="discord.max_retries",
        )

        gates_raw = cfg.get("actions")
        if gates_raw is not None and not isinstance(gates_raw, dict):
            raise DiscordConfigError("discord.actions must be a mapping")
        action_gates: dict[str, bool] = {}
        for group, enabled in (gates_raw or {}).items():
            action_gates[str(group)] = _parse_bool_or_default(
                enabled, default=True, key=f"discord.actions.{group}"
            )

        return cls(
            bot_token_env=bot_token_env,
            default_account=default_account or None,
            accounts=accounts,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
            action_gates=action_gates,
        )

    def is_action_enabled(self, group: str) -> bool:
        if group in self.action_gates:
            return self.action_gates[group]
        return ACTION_GROUP_DEFAULTS.get(group, True)

    def token_env_for(self, account_id: Optional[str]) -> str:
        resolved = (account_id or "").strip() or self.default_account
        if not resolved:
            return self.bot_token_env
        account = self.accounts.get(resolved)
        if account is None:
            raise DiscordConfigError(f"Unknown Discord account {resolved!r}")
        return account.bot_token_env

    def resolve_bot_token(self, account_id: Optional[str] = None) -> str:
        token_env = self.token_env_for(account_id)
        token = (os.environ.get(token_env) or "").strip()
        if not token:
            raise DiscordConfigError(
                f"Discord bot token not configured (env var {token_env} is unset)"
            )
        return token


def _parse_positive_float_or_default(value: Any, *, default: float, key: str) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DiscordConfigError(f"{key} must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise DiscordConfigError(f"{key} must be a number") from exc
    if parsed <= 0:
        return default
    return parsed


def _parse_non_negative_int_or_default(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DiscordConfigError(f"{key} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise DiscordConfigError(f"{key} must be an integer") from exc
    if parsed < 0:
        return default
    return parsed


def _parse_bool_or_default(value: Any, *, default: bool, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise DiscordConfigError(f"{key} must be a boolean")
