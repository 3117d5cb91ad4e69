from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import typer

from ....core.config import AppConfig, ConfigError, load_config
from ....core.exceptions import ChannelActionsError
from ....core.logging_utils import log_event, setup_rotating_logger
from ....integrations.actions.models import (
    ActionRequestContext,
    ActionResult,
    BoundContext,
)
from ....integrations.discord.config import DiscordActionsConfig
from ....integrations.discord.constants import DISCORD_THREAD_ARCHIVE_DURATIONS
from ....integrations.discord.errors import DiscordConfigError
from ....integrations.discord.executor import DiscordActionExecutor
from ....integrations.discord.handle_action import handle_discord_message_action
from .utils import load_json_params


def _build_executor(config: DiscordActionsConfig) -> DiscordActionExecutor:
    return DiscordActionExecutor(config)


def _load_discord_config(
    path: Optional[Path], raise_exit: Callable
) -> tuple[AppConfig, DiscordActionsConfig]:
    try:
        app_config = load_config(path or Path.cwd())
        discord_cfg = DiscordActionsConfig.from_raw(app_config.section("discord"))
    except (ConfigError, DiscordConfigError) as exc:
        raise_exit(str(exc), cause=exc)
    return app_config, discord_cfg


async def _perform(
    config: DiscordActionsConfig,
    *,
    action: str,
    params: dict[str, Any],
    account_id: Optional[str] = None,
    current_channel_id: Optional[str] = None,
) -> ActionResult:
    ctx = ActionRequestContext(
        action=action,
        params=params,
        cfg=config,
        account_id=account_id,
        tool_context=(
            BoundContext(current_channel_id=current_channel_id)
            if current_channel_id
            else None
        ),
    )
    async with _build_executor(config) as executor:
        return await handle_discord_message_action(ctx, executor=executor)


def _run_action(
    path: Optional[Path],
    *,
    raise_exit: Callable,
    failure_label: str,
    action: str,
    params: dict[str, Any],
    account_id: Optional[str] = None,
    current_channel_id: Optional[str] = None,
) -> ActionResult:
    app_config, discord_cfg = _load_discord_config(path, raise_exit)
    logger = setup_rotating_logger("channel-actions-discord", app_config.log)
    try:
        result = asyncio.run(
            _perform(
                discord_cfg,
                action=action,
                params=params,
                account_id=account_id,
                current_channel_id=current_channel_id,
            )
        )
    except ChannelActionsError as exc:
        log_event(
            logger,
            logging.WARNING,
            "discord.cli.action.failed",
            action=action,
            exc=exc,
        )
        raise_exit(f"Failed to {failure_label}: {exc}", cause=exc)
    log_event(logger, logging.INFO, "discord.cli.action.done", action=action)
    return result


def _details(result: ActionResult) -> dict[str, Any]:
    return result.details if isinstance(result.details, dict) else {}


def register_discord_commands(app: typer.Typer, *, raise_exit: Callable) -> None:
    @app.command("send")
    def discord_send(
        to: str = typer.Option(
            ..., "--to", "-t", help="Target: channel:<id> or user:<id>"
        ),
        message: str = typer.Option(..., "--message", "-m", help="Message body"),
        reply_to: Optional[str] = typer.Option(
            None, "--reply-to", help="Message ID to reply to"
        ),
        as_json: bool = typer.Option(False, "--json", help="Output result as JSON"),
        path: Optional[Path] = typer.Option(None, "--path", help="Project root path"),
    ) -> None:
        """Send a message to a Discord channel or user."""
        params: dict[str, Any] = {"to": to, "message": message}
        if reply_to:
            params["replyTo"] = reply_to
        result = _run_action(
            path,
            raise_exit=raise_exit,
            failure_label="send message",
            action="send",
            params=params,
        )
        details = _details(result)
        if as_json:
            typer.echo(json.dumps(details, indent=2))
        else:
            typer.echo(f"Message sent: {details.get('messageId')}")

    @app.command("thread-create")
    def discord_thread_create(
        channel_id: str = typer.Option(
            ..., "--channel-id", help="Channel ID where the message exists"
        ),
        message_id: str = typer.Option(
            ..., "--message-id", help="Message ID to create thread on"
        ),
        name: str = typer.Option(..., "--name", help="Thread name"),
        archive_duration: int = typer.Option(
            1440,
            "--archive-duration",
            help="Auto-archive duration in minutes (60, 1440, 4320, 10080)",
        ),
        as_json: bool = typer.Option(False, "--json", help="Output result as JSON"),
        path: Optional[Path] = typer.Option(None, "--path", help="Project root path"),
    ) -> None:
        """Create a thread on an existing message."""
        if archive_duration not in DISCORD_THREAD_ARCHIVE_DURATIONS:
            raise_exit(
                "Invalid archive duration. Must be 60, 1440, 4320, or 10080 minutes."
            )
        result = _run_action(
            path,
            raise_exit=raise_exit,
            failure_label="create thread",
            action="thread-create",
            params={
                "channelId": channel_id,
                "messageId": message_id,
                "threadName": name,
                "autoArchiveMin": archive_duration,
            },
        )
        details = _details(result)
        thread = details.get("thread") if isinstance(details.get("thread"), dict) else {}
        if as_json:
            typer.echo(json.dumps(thread, indent=2))
        else:
            typer.echo(f"Thread created: {thread.get('id')}")

    @app.command("action")
    def discord_action(
        action: str = typer.Argument(..., help="Action name, e.g. react or thread-rename"),
        params_json: Optional[str] = typer.Option(
            None, "--params", help="Action parameters as a JSON object"
        ),
        account: Optional[str] = typer.Option(
            None, "--account", help="Configured Discord account id"
        ),
        current_channel: Optional[str] = typer.Option(
            None,
            "--current-channel",
            help="Bind the action to a channel (enables thread isolation checks)",
        ),
        as_json: bool = typer.Option(False, "--json", help="Output details as JSON"),
        path: Optional[Path] = typer.Option(None, "--path", help="Project root path"),
    ) -> None:
        """Run any supported Discord action through the action router."""
        params = load_json_params(params_json)
        result = _run_action(
            path,
            raise_exit=raise_exit,
            failure_label=f"run {action}",
            action=action,
            params=params,
            account_id=account,
            current_channel_id=current_channel,
        )
        if as_json:
            typer.echo(json.dumps(result.details, indent=2, default=str))
            return
        for block in result.content:
            text = block.get("text")
            if text:
                typer.echo(text)
