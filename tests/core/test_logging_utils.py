from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from channel_actions.core.config import LogConfig
from channel_actions.core.logging_utils import log_event, setup_rotating_logger


def test_log_event_emits_json_without_none_fields(
    caplog: pytest.LogCaptureFixture,
) -> None:
    logger = logging.getLogger("channel_actions.test.log_event")
    with caplog.at_level(logging.INFO, logger=logger.name):
        log_event(
            logger,
            logging.INFO,
            "discord.action.execute",
            action="threadDelete",
            account_id=None,
            exc=ValueError("nope"),
        )

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload == {
        "event": "discord.action.execute",
        "action": "threadDelete",
        "error": "nope",
        "error_type": "ValueError",
    }


def test_log_event_skips_disabled_levels(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("channel_actions.test.disabled")
    with caplog.at_level(logging.WARNING, logger=logger.name):
        log_event(logger, logging.DEBUG, "noisy")
    assert caplog.records == []


def test_setup_rotating_logger_is_idempotent(tmp_path: Path) -> None:
    log_config = LogConfig(
        path=tmp_path / "logs" / "actions.log", max_bytes=1024, backup_count=1
    )
    logger = setup_rotating_logger("channel_actions.test.rotating", log_config)
    again = setup_rotating_logger("channel_actions.test.rotating", log_config)
    try:
        assert logger is again
        assert len(logger.handlers) == 1
        log_event(logger, logging.INFO, "hello", value=1)
        for handler in logger.handlers:
            handler.flush()
        text = (tmp_path / "logs" / "actions.log").read_text(encoding="utf-8")
        assert '"event": "hello"' in text
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
