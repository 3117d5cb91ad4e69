from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger("channel_actions.core.config")

CONFIG_FILENAME = "channel-actions.yml"
OVERRIDE_FILENAME = "channel-actions.override.yml"
DEFAULT_LOG_PATH = ".channel-actions/channel-actions.log"
DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 3

__all__ = [
    "AppConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "LogConfig",
    "OVERRIDE_FILENAME",
    "load_config",
    "load_dotenv_for_root",
]


@dataclasses.dataclass(frozen=True)
class LogConfig:
    path: Path
    max_bytes: int
    backup_count: int
    level: int = logging.INFO


@dataclasses.dataclass(frozen=True)
class AppConfig:
    root: Path
    raw: Dict[str, Any]
    log: LogConfig

    def section(self, name: str) -> Dict[str, Any]:
        value = self.raw.get(name)
        return value if isinstance(value, dict) else {}


def _merge_defaults(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml_dict(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _parse_log_config(root: Path, raw: Any) -> LogConfig:
    cfg: Dict[str, Any] = raw if isinstance(raw, dict) else {}
    path_value = cfg.get("path", DEFAULT_LOG_PATH)
    if not isinstance(path_value, str) or not path_value.strip():
        raise ConfigError("log.path must be a string path")
    max_bytes = cfg.get("max_bytes", DEFAULT_LOG_MAX_BYTES)
    backup_count = cfg.get("backup_count", DEFAULT_LOG_BACKUP_COUNT)
    if not isinstance(max_bytes, int) or isinstance(max_bytes, bool) or max_bytes <= 0:
        raise ConfigError("log.max_bytes must be a positive integer")
    if (
        not isinstance(backup_count, int)
        or isinstance(backup_count, bool)
        or backup_count < 0
    ):
        raise ConfigError("log.backup_count must be a non-negative integer")
    level_name = str(cfg.get("level", "INFO")).strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ConfigError(f"log.level is not a valid logging level: {level_name}")
    return LogConfig(
        path=(root / path_value).resolve(),
        max_bytes=max_bytes,
        backup_count=backup_count,
        level=level,
    )


def load_dotenv_for_root(root: Path) -> None:
    """Load ``.env`` files from deterministic locations under ``root``."""
    try:
        root = root.resolve()
        candidates = [root / ".env", root / ".channel-actions" / ".env"]
        for candidate in candidates:
            if candidate.exists():
                load_dotenv(dotenv_path=candidate, override=True)
    except OSError as exc:
        logger.debug("Failed to load .env file: %s", exc)


def load_config(root: Optional[Path] = None) -> AppConfig:
    """Load ``channel-actions.yml`` (plus its override file) from ``root``."""
    root = (root or Path.cwd()).resolve()
    load_dotenv_for_root(root)
    merged: Dict[str, Any] = {}
    base = _load_yaml_dict(root / CONFIG_FILENAME)
    if base:
        merged = _merge_defaults(merged, base)
    override_path = root / OVERRIDE_FILENAME
    try:
        override = _load_yaml_dict(override_path)
    except ConfigError as exc:
        raise ConfigError(
            f"Invalid override config {override_path}; fix or delete it: {exc}"
        ) from exc
    if override:
        merged = _merge_defaults(merged, override)
    return AppConfig(root=root, raw=merged, log=_parse_log_config(root, merged.get("log")))
