from __future__ import annotations

import json
from typing import Any, NoReturn, Optional

import typer


def get_version() -> str:
    import importlib.metadata

    try:
        return importlib.metadata.version("channel-actions")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def load_json_params(raw: Optional[str]) -> dict[str, Any]:
    """Parse a ``--params`` JSON object; an empty value means no params."""
    if raw is None or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise_exit(f"--params must be valid JSON: {exc}", cause=exc)
    if not isinstance(value, dict):
        raise_exit("--params must be a JSON object")
    return value
