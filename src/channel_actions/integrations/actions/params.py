"""Readers for loosely-typed action parameter bags.

Agents hand over plain JSON-ish mappings. These helpers pull out one typed
value at a time and raise ``MissingRequiredParameter`` or
``InvalidParameterType`` when a constraint is violated.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional, Union

from .errors import InvalidParameterType, MissingRequiredParameter

Number = Union[int, float]


def read_string_param(
    params: Mapping[str, Any],
    key: str,
    *,
    required: bool = False,
    allow_empty: bool = False,
    trim: bool = True,
    label: Optional[str] = None,
) -> Optional[str]:
    label = label or key
    raw = params.get(key)
    if not isinstance(raw, str):
        if required:
            raise MissingRequiredParameter(f"{label} required", key=key)
        return None
    value = raw.strip() if trim else raw
    if not value and not allow_empty:
        if required:
            raise MissingRequiredParameter(f"{label} required", key=key)
        return None
    return value


def read_string_array_param(
    params: Mapping[str, Any],
    key: str,
    *,
    required: bool = False,
    label: Optional[str] = None,
) -> Optional[list[str]]:
    label = label or key
    raw = params.get(key)
    values: list[str] = []
    if isinstance(raw, (list, tuple)):
        for item in raw:
            if item is None:
                continue
            token = str(item).strip()
            if token:
                values.append(token)
    elif isinstance(raw, str) and raw.strip():
        values.append(raw.strip())
    if not values:
        if required:
            raise MissingRequiredParameter(f"{label} required", key=key)
        return None
    return values


def _parse_number(raw: Any) -> Optional[Number]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return raw if math.isfinite(raw) else None
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def read_number_param(
    params: Mapping[str, Any],
    key: str,
    *,
    required: bool = False,
    integer: bool = False,
    label: Optional[str] = None,
) -> Optional[Number]:
    label = label or key
    raw = params.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            raise MissingRequiredParameter(f"{label} required", key=key)
        return None
    value = _parse_number(raw)
    if value is None:
        raise InvalidParameterType(f"{label} must be a number", key=key)
    if integer and isinstance(value, float):
        if not value.is_integer():
            raise InvalidParameterType(f"{label} must be an integer", key=key)
        return int(value)
    return value


def read_bool_flag(params: Mapping[str, Any], key: str) -> Optional[bool]:
    """Return the flag only when it is a real ``bool``; never coerce."""
    raw = params.get(key)
    return raw if isinstance(raw, bool) else None
