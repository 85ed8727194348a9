"""Normalization helpers.

Lenient parsing (``safe_*``) is used for raw platform samples, where a bad
field is dropped. Strict parsing (``require_*``) is used for command
payloads, where a bad field rejects the whole command.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pysensorhub.exceptions import HubValidationError


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = safe_float(value)
    if parsed is None or math.isinf(parsed):
        return None
    return int(parsed)


def require_int(payload: Mapping[str, Any], key: str) -> int:
    """Return ``payload[key]`` as an int, rejecting bools, floats and strings."""
    if key not in payload:
        raise HubValidationError(f"{key}: value is missing")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise HubValidationError(f"{key}: expected an integer, got {type(value).__name__}")
    return value


def require_float(payload: Mapping[str, Any], key: str) -> float:
    if key not in payload:
        raise HubValidationError(f"{key}: value is missing")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise HubValidationError(f"{key}: expected a number, got {type(value).__name__}")
    return float(value)


def optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise HubValidationError(f"{key}: expected a string, got {type(value).__name__}")
    return value


def optional_int_list(payload: Mapping[str, Any], key: str) -> list[int] | None:
    """Parse an optional list of ids. ``None``/missing means "all"."""
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
        raise HubValidationError(f"{key}: expected a list of integers")
    ids: list[int] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise HubValidationError(f"{key}: expected a list of integers, got item {item!r}")
        ids.append(item)
    return ids
