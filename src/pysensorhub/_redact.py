"""Helpers for safe debug logging.

Message payloads carry coordinates, free-form user notes and sink
credentials. Coordinates are coarsened to one decimal (roughly 10 km) so
logs stay useful for spotting a wrong hemisphere; the rest is masked.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

_MASKED_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "mqtt_password",
        "authorization",
        "token",
        "publisher",
        "note",
    }
)

_COORDINATE_KEYS: frozenset[str] = frozenset({"latitude", "longitude", "lat", "lon"})


def _coarsen(value: Any) -> Any:
    if isinstance(value, bool):
        return "<redacted>"
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return "<redacted>"
    if isinstance(value, (int, float)) and math.isfinite(value):
        return f"~{value:.1f}"
    return "<redacted>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _MASKED_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _COORDINATE_KEYS:
                redacted[key] = _coarsen(v)
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Pydantic models and other objects: avoid dumping internals.
    return repr(value)
