"""Source and reading models."""

from __future__ import annotations

import math

from pydantic import Field, field_validator

from pysensorhub.models._base import HubBaseModel, HubTimestamp, utcnow


class SourceInfo(HubBaseModel):
    """A discovered telemetry source.

    Parameters
    ----------
    source_id : int
        Stable numeric id (the sensor type id for motion/environment sources).
    name : str
        Display name reported by the platform at discovery time.
    active : bool
        Whether the source is subscribed and included in exports.
    """

    source_id: int
    name: str
    active: bool = False


class Reading(HubBaseModel):
    """Latest value of one source.

    ``timestamp`` is the producer's monotonic event time in nanoseconds and
    drives rate control. ``captured_at`` is wall-clock time and only shows up
    in the exported document.
    """

    source_id: int
    name: str
    dimensionality: int = Field(ge=1, le=15)
    values: tuple[float, ...]
    timestamp: int = Field(ge=0)
    captured_at: HubTimestamp = Field(default_factory=utcnow)

    @field_validator("values", mode="before")
    @classmethod
    def _coerce_values(cls, value: object) -> tuple[float, ...]:
        if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
            raise ValueError("values must be a sequence of numbers")
        result = tuple(float(v) for v in value)  # type: ignore[union-attr]
        if not result:
            raise ValueError("values must not be empty")
        if not all(math.isfinite(v) for v in result):
            raise ValueError("values must be finite numbers")
        return result
