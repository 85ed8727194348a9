"""Normalized producer events.

Platform callbacks convert their inputs into these events and queue them on
the broker. Only the broker task applies them to the state layer.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from pysensorhub.models._base import HubBaseModel, HubTimestamp, utcnow


class IngestionSource(StrEnum):
    SENSOR = "sensor"
    LOCATION = "location"
    CELLULAR = "cellular"


class ReadingEvent(HubBaseModel):
    """A raw reading from the sensor source."""

    source: IngestionSource = IngestionSource.SENSOR
    source_id: int
    values: tuple[float, ...]
    timestamp: int = Field(ge=0, description="Monotonic event time in nanoseconds")
    observed_at: HubTimestamp = Field(default_factory=utcnow)

    @field_validator("values", mode="before")
    @classmethod
    def _as_tuple(cls, value: Any) -> tuple[float, ...]:
        result = tuple(float(v) for v in value)
        if not result:
            raise ValueError("a reading needs at least one value")
        if not all(math.isfinite(v) for v in result):
            raise ValueError("a reading cannot carry NaN or infinite values")
        return result


class LocationFixEvent(HubBaseModel):
    source: IngestionSource = IngestionSource.LOCATION
    latitude: float
    longitude: float
    utc_time: int = -1


class SignalSampleEvent(HubBaseModel):
    source: IngestionSource = IngestionSource.CELLULAR
    network_type: int
    raw_sample: dict[str, Any] = Field(default_factory=dict)
    observed_at: HubTimestamp = Field(default_factory=utcnow)
