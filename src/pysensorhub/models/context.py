"""Auxiliary context models: location, user metadata, cellular sample."""

from __future__ import annotations

import math
from typing import Any

from pydantic import Field, model_validator

from pysensorhub._constants import LATITUDE_RANGE, LONGITUDE_RANGE
from pysensorhub.models._base import HubBaseModel, HubTimestamp, utcnow


def coordinate_problem(latitude: float, longitude: float) -> str | None:
    """Describe why a coordinate pair is unusable, or ``None`` when valid."""
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return f"Invalid location {{{latitude}, {longitude}}}: not a finite number"
    lat_min, lat_max = LATITUDE_RANGE
    lon_min, lon_max = LONGITUDE_RANGE
    if not lat_min <= latitude <= lat_max:
        return f"Latitude {latitude} out of range [{lat_min}, {lat_max}]"
    if not lon_min <= longitude <= lon_max:
        return f"Longitude {longitude} out of range [{lon_min}, {lon_max}]"
    return None


class LocationContext(HubBaseModel):
    """Last-known device location.

    ``utc_time`` is epoch milliseconds; a negative value means the fix time
    is unknown and no timestamp is exported.
    """

    latitude: float
    longitude: float
    utc_time: int = -1

    @model_validator(mode="after")
    def _check_range(self) -> LocationContext:
        problem = coordinate_problem(self.latitude, self.longitude)
        if problem is not None:
            raise ValueError(problem)
        return self


class UserContext(HubBaseModel):
    publisher: str | None = None
    note: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.publisher is None and self.note is None


class CellularContext(HubBaseModel):
    """Latest raw radio sample as handed over by the platform."""

    network_type: int
    raw_sample: dict[str, Any] = Field(default_factory=dict)
    timestamp: HubTimestamp = Field(default_factory=utcnow)


class ProviderStatus(HubBaseModel):
    """Location provider availability as reported by the platform."""

    enabled: bool
    sources: str = ""
