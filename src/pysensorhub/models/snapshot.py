"""Snapshot document model.

A :class:`Snapshot` lives only between build and transmission. Its canonical
serialization is the nested document returned by :meth:`Snapshot.to_document`::

    {
      "device": {
        "sysinfo": {...},
        "userinfo": {...},     # only when a field is set
        "location": {...},     # only with both coordinates
        "cellular": {...}      # only with a radio sample
      },
      "sensors": [{"type", "name", "id"?, "timestamp", "value" | "values"}]
    }
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import Field, model_validator

from pysensorhub.models._base import HubBaseModel


class SensorEntry(HubBaseModel):
    type: str
    name: str
    id: int | None = None
    timestamp: str
    value: float | None = None
    values: tuple[float, ...] | None = None

    @model_validator(mode="after")
    def _one_value_form(self) -> SensorEntry:
        if (self.value is None) == (self.values is None):
            raise ValueError("exactly one of value/values must be set")
        return self


class LocationBlock(HubBaseModel):
    latitude: str
    longitude: str
    timestamp: str | None = None


class Snapshot(HubBaseModel):
    sysinfo: dict[str, str]
    userinfo: dict[str, str] | None = None
    location: LocationBlock | None = None
    cellular: dict[str, dict[str, Any]] | None = None
    sensors: tuple[SensorEntry, ...] = Field(default_factory=tuple)

    def to_document(self) -> dict[str, Any]:
        device: dict[str, Any] = {"sysinfo": dict(self.sysinfo)}
        if self.userinfo:
            device["userinfo"] = dict(self.userinfo)
        if self.location is not None:
            device["location"] = self.location.model_dump(exclude_none=True)
        if self.cellular:
            device["cellular"] = {rat: dict(fields) for rat, fields in self.cellular.items()}
        sensors = []
        for entry in self.sensors:
            dumped = entry.model_dump(exclude_none=True)
            if "values" in dumped:
                dumped["values"] = list(dumped["values"])
            sensors.append(dumped)
        return {"device": device, "sensors": sensors}

    def to_json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_document(), indent=4 if pretty else None, ensure_ascii=False, allow_nan=False)
