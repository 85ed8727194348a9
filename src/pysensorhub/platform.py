"""Structural interfaces of the platform collaborators.

The broker only talks to the platform through these protocols. Concrete
implementations (driver access, OS permission prompts, provider selection)
live in platform glue outside this package; tests pass small fakes.

Readings, location fixes and radio samples flow back through the broker's
``on_reading`` / ``on_location`` / ``on_signal_sample`` callbacks, which are
safe to call from any thread.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Protocol, runtime_checkable

from pysensorhub.models.context import ProviderStatus


class Permission(StrEnum):
    """Runtime permissions a source may depend on."""

    BODY_SENSORS = "body_sensors"
    ACTIVITY_RECOGNITION = "activity_recognition"
    LOCATION = "location"
    PHONE_STATE = "phone_state"


@runtime_checkable
class PlatformSensorSource(Protocol):
    def discover(self) -> Iterable[tuple[int, str]]:
        """Return ``(source_id, name)`` pairs of available sensors."""
        ...

    def subscribe(self, source_id: int) -> None: ...

    def unsubscribe(self, source_id: int) -> None: ...


@runtime_checkable
class PlatformLocationSource(Protocol):
    def request_updates(self) -> None: ...

    def stop_updates(self) -> None: ...

    def provider_status(self) -> ProviderStatus: ...


@runtime_checkable
class PlatformCellularSource(Protocol):
    def start_updates(self) -> None: ...

    def stop_updates(self) -> None: ...


@runtime_checkable
class PermissionGate(Protocol):
    def is_granted(self, permission: Permission) -> bool: ...


class AllowAllPermissions:
    """Permission gate used when the platform has no runtime permissions."""

    def is_granted(self, permission: Permission) -> bool:
        return True
