"""Versioned capability table.

Optional platform collaborators are resolved once when the broker starts.
Each message type is then either served, or failed with a stable error:
``HubProtocolError`` for types outside the negotiated protocol version and
``HubUnavailableError`` for types whose collaborator is absent.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pysensorhub._constants import PROTOCOL_VERSION
from pysensorhub.exceptions import HubProtocolError, HubUnavailableError
from pysensorhub.models.message import MessageType
from pysensorhub.platform import PlatformCellularSource, PlatformLocationSource, PlatformSensorSource


class Capability(StrEnum):
    SENSORS = "sensors"
    LOCATION = "location"
    CELLULAR = "cellular"


_REQUIRED_CAPABILITY: dict[MessageType, Capability] = {
    MessageType.LIST_SOURCES: Capability.SENSORS,
    MessageType.ENABLE_SOURCES: Capability.SENSORS,
    MessageType.DISABLE_SOURCES: Capability.SENSORS,
    MessageType.LOCATION_START_UPDATES: Capability.LOCATION,
    MessageType.LOCATION_STOP_UPDATES: Capability.LOCATION,
    MessageType.LOCATION_PROVIDER_STATUS: Capability.LOCATION,
    MessageType.CELLULAR_START_UPDATES: Capability.CELLULAR,
    MessageType.CELLULAR_STOP_UPDATES: Capability.CELLULAR,
}


@dataclass(frozen=True)
class CapabilityTable:
    """Snapshot of what this broker can serve."""

    version: int
    available: frozenset[Capability]

    @classmethod
    def resolve(
        cls,
        *,
        sensors: PlatformSensorSource | None,
        location: PlatformLocationSource | None,
        cellular: PlatformCellularSource | None,
        version: int = PROTOCOL_VERSION,
    ) -> CapabilityTable:
        available: set[Capability] = set()
        if sensors is not None:
            available.add(Capability.SENSORS)
        if location is not None:
            available.add(Capability.LOCATION)
        if cellular is not None:
            available.add(Capability.CELLULAR)
        return cls(version=version, available=frozenset(available))

    def has(self, capability: Capability) -> bool:
        return capability in self.available

    def supports(self, message_type: MessageType) -> bool:
        try:
            self.check(message_type)
        except (HubProtocolError, HubUnavailableError):
            return False
        return True

    def check(self, message_type: MessageType) -> None:
        """Raise unless *message_type* can be served as a command."""
        if not message_type.is_command or message_type.since_version > self.version:
            raise HubProtocolError(f"Unsupported message type {message_type.name}", request_type=int(message_type))
        capability = _REQUIRED_CAPABILITY.get(message_type)
        if capability is not None and capability not in self.available:
            raise HubUnavailableError(
                f"{message_type.name} needs the {capability.value} source, which is not attached",
                request_type=int(message_type),
            )
