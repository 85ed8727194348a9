"""Pydantic models for pysensorhub."""

from pysensorhub.models._base import HubBaseModel
from pysensorhub.models.context import CellularContext, LocationContext, ProviderStatus, UserContext
from pysensorhub.models.message import Message, MessageType, PayloadKey
from pysensorhub.models.reading import Reading, SourceInfo
from pysensorhub.models.snapshot import LocationBlock, SensorEntry, Snapshot

__all__ = [
    "CellularContext",
    "HubBaseModel",
    "LocationBlock",
    "LocationContext",
    "Message",
    "MessageType",
    "PayloadKey",
    "ProviderStatus",
    "Reading",
    "SensorEntry",
    "Snapshot",
    "SourceInfo",
    "UserContext",
]
