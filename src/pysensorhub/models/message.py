"""Message envelope exchanged between clients and the broker."""

from __future__ import annotations

import enum
from enum import StrEnum
from typing import Any

from pydantic import Field

from pysensorhub._constants import RESULT_OK
from pysensorhub.exceptions import HubError
from pysensorhub.models._base import HubBaseModel


class MessageType(enum.IntEnum):
    """Closed, versioned set of message types.

    Values are part of the wire contract and never reused.
    """

    # Client -> service
    REGISTER_CLIENT = 1
    UNREGISTER_CLIENT = 2
    LIST_SOURCES = 3
    ENABLE_SOURCES = 4
    DISABLE_SOURCES = 5
    SET_INTERVAL = 6
    SET_LOCATION = 7
    RESET_LOCATION = 71
    SET_USER_DATA = 8
    LOCATION_START_UPDATES = 9
    LOCATION_STOP_UPDATES = 10
    CELLULAR_START_UPDATES = 12
    CELLULAR_STOP_UPDATES = 13

    # Service -> client
    SOURCE_LIST = 102
    READING_SNAPSHOT = 103
    LOCATION_DATA = 104

    # Both directions
    LOCATION_PROVIDER_STATUS = 105
    ERROR = 999

    @property
    def since_version(self) -> int:
        return _SINCE_VERSION.get(self, 1)

    @property
    def is_command(self) -> bool:
        return self in _COMMANDS


_SINCE_VERSION: dict[MessageType, int] = {
    MessageType.LOCATION_START_UPDATES: 2,
    MessageType.LOCATION_STOP_UPDATES: 2,
    MessageType.CELLULAR_START_UPDATES: 2,
    MessageType.CELLULAR_STOP_UPDATES: 2,
    MessageType.LOCATION_DATA: 2,
    MessageType.LOCATION_PROVIDER_STATUS: 2,
}

_COMMANDS: frozenset[MessageType] = frozenset(
    {
        MessageType.REGISTER_CLIENT,
        MessageType.UNREGISTER_CLIENT,
        MessageType.LIST_SOURCES,
        MessageType.ENABLE_SOURCES,
        MessageType.DISABLE_SOURCES,
        MessageType.SET_INTERVAL,
        MessageType.SET_LOCATION,
        MessageType.RESET_LOCATION,
        MessageType.SET_USER_DATA,
        MessageType.LOCATION_START_UPDATES,
        MessageType.LOCATION_STOP_UPDATES,
        MessageType.CELLULAR_START_UPDATES,
        MessageType.CELLULAR_STOP_UPDATES,
        MessageType.LOCATION_PROVIDER_STATUS,
    }
)


class PayloadKey(StrEnum):
    """Named payload keys. Values are the on-wire map keys."""

    INTERVAL = "interval"
    INTERVAL_UNIT = "interval_unit"
    LATITUDE = "latitude"
    LONGITUDE = "longitude"
    LOCATION_TIME = "location_time"
    PUBLISHER = "publisher"
    NOTE = "note"
    SOURCE_IDS = "source_ids"
    SOURCE_NAMES = "source_names"
    SNAPSHOT = "snapshot"
    ERROR_MESSAGE = "error_message"
    ERROR_KIND = "error_kind"
    REQUEST_TYPE = "request_type"
    PROVIDER_ENABLED = "provider_enabled"
    PROVIDER_SOURCES = "provider_sources"
    PROTOCOL_VERSION = "protocol_version"


class Message(HubBaseModel):
    """One envelope on the channel.

    ``correlation_arg`` is the sender's client id on requests and the result
    code on replies (``0`` success, negative error code on ``ERROR``).
    ``reply_to`` is the return address of a request; it never appears in the
    serialized envelope.
    """

    type: MessageType
    correlation_arg: int = 0
    payload: dict[str, Any] = Field(default_factory=dict)
    reply_to: Any = Field(default=None, exclude=True, repr=False)

    @classmethod
    def request(
        cls,
        message_type: MessageType,
        client_id: int,
        payload: dict[str, Any] | None = None,
        *,
        reply_to: Any = None,
    ) -> Message:
        return cls(type=message_type, correlation_arg=client_id, payload=payload or {}, reply_to=reply_to)

    @classmethod
    def ack(cls, message_type: MessageType, payload: dict[str, Any] | None = None) -> Message:
        return cls(type=message_type, correlation_arg=RESULT_OK, payload=payload or {})

    @classmethod
    def error(cls, exc: HubError, request_type: int | None) -> Message:
        payload: dict[str, Any] = {
            PayloadKey.ERROR_MESSAGE: str(exc),
            PayloadKey.ERROR_KIND: type(exc).__name__,
        }
        if request_type is not None:
            payload[PayloadKey.REQUEST_TYPE] = int(request_type)
        return cls(type=MessageType.ERROR, correlation_arg=exc.code, payload=payload)

    @property
    def succeeded(self) -> bool:
        return self.type != MessageType.ERROR and self.correlation_arg == RESULT_OK

    def to_envelope(self) -> dict[str, Any]:
        """Serializable ``{type, correlation_arg, payload}`` document."""
        return {
            "type": int(self.type),
            "correlation_arg": self.correlation_arg,
            "payload": {str(k): v for k, v in self.payload.items()},
        }
