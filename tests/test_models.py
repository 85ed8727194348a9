from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pysensorhub.exceptions import (
    HubChannelError,
    HubError,
    HubUnavailableError,
    HubValidationError,
    error_for_code,
)
from pysensorhub.models._base import parse_epoch_timestamp
from pysensorhub.models.context import LocationContext
from pysensorhub.models.message import Message, MessageType, PayloadKey
from pysensorhub.models.reading import Reading
from pysensorhub.models.snapshot import SensorEntry


def test_envelope_excludes_reply_address() -> None:
    message = Message.request(MessageType.SET_INTERVAL, 7, {PayloadKey.INTERVAL: 3}, reply_to=object())

    assert message.to_envelope() == {"type": 6, "correlation_arg": 7, "payload": {"interval": 3}}
    assert "reply_to" not in message.model_dump()


def test_error_reply_carries_code_and_request_type() -> None:
    reply = Message.error(HubUnavailableError("no radio"), MessageType.CELLULAR_START_UPDATES)

    assert reply.type == MessageType.ERROR
    assert reply.correlation_arg == -3
    assert not reply.succeeded
    assert reply.payload[PayloadKey.ERROR_MESSAGE] == "no radio"
    assert reply.payload[PayloadKey.REQUEST_TYPE] == 12


def test_error_codes_round_trip_to_classes() -> None:
    assert isinstance(error_for_code(-2, "bad"), HubValidationError)
    assert isinstance(error_for_code(-5, "gone"), HubChannelError)
    unknown = error_for_code(-77, "???")
    assert type(unknown) is HubError


def test_message_type_versions() -> None:
    assert MessageType.SET_LOCATION.since_version == 1
    assert MessageType.LOCATION_DATA.since_version == 2
    assert MessageType.RESET_LOCATION == 71
    assert MessageType.REGISTER_CLIENT.is_command
    assert not MessageType.READING_SNAPSHOT.is_command


def test_reading_rejects_bad_shapes() -> None:
    with pytest.raises(ValidationError):
        Reading(source_id=1, name="a", dimensionality=3, values=(), timestamp=0)
    with pytest.raises(ValidationError):
        Reading(source_id=1, name="a", dimensionality=16, values=(1.0,), timestamp=0)
    with pytest.raises(ValidationError):
        Reading(source_id=1, name="a", dimensionality=1, values=(1.0,), timestamp=-1)
    with pytest.raises(ValidationError):
        Reading(source_id=1, name="a", dimensionality=1, values=(float("nan"),), timestamp=0)
    with pytest.raises(ValidationError):
        Reading(source_id=1, name="a", dimensionality=3, values=(1.0, float("inf"), 0.0), timestamp=0)


def test_reading_is_frozen() -> None:
    reading = Reading(source_id=1, name="a", dimensionality=1, values=[2], timestamp=0)
    assert reading.values == (2.0,)
    with pytest.raises(ValidationError):
        reading.values = (3.0,)  # type: ignore[misc]


def test_location_context_validates_range() -> None:
    with pytest.raises(ValidationError):
        LocationContext(latitude=0.0, longitude=181.0)


def test_sensor_entry_needs_exactly_one_value_form() -> None:
    with pytest.raises(ValidationError):
        SensorEntry(type="light", name="l", timestamp="t")
    with pytest.raises(ValidationError):
        SensorEntry(type="light", name="l", timestamp="t", value=1.0, values=(1.0,))


def test_epoch_parsing_accepts_seconds_and_millis() -> None:
    expected = datetime(2026, 1, 1, tzinfo=UTC)
    assert parse_epoch_timestamp(1_767_225_600) == expected
    assert parse_epoch_timestamp(1_767_225_600_000) == expected
    assert parse_epoch_timestamp(datetime(2026, 1, 1)) == expected
