from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

import pytest

from pysensorhub.config import DeviceProfile
from pysensorhub.models.context import LocationContext
from pysensorhub.models.reading import Reading
from pysensorhub.snapshot import SnapshotBuilder, location_block
from pysensorhub.state.context import AuxiliaryContextStore
from pysensorhub.state.store import ReadingStore

_CAPTURED = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def _builder() -> tuple[SnapshotBuilder, ReadingStore, AuxiliaryContextStore]:
    store = ReadingStore()
    context = AuxiliaryContextStore()
    device = DeviceProfile(os_name="android", os_version="14", manufacturer="Acme", model="Rocket")
    return SnapshotBuilder(device, store, context), store, context


def _record(store: ReadingStore, source_id: int, name: str, values: tuple[float, ...]) -> None:
    store.register_source(source_id, name)
    store.include_source(source_id)
    store.record_reading(
        Reading(
            source_id=source_id,
            name=name,
            dimensionality=len(values),
            values=values,
            timestamp=1,
            captured_at=_CAPTURED,
        )
    )


def test_empty_context_blocks_are_absent() -> None:
    builder, _, _ = _builder()

    document = builder.build().to_document()

    assert document == {
        "device": {"sysinfo": {"android": "14", "manufacturer": "Acme", "model": "Rocket"}},
        "sensors": [],
    }


def test_location_has_six_decimals_and_optional_timestamp() -> None:
    builder, _, context = _builder()
    context.set_location(48.1, -122.25)

    location = builder.build().to_document()["device"]["location"]
    assert location == {"latitude": "48.100000", "longitude": "-122.250000"}

    context.set_location(48.1, -122.25, 1_767_268_800_000)
    location = builder.build().to_document()["device"]["location"]
    assert location["timestamp"] == "2026-01-01T12:00:00.000+00:00"


def test_userinfo_only_lists_present_fields() -> None:
    builder, _, context = _builder()
    context.set_user(note="calibration run")

    assert builder.build().to_document()["device"]["userinfo"] == {"note": "calibration run"}


def test_sensor_entries_follow_dimension_table() -> None:
    builder, store, _ = _builder()
    _record(store, 5, "Ambient Light", (321.5, 0.0, 0.0))
    _record(store, 1, "Accelerometer", (0.1, 9.8, 0.2))
    _record(store, 11, "Rotation Vector", (0.1, 0.2, 0.3, 0.4, 0.5, 0.6))

    sensors = builder.build().to_document()["sensors"]

    assert [s["id"] for s in sensors] == [1, 5, 11]
    assert sensors[0] == {
        "type": "accelerometer",
        "name": "Accelerometer",
        "id": 1,
        "timestamp": "2026-01-01T12:00:00.000+00:00",
        "values": [0.1, 9.8, 0.2],
    }
    assert sensors[1]["type"] == "light"
    assert sensors[1]["value"] == 321.5
    assert "values" not in sensors[1]
    assert sensors[2]["values"] == [0.1, 0.2, 0.3, 0.4, 0.5]


def test_unknown_sensor_type_falls_back_to_scalar(caplog: pytest.LogCaptureFixture) -> None:
    builder, store, _ = _builder()
    _record(store, 65_537, "Vendor Thing", (7.0, 8.0))

    with caplog.at_level(logging.WARNING, logger="pysensorhub.snapshot"):
        sensors = builder.build().to_document()["sensors"]

    assert sensors[0]["type"] == "unknown(65537)"
    assert sensors[0]["value"] == 7.0
    assert "Unknown sensor type" in caplog.text


def test_short_reading_emits_what_is_available(caplog: pytest.LogCaptureFixture) -> None:
    builder, store, _ = _builder()
    _record(store, 4, "Gyroscope", (0.5,))

    with caplog.at_level(logging.WARNING, logger="pysensorhub.snapshot"):
        sensors = builder.build().to_document()["sensors"]

    assert sensors[0]["values"] == [0.5]
    assert "expected 3" in caplog.text


def test_cellular_block_keyed_by_technology() -> None:
    builder, _, context = _builder()
    context.set_cellular(13, {"rsrp": -95, "rsrq": -11, "cqi": 2**31 - 1}, _CAPTURED)

    cellular = builder.build().to_document()["device"]["cellular"]

    assert cellular == {"lte": {"rsrp": -95, "rsrq": -11, "timestamp": "2026-01-01T12:00:00.000+00:00"}}


def test_export_clears_readings_but_build_does_not() -> None:
    builder, store, _ = _builder()
    _record(store, 1, "Accelerometer", (1.0, 2.0, 3.0))

    builder.build()
    assert store.has_pending_readings()

    snapshot = builder.export()
    assert len(snapshot.sensors) == 1
    assert not store.has_pending_readings()
    assert builder.build().sensors == ()


def test_pretty_json_is_indented() -> None:
    builder, _, _ = _builder()
    snapshot = builder.build()

    assert "\n    " in snapshot.to_json(pretty=True)
    assert json.loads(snapshot.to_json()) == snapshot.to_document()


def test_gravity_and_orientation_export_every_axis() -> None:
    builder, store, _ = _builder()
    _record(store, 3, "Orientation", (10.0, 20.0, 30.0))
    _record(store, 9, "Gravity", (0.0, 0.0, 9.81))
    _record(store, 10, "Linear Acceleration", (0.1, 0.2, 0.3))

    sensors = builder.build().to_document()["sensors"]

    assert [s["values"] for s in sensors] == [[10.0, 20.0, 30.0], [0.0, 0.0, 9.81], [0.1, 0.2, 0.3]]


def test_unrenderable_fix_time_omits_timestamp(caplog: pytest.LogCaptureFixture) -> None:
    location = LocationContext(latitude=35.0, longitude=139.0, utc_time=10**18)

    with caplog.at_level(logging.WARNING, logger="pysensorhub.snapshot"):
        block = location_block(location)

    assert block is not None
    assert block.timestamp is None
    assert block.latitude == "35.000000"
    assert "not representable" in caplog.text
