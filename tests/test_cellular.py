from __future__ import annotations

from datetime import UTC, datetime

from pysensorhub.ingestion.cellular import (
    NetworkType,
    RadioAccessTechnology,
    build_cellular_block,
    network_type_name,
    parse_signal_fields,
    radio_access_technology,
)
from pysensorhub.ingestion.sensors import (
    SensorType,
    required_permission,
    sensor_dimensionality,
    sensor_type_name,
)
from pysensorhub.models.context import CellularContext
from pysensorhub.platform import Permission

_UNAVAILABLE = 2**31 - 1


def test_network_types_map_to_technology() -> None:
    assert radio_access_technology(1) == RadioAccessTechnology.GSM
    assert radio_access_technology(3) == RadioAccessTechnology.WCDMA
    assert radio_access_technology(14) == RadioAccessTechnology.EVDO
    assert radio_access_technology(17) == RadioAccessTechnology.TD_SCDMA
    assert radio_access_technology(20) == RadioAccessTechnology.NR
    assert radio_access_technology(19) == RadioAccessTechnology.OTHERS
    assert network_type_name(13) == NetworkType.LTE
    assert network_type_name(404) == NetworkType.UNKNOWN


def test_unavailable_and_non_numeric_fields_dropped() -> None:
    rat, fields = parse_signal_fields(
        13,
        {"rssi": -60, "rsrp": _UNAVAILABLE, "rsrq": "n/a", "cqi_table_index": 2, "ber": 3},
    )

    assert rat == RadioAccessTechnology.LTE
    assert fields == {"rssi": -60, "cqiTableIndex": 2}


def test_nr_uses_camel_case_document_keys() -> None:
    _, fields = parse_signal_fields(20, {"ss_rsrp": -80, "ssRsrq": -10, "ss_sinr": None})
    assert fields == {"ssRsrp": -80, "ssRsrq": -10}


def test_block_always_has_timestamp() -> None:
    context = CellularContext(network_type=0, raw_sample={}, timestamp=datetime(2026, 1, 1, tzinfo=UTC))
    assert build_cellular_block(context) == {"others": {"timestamp": "2026-01-01T00:00:00.000+00:00"}}


def test_sensor_table() -> None:
    assert sensor_type_name(SensorType.ACCELEROMETER) == "accelerometer"
    assert sensor_type_name(12345) == "unknown(12345)"
    assert sensor_dimensionality(SensorType.GAME_ROTATION_VECTOR) == 4
    assert sensor_dimensionality(SensorType.POSE_6DOF) == 15
    assert sensor_dimensionality(12345) is None
    assert required_permission(SensorType.HEART_RATE) == Permission.BODY_SENSORS
    assert required_permission(SensorType.ACCELEROMETER) is None
