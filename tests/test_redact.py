from __future__ import annotations

from pysensorhub._redact import redact_for_log


def test_redact_for_log_masks_user_and_credentials() -> None:
    payload = {
        "interval": 5,
        "publisher": "alice@example.com",
        "note": "home address",
        "mqtt_password": "pw",
        "nested": {"Authorization": "Bearer abc"},
    }

    redacted = redact_for_log(payload)
    assert redacted["interval"] == 5
    assert redacted["publisher"] == "<redacted>"
    assert redacted["note"] == "<redacted>"
    assert redacted["mqtt_password"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"


def test_redact_for_log_coarsens_coordinates() -> None:
    redacted = redact_for_log({"latitude": 48.137154, "longitude": "11.576124", "lat": "north"})
    assert redacted == {"latitude": "~48.1", "longitude": "~11.6", "lat": "<redacted>"}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_handles_sequences_and_bytes() -> None:
    redacted = redact_for_log({"source_ids": [1, 2], "blob": b"\x00\x01"})
    assert redacted == {"source_ids": [1, 2], "blob": "<bytes:2b>"}
