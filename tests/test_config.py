from __future__ import annotations

import pytest

from pysensorhub.config import DeviceProfile, HubConfig
from pysensorhub.exceptions import HubConfigError


def test_defaults() -> None:
    config = HubConfig()
    assert config.interval_seconds == 1
    assert config.mqtt_enabled is False
    assert config.device.as_sysinfo() == {"android": "14", "manufacturer": "unknown", "model": "unknown"}


def test_from_env_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SENSORHUB_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("SENSORHUB_MQTT_ENABLED", "yes")
    monkeypatch.setenv("SENSORHUB_MQTT_HOST", "broker.local")
    monkeypatch.setenv("SENSORHUB_HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv("SENSORHUB_MODEL", "Pixel 9")

    config = HubConfig.from_env()

    assert config.interval_seconds == 5
    assert config.mqtt_enabled is True
    assert config.mqtt_host == "broker.local"
    assert config.http_timeout == 2.5
    assert config.device.model == "Pixel 9"


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SENSORHUB_MQTT_PORT", "8883")
    monkeypatch.setenv("SENSORHUB_PRETTY_JSON", "1")

    config = HubConfig.from_env(mqtt_port=1884, pretty_json=False, device={"manufacturer": "Acme"})

    assert config.mqtt_port == 1884
    assert config.pretty_json is False
    assert config.device == DeviceProfile(manufacturer="Acme")


def test_bad_number_in_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SENSORHUB_MQTT_QOS", "high")
    with pytest.raises(HubConfigError, match="SENSORHUB_MQTT_QOS"):
        HubConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"interval_seconds": 0},
        {"client_queue_size": -1},
        {"mqtt_qos": 3},
        {"mqtt_port": 70000},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, int]) -> None:
    with pytest.raises(HubConfigError):
        HubConfig(**kwargs)
