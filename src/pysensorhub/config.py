"""Hub configuration for pysensorhub."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pysensorhub.exceptions import HubConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, kind: type) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return kind(raw)
    except ValueError as exc:
        raise HubConfigError(f"{key} must be {kind.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class DeviceProfile:
    """Static device identity emitted as ``device.sysinfo`` in every snapshot.

    ``os_name`` becomes the key holding ``os_version``, so the default profile
    renders as ``{"android": "14", "manufacturer": ..., "model": ...}``.
    """

    os_name: str = "android"
    os_version: str = "14"
    manufacturer: str = "unknown"
    model: str = "unknown"

    def as_sysinfo(self) -> dict[str, str]:
        return {
            self.os_name: self.os_version,
            "manufacturer": self.manufacturer,
            "model": self.model,
        }


@dataclasses.dataclass(frozen=True)
class HubConfig:
    """Broker and sink configuration.

    Parameters
    ----------
    interval_seconds : int
        Initial export interval. Clients may change it at runtime with
        ``SET_INTERVAL``.
    client_queue_size : int
        Bound of each client's receive queue. ``0`` means unbounded.
        A full queue counts as a delivery failure for that client.
    pretty_json : bool
        Indent snapshot JSON produced by the sinks.
    mqtt_enabled : bool
        Start the MQTT snapshot sink alongside the broker.
    mqtt_host : str
        MQTT broker host name.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic every snapshot is published to.
    mqtt_client_id : str
        MQTT client identifier.
    mqtt_username : str or None
        Optional MQTT user name.
    mqtt_password : str or None
        Optional MQTT password.
    mqtt_tls : bool
        Enable TLS with the system trust store.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_qos : int
        QoS used for snapshot publishes (0, 1 or 2).
    http_endpoint : str or None
        When set, the HTTP sink POSTs every snapshot to this URL.
    http_timeout : float
        Total timeout in seconds of one HTTP POST.
    device : DeviceProfile
        Static device identity.
    """

    interval_seconds: int = 1
    client_queue_size: int = 0
    pretty_json: bool = False
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "sensorhub/snapshots"
    mqtt_client_id: str = "pysensorhub"
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = False
    mqtt_keepalive: int = 60
    mqtt_qos: int = 0
    http_endpoint: str | None = None
    http_timeout: float = 10.0
    device: DeviceProfile = dataclasses.field(default_factory=DeviceProfile)

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise HubConfigError(f"interval_seconds must be > 0, got {self.interval_seconds}")
        if self.client_queue_size < 0:
            raise HubConfigError(f"client_queue_size must be >= 0, got {self.client_queue_size}")
        if self.mqtt_qos not in (0, 1, 2):
            raise HubConfigError(f"mqtt_qos must be 0, 1 or 2, got {self.mqtt_qos}")
        if not 0 < self.mqtt_port < 65536:
            raise HubConfigError(f"mqtt_port out of range: {self.mqtt_port}")

    @classmethod
    def from_env(cls, **overrides: Any) -> HubConfig:
        """Create configuration from ``SENSORHUB_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        HubConfigError
            When a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        device_kwargs: dict[str, str] = {}
        _ENV_DEVICE_MAP = {
            "SENSORHUB_OS_NAME": "os_name",
            "SENSORHUB_OS_VERSION": "os_version",
            "SENSORHUB_MANUFACTURER": "manufacturer",
            "SENSORHUB_MODEL": "model",
        }
        for env_key, field_name in _ENV_DEVICE_MAP.items():
            val = env.get(env_key)
            if val is not None:
                device_kwargs[field_name] = val

        device_overrides = overrides.pop("device", None)
        if isinstance(device_overrides, dict):
            device_kwargs.update(device_overrides)
        elif isinstance(device_overrides, DeviceProfile):
            device_kwargs = dataclasses.asdict(device_overrides)

        config_kwargs: dict[str, Any] = {"device": DeviceProfile(**device_kwargs)}

        _ENV_STR_MAP = {
            "SENSORHUB_MQTT_HOST": "mqtt_host",
            "SENSORHUB_MQTT_TOPIC": "mqtt_topic",
            "SENSORHUB_MQTT_CLIENT_ID": "mqtt_client_id",
            "SENSORHUB_MQTT_USERNAME": "mqtt_username",
            "SENSORHUB_MQTT_PASSWORD": "mqtt_password",
            "SENSORHUB_HTTP_ENDPOINT": "http_endpoint",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type]] = {
            "SENSORHUB_INTERVAL_SECONDS": ("interval_seconds", int),
            "SENSORHUB_CLIENT_QUEUE_SIZE": ("client_queue_size", int),
            "SENSORHUB_MQTT_PORT": ("mqtt_port", int),
            "SENSORHUB_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "SENSORHUB_MQTT_QOS": ("mqtt_qos", int),
            "SENSORHUB_HTTP_TIMEOUT": ("http_timeout", float),
        }
        for env_key, (field_name, kind) in _ENV_NUMBER_MAP.items():
            if field_name in overrides:
                continue
            val = _env_number(env, env_key, kind)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_BOOL_MAP = {
            "SENSORHUB_PRETTY_JSON": "pretty_json",
            "SENSORHUB_MQTT_ENABLED": "mqtt_enabled",
            "SENSORHUB_MQTT_TLS": "mqtt_tls",
        }
        for env_key, field_name in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
