"""Internal MQTT publisher runtime for the snapshot sink."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pysensorhub.config import HubConfig
from pysensorhub.exceptions import HubTransportError

ClientFactory = Callable[[str], mqtt.Client]


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv5,
    )


class MqttPublisherRuntime:
    """Threaded paho-mqtt runtime that publishes to one topic.

    The paho network loop runs on its own thread; ``publish`` only queues the
    message, so it is safe to call from the event loop.
    """

    def __init__(
        self,
        config: HubConfig,
        *,
        client_factory: ClientFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or _default_client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._connected = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def topic(self) -> str:
        return self._config.mqtt_topic

    def start(self) -> None:
        """Connect and start the network loop."""
        self.stop()
        config = self._config
        self._logger.debug(
            "MQTT publisher start requested host=%s port=%s topic=%s client_id=%s",
            config.mqtt_host,
            config.mqtt_port,
            config.mqtt_topic,
            config.mqtt_client_id,
        )

        client = self._client_factory(config.mqtt_client_id)
        client.enable_logger(self._logger)
        if config.mqtt_username is not None:
            client.username_pw_set(config.mqtt_username, config.mqtt_password)
        if config.mqtt_tls:
            client.tls_set()

        def on_connect(
            _c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._connected = True
            self._logger.debug("MQTT connected reason=%s", reason_code)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._connected = False
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        try:
            client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
        except OSError as exc:
            raise HubTransportError(
                f"MQTT connect to {config.mqtt_host}:{config.mqtt_port} failed: {exc}",
                endpoint=f"{config.mqtt_host}:{config.mqtt_port}",
            ) from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def publish(self, payload: str) -> None:
        """Queue one message on the configured topic.

        Raises
        ------
        HubTransportError
            When the runtime is stopped or paho refuses the message.
        """
        client = self._client
        if client is None or not self._running:
            raise HubTransportError("MQTT publisher is not running", endpoint=self.topic)
        info = client.publish(self.topic, payload, qos=self._config.mqtt_qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise HubTransportError(f"MQTT publish to {self.topic} failed: rc={info.rc}", endpoint=self.topic)

    def stop(self) -> None:
        """Stop and disconnect the current client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
