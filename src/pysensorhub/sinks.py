"""Snapshot sinks.

A sink is an ordinary broker client: it registers a :class:`ClientChannel`
and forwards every ``READING_SNAPSHOT`` document it receives as JSON, to an
MQTT topic or to an HTTP endpoint. A failed delivery is logged and counted;
it never affects the broker or other clients.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from pysensorhub._mqtt import ClientFactory, MqttPublisherRuntime
from pysensorhub._transport import HttpSnapshotTransport, SnapshotTransport
from pysensorhub.broker import ServiceBroker
from pysensorhub.channel import ClientChannel, NullListener
from pysensorhub.config import HubConfig
from pysensorhub.exceptions import HubConfigError, HubError, HubTransportError

_logger = logging.getLogger(__name__)

MQTT_SINK_CLIENT_ID = 9001
HTTP_SINK_CLIENT_ID = 9002


class _SnapshotSink(NullListener):
    def __init__(self, broker: ServiceBroker, client_id: int) -> None:
        self._broker = broker
        self._channel = ClientChannel(broker, client_id, listener=self)
        self.delivered = 0
        self.failed = 0

    @property
    def channel(self) -> ClientChannel:
        return self._channel

    async def __aenter__(self) -> _SnapshotSink:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        await self._channel.register()

    async def stop(self) -> None:
        if self._broker.is_running and not self._channel.reply_channel.closed:
            try:
                await self._channel.unregister()
            except HubError:
                _logger.debug("Sink %s unregister failed", self._channel.client_id, exc_info=True)
        await self._channel.close()


class MqttSnapshotSink(_SnapshotSink):
    """Publish each snapshot to ``config.mqtt_topic``."""

    def __init__(
        self,
        broker: ServiceBroker,
        config: HubConfig | None = None,
        *,
        client_id: int = MQTT_SINK_CLIENT_ID,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(broker, client_id)
        self._config = config or broker.config
        self._runtime = MqttPublisherRuntime(self._config, client_factory=client_factory, logger=_logger)

    @property
    def runtime(self) -> MqttPublisherRuntime:
        return self._runtime

    async def start(self) -> None:
        self._runtime.start()
        await super().start()

    async def stop(self) -> None:
        await super().stop()
        self._runtime.stop()

    def on_snapshot(self, document: dict[str, Any]) -> None:
        payload = json.dumps(document, indent=4 if self._config.pretty_json else None, ensure_ascii=False)
        try:
            self._runtime.publish(payload)
        except HubTransportError as exc:
            self.failed += 1
            _logger.warning("Snapshot publish failed: %s", exc)
            return
        self.delivered += 1


class HttpSnapshotSink(_SnapshotSink):
    """POST each snapshot to ``config.http_endpoint``.

    Posts run as tasks so the client's receive loop never waits on the
    network; ``stop`` waits for the ones in flight.
    """

    def __init__(
        self,
        broker: ServiceBroker,
        config: HubConfig | None = None,
        *,
        client_id: int = HTTP_SINK_CLIENT_ID,
        transport: SnapshotTransport | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__(broker, client_id)
        self._config = config or broker.config
        self._transport = transport
        self._external_session = session is not None
        self._http_session = session
        self._in_flight: set[asyncio.Task[None]] = set()

    async def start(self) -> None:
        if self._transport is None:
            endpoint = self._config.http_endpoint
            if not endpoint:
                raise HubConfigError("HTTP sink needs http_endpoint")
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpSnapshotTransport(
                endpoint,
                self._http_session,
                timeout=self._config.http_timeout,
                pretty=self._config.pretty_json,
            )
        await super().start()

    async def stop(self) -> None:
        await super().stop()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def on_snapshot(self, document: dict[str, Any]) -> None:
        task = asyncio.get_running_loop().create_task(self._post(document))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _post(self, document: dict[str, Any]) -> None:
        assert self._transport is not None  # noqa: S101
        try:
            await self._transport.post_document(document)
        except HubTransportError as exc:
            self.failed += 1
            _logger.warning("Snapshot POST failed: %s", exc)
            return
        self.delivered += 1
