"""Service broker: client registry, command dispatch and snapshot export.

The broker is a single asyncio task draining one inbox queue. Commands from
clients and events from platform producers share that queue, so every
registry, cache, context and rate mutation happens on the broker task in
arrival order. Producers running on other threads enter through
:meth:`ServiceBroker.on_reading`, :meth:`ServiceBroker.on_location` and
:meth:`ServiceBroker.on_signal_sample`, which hop onto the loop with
``call_soon_threadsafe``.

Usage::

    async with ServiceBroker(config, sensors=platform_sensors) as broker:
        channel = ClientChannel(broker, client_id=1, listener=listener)
        await channel.register()
        await channel.enable_sources()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pysensorhub._constants import NANOS_PER_SECOND
from pysensorhub._redact import redact_for_log
from pysensorhub.capabilities import CapabilityTable
from pysensorhub.channel import ReplyChannel
from pysensorhub.config import HubConfig
from pysensorhub.exceptions import (
    HubChannelError,
    HubError,
    HubPropagationError,
    HubProtocolError,
    HubUnavailableError,
    HubValidationError,
)
from pysensorhub.ingestion.normalize import optional_int_list, optional_str, require_float, require_int
from pysensorhub.ingestion.sensors import required_permission, sensor_dimensionality
from pysensorhub.models.message import Message, MessageType, PayloadKey
from pysensorhub.models.reading import Reading
from pysensorhub.platform import (
    AllowAllPermissions,
    Permission,
    PermissionGate,
    PlatformCellularSource,
    PlatformLocationSource,
    PlatformSensorSource,
)
from pysensorhub.snapshot import SnapshotBuilder
from pysensorhub.state.context import AuxiliaryContextStore
from pysensorhub.state.events import LocationFixEvent, ReadingEvent, SignalSampleEvent
from pysensorhub.state.policy import IntervalUnit, RateController
from pysensorhub.state.store import ReadingStore

_logger = logging.getLogger(__name__)

_Handler = Callable[[Message], Message | None]


class _Stop:
    pass


_STOP = _Stop()


class _Barrier:
    def __init__(self, future: asyncio.Future[None]) -> None:
        self.future = future


class _DirectReply:
    def __init__(self, channel: ReplyChannel, message: Message) -> None:
        self.channel = channel
        self.message = message


class ServiceBroker:
    """Long-lived collector owning the client registry and aggregation state.

    Parameters
    ----------
    config : HubConfig or None
        Initial interval and device identity. Defaults to ``HubConfig()``.
    sensors, location, cellular
        Optional platform collaborators. Commands needing an absent one fail
        with ``HubUnavailableError``.
    permissions : PermissionGate or None
        Consulted before a source is subscribed. Denied sources are skipped
        silently.
    clock : callable
        Monotonic nanosecond clock used when a producer gives no event time.
    logger : logging.Logger or None
        Logger used for traffic and failures.
    """

    def __init__(
        self,
        config: HubConfig | None = None,
        *,
        sensors: PlatformSensorSource | None = None,
        location: PlatformLocationSource | None = None,
        cellular: PlatformCellularSource | None = None,
        permissions: PermissionGate | None = None,
        clock: Callable[[], int] = time.monotonic_ns,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or HubConfig()
        self._sensors = sensors
        self._location = location
        self._cellular = cellular
        self._permissions: PermissionGate = permissions or AllowAllPermissions()
        self._clock = clock
        self._logger = logger or _logger

        self._store = ReadingStore()
        self._context = AuxiliaryContextStore()
        self._rate = RateController(self._config.interval_seconds * NANOS_PER_SECOND)
        self._builder = SnapshotBuilder(self._config.device, self._store, self._context)
        self._capabilities = CapabilityTable.resolve(sensors=sensors, location=location, cellular=cellular)

        self._clients: dict[int, ReplyChannel] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inbox: asyncio.Queue[Any] | None = None
        self._task: asyncio.Task[None] | None = None
        self._location_updates = False
        self._cellular_updates = False

        self._handlers: dict[MessageType, _Handler] = {
            MessageType.REGISTER_CLIENT: self._handle_register,
            MessageType.UNREGISTER_CLIENT: self._handle_unregister,
            MessageType.LIST_SOURCES: self._handle_list_sources,
            MessageType.ENABLE_SOURCES: self._handle_enable_sources,
            MessageType.DISABLE_SOURCES: self._handle_disable_sources,
            MessageType.SET_INTERVAL: self._handle_set_interval,
            MessageType.SET_LOCATION: self._handle_set_location,
            MessageType.RESET_LOCATION: self._handle_reset_location,
            MessageType.SET_USER_DATA: self._handle_set_user_data,
            MessageType.LOCATION_START_UPDATES: self._handle_location_start,
            MessageType.LOCATION_STOP_UPDATES: self._handle_location_stop,
            MessageType.LOCATION_PROVIDER_STATUS: self._handle_provider_status,
            MessageType.CELLULAR_START_UPDATES: self._handle_cellular_start,
            MessageType.CELLULAR_STOP_UPDATES: self._handle_cellular_stop,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ServiceBroker:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def config(self) -> HubConfig:
        return self._config

    @property
    def capabilities(self) -> CapabilityTable:
        return self._capabilities

    @property
    def store(self) -> ReadingStore:
        return self._store

    @property
    def context(self) -> AuxiliaryContextStore:
        return self._context

    @property
    def rate(self) -> RateController:
        return self._rate

    @property
    def registered_client_ids(self) -> list[int]:
        return sorted(self._clients)

    async def start(self) -> None:
        """Discover sources and start the broker task."""
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        self._inbox = asyncio.Queue()
        if self._sensors is not None:
            self._discover_sources(self._sensors)
        self._task = self._loop.create_task(self._run(), name="pysensorhub-broker")
        self._logger.debug(
            "Broker started version=%s capabilities=%s sources=%d",
            self._capabilities.version,
            sorted(self._capabilities.available),
            len(self._store),
        )

    async def stop(self) -> None:
        """Drain queued work, stop platform updates and drop all clients."""
        task = self._task
        if task is None:
            return
        if not task.done():
            self._enqueue(_STOP)
        await task
        self._task = None
        self._inbox = None
        self._release_platform()
        self._clients.clear()
        self._logger.debug("Broker stopped")

    async def flush(self) -> None:
        """Wait until everything queued before this call has been processed."""
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._enqueue(_Barrier(future))
        await future

    def _require_inbox(self) -> asyncio.Queue[Any]:
        if self._inbox is None or self._loop is None:
            raise HubChannelError("Broker is not running")
        return self._inbox

    def _discover_sources(self, sensors: PlatformSensorSource) -> None:
        try:
            discovered = list(sensors.discover())
        except Exception:
            self._logger.warning("Sensor discovery failed", exc_info=True)
            return
        for source_id, name in discovered:
            self._store.register_source(int(source_id), str(name))

    def _release_platform(self) -> None:
        for source_id in self._store.list_active_source_ids():
            self._store.exclude_source(source_id)
            if self._sensors is not None:
                try:
                    self._sensors.unsubscribe(source_id)
                except Exception:
                    self._logger.debug("Unsubscribe of %s failed during shutdown", source_id, exc_info=True)
        if self._location_updates and self._location is not None:
            try:
                self._location.stop_updates()
            except Exception:
                self._logger.debug("Stopping location updates failed during shutdown", exc_info=True)
        if self._cellular_updates and self._cellular is not None:
            try:
                self._cellular.stop_updates()
            except Exception:
                self._logger.debug("Stopping cellular updates failed during shutdown", exc_info=True)
        self._location_updates = False
        self._cellular_updates = False

    # ------------------------------------------------------------------
    # Entry points (thread-safe)
    # ------------------------------------------------------------------

    def _enqueue(self, item: Any) -> None:
        inbox = self._require_inbox()
        assert self._loop is not None  # noqa: S101
        self._loop.call_soon_threadsafe(inbox.put_nowait, item)

    def post(self, message: Message) -> None:
        """Queue a client command. Replies go to ``message.reply_to``."""
        self._enqueue(message)

    def post_envelope(self, envelope: Mapping[str, Any], reply_to: ReplyChannel | None = None) -> None:
        """Queue a raw ``{type, correlation_arg, payload}`` document.

        A document that does not parse is answered with a protocol ``ERROR``
        on *reply_to* instead of being queued.
        """
        try:
            message = Message.model_validate({**envelope, "reply_to": reply_to})
        except ValidationError as exc:
            raw_type = envelope.get("type")
            error = HubProtocolError(f"Malformed message: {exc.errors()[0]['msg']}")
            self._logger.warning("Rejected malformed message type=%s", raw_type)
            if reply_to is not None:
                request_type = raw_type if isinstance(raw_type, int) and not isinstance(raw_type, bool) else None
                self._enqueue(_DirectReply(reply_to, Message.error(error, request_type)))
            return
        self.post(message)

    def on_reading(
        self,
        source_id: int,
        values: Iterable[float],
        timestamp_ns: int | None = None,
    ) -> None:
        """Hand over one sensor reading. Safe to call from any thread."""
        try:
            event = ReadingEvent(
                source_id=source_id,
                values=tuple(values),
                timestamp=timestamp_ns if timestamp_ns is not None else self._clock(),
            )
        except (ValidationError, TypeError, ValueError):
            self._logger.warning("Dropping malformed reading of source %s", source_id, exc_info=True)
            return
        self._enqueue(event)

    def on_location(self, latitude: float, longitude: float, utc_time: int = -1) -> None:
        """Hand over one location fix. Safe to call from any thread."""
        try:
            event = LocationFixEvent(latitude=latitude, longitude=longitude, utc_time=utc_time)
        except (ValidationError, TypeError, ValueError):
            self._logger.warning("Dropping malformed location fix", exc_info=True)
            return
        self._enqueue(event)

    def on_signal_sample(self, network_type: int, raw_sample: Mapping[str, Any]) -> None:
        """Hand over one radio sample. Safe to call from any thread."""
        try:
            event = SignalSampleEvent(network_type=network_type, raw_sample=dict(raw_sample))
        except (ValidationError, TypeError, ValueError):
            self._logger.warning("Dropping malformed radio sample of network type %s", network_type, exc_info=True)
            return
        self._enqueue(event)

    # ------------------------------------------------------------------
    # Broker task
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        inbox = self._require_inbox()
        while True:
            item = await inbox.get()
            if item is _STOP:
                break
            try:
                self._process(item)
            except Exception:
                self._logger.error("Broker failed to process %s", type(item).__name__, exc_info=True)

    def _process(self, item: Any) -> None:
        if isinstance(item, Message):
            self._handle_command(item)
        elif isinstance(item, ReadingEvent):
            self._apply_reading(item)
        elif isinstance(item, LocationFixEvent):
            self._apply_location(item)
        elif isinstance(item, SignalSampleEvent):
            self._context.set_cellular(item.network_type, item.raw_sample, item.observed_at)
        elif isinstance(item, _DirectReply):
            self._send(item.channel, item.message)
        elif isinstance(item, _Barrier):
            if not item.future.done():
                item.future.set_result(None)
        else:
            self._logger.warning("Ignoring unexpected inbox item %r", item)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _send(self, channel: ReplyChannel, message: Message) -> bool:
        """Deliver to one channel, dropping it from the registry on failure."""
        try:
            channel.send(message)
        except HubChannelError as exc:
            self._logger.warning("Delivery of %s to client %s failed: %s", message.type.name, channel.client_id, exc)
            if self._clients.get(channel.client_id) is channel:
                del self._clients[channel.client_id]
                self._logger.info("Removed dead client %s", channel.client_id)
            return False
        return True

    def _broadcast(self, message: Message) -> int:
        """Deliver to every registered client; returns the number reached."""
        delivered = 0
        for channel in list(self._clients.values()):
            if self._send(channel, message):
                delivered += 1
        self._logger.debug("Broadcast %s to %d client(s)", message.type.name, delivered)
        return delivered

    def _reply_channel(self, request: Message) -> ReplyChannel | None:
        if isinstance(request.reply_to, ReplyChannel):
            return request.reply_to
        return self._clients.get(request.correlation_arg)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _handle_command(self, message: Message) -> None:
        self._logger.debug(
            "Command %s from client %s payload=%s",
            message.type.name,
            message.correlation_arg,
            redact_for_log(message.payload),
        )
        try:
            self._capabilities.check(message.type)
            reply = self._handlers[message.type](message)
        except HubError as exc:
            if exc.request_type is None:
                exc.request_type = int(message.type)
            self._logger.warning(
                "Command %s from client %s failed: %s",
                message.type.name,
                message.correlation_arg,
                exc,
            )
            reply = Message.error(exc, message.type)
        if reply is None:
            return
        channel = self._reply_channel(message)
        if channel is None:
            self._logger.warning(
                "No reply channel for %s from client %s; reply dropped",
                message.type.name,
                message.correlation_arg,
            )
            return
        self._send(channel, reply)

    def _call_platform(self, what: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception as exc:
            self._logger.debug("Platform call %s failed", what, exc_info=True)
            raise HubPropagationError(f"{what} failed: {exc}") from exc

    def _handle_register(self, message: Message) -> Message | None:
        channel = message.reply_to
        if not isinstance(channel, ReplyChannel):
            raise HubValidationError("REGISTER_CLIENT needs a reply channel")
        client_id = message.correlation_arg
        previous = self._clients.get(client_id)
        self._clients[client_id] = channel
        if previous is not None and previous is not channel:
            self._logger.debug("Client %s re-registered; reply channel replaced", client_id)
        else:
            self._logger.debug("Client %s registered", client_id)
        return Message.ack(message.type, {PayloadKey.PROTOCOL_VERSION: self._capabilities.version})

    def _handle_unregister(self, message: Message) -> Message | None:
        removed = self._clients.pop(message.correlation_arg, None)
        if removed is not None:
            self._logger.debug("Client %s unregistered", message.correlation_arg)
        return Message.ack(message.type)

    def _source_list(self) -> Message:
        sources = self._store.list_sources()
        return Message(
            type=MessageType.SOURCE_LIST,
            payload={
                PayloadKey.SOURCE_IDS: [source.source_id for source in sources],
                PayloadKey.SOURCE_NAMES: [source.name for source in sources],
            },
        )

    def _handle_list_sources(self, message: Message) -> Message | None:
        listing = self._source_list()
        self._broadcast(listing)
        requester = self._reply_channel(message)
        if requester is not None and self._clients.get(requester.client_id) is not requester:
            return listing
        return None

    def _requested_sources(self, message: Message) -> list[int]:
        ids = optional_int_list(message.payload, PayloadKey.SOURCE_IDS)
        if ids is None:
            return self._store.list_source_ids()
        return ids

    def _handle_enable_sources(self, message: Message) -> Message | None:
        assert self._sensors is not None  # noqa: S101
        enabled: list[int] = []
        for source_id in self._requested_sources(message):
            if source_id not in self._store:
                self._logger.debug("Ignoring unknown source %s", source_id)
                continue
            permission = required_permission(source_id)
            if permission is not None and not self._permissions.is_granted(permission):
                self._logger.debug("Source %s skipped: %s not granted", source_id, permission.value)
                continue
            if not self._store.is_active(source_id):
                self._call_platform(f"subscribe({source_id})", self._sensors.subscribe, source_id)
                self._store.include_source(source_id)
            enabled.append(source_id)
        return Message.ack(message.type, {PayloadKey.SOURCE_IDS: enabled})

    def _handle_disable_sources(self, message: Message) -> Message | None:
        assert self._sensors is not None  # noqa: S101
        disabled: list[int] = []
        for source_id in self._requested_sources(message):
            if source_id not in self._store:
                self._logger.debug("Ignoring unknown source %s", source_id)
                continue
            if self._store.is_active(source_id):
                self._call_platform(f"unsubscribe({source_id})", self._sensors.unsubscribe, source_id)
                self._store.exclude_source(source_id)
            disabled.append(source_id)
        return Message.ack(message.type, {PayloadKey.SOURCE_IDS: disabled})

    def _handle_set_interval(self, message: Message) -> Message | None:
        duration = require_int(message.payload, PayloadKey.INTERVAL)
        unit = message.payload.get(PayloadKey.INTERVAL_UNIT, IntervalUnit.SECONDS)
        if not isinstance(unit, str):
            raise HubValidationError(f"{PayloadKey.INTERVAL_UNIT}: expected a string")
        self._rate.set_interval(duration, unit)
        return Message.ack(message.type, {PayloadKey.INTERVAL: duration, PayloadKey.INTERVAL_UNIT: str(unit)})

    def _handle_set_location(self, message: Message) -> Message | None:
        latitude = require_float(message.payload, PayloadKey.LATITUDE)
        longitude = require_float(message.payload, PayloadKey.LONGITUDE)
        utc_time = -1
        if message.payload.get(PayloadKey.LOCATION_TIME) is not None:
            utc_time = require_int(message.payload, PayloadKey.LOCATION_TIME)
        self._context.set_location(latitude, longitude, utc_time)
        return Message.ack(message.type)

    def _handle_reset_location(self, message: Message) -> Message | None:
        self._context.reset_location()
        return Message.ack(message.type)

    def _handle_set_user_data(self, message: Message) -> Message | None:
        publisher = optional_str(message.payload, PayloadKey.PUBLISHER)
        note = optional_str(message.payload, PayloadKey.NOTE)
        self._context.set_user(publisher=publisher, note=note)
        return Message.ack(message.type)

    def _handle_location_start(self, message: Message) -> Message | None:
        assert self._location is not None  # noqa: S101
        if not self._permissions.is_granted(Permission.LOCATION):
            raise HubUnavailableError("Location permission not granted")
        if not self._location_updates:
            self._call_platform("request_updates", self._location.request_updates)
            self._location_updates = True
        return Message.ack(message.type)

    def _handle_location_stop(self, message: Message) -> Message | None:
        assert self._location is not None  # noqa: S101
        if self._location_updates:
            self._call_platform("stop_updates", self._location.stop_updates)
            self._location_updates = False
        return Message.ack(message.type)

    def _handle_provider_status(self, message: Message) -> Message | None:
        assert self._location is not None  # noqa: S101
        status = self._call_platform("provider_status", self._location.provider_status)
        return Message.ack(
            message.type,
            {PayloadKey.PROVIDER_ENABLED: status.enabled, PayloadKey.PROVIDER_SOURCES: status.sources},
        )

    def _handle_cellular_start(self, message: Message) -> Message | None:
        assert self._cellular is not None  # noqa: S101
        if not self._permissions.is_granted(Permission.PHONE_STATE):
            raise HubUnavailableError("Phone state permission not granted")
        if not self._cellular_updates:
            self._call_platform("start_updates", self._cellular.start_updates)
            self._cellular_updates = True
        return Message.ack(message.type)

    def _handle_cellular_stop(self, message: Message) -> Message | None:
        assert self._cellular is not None  # noqa: S101
        if self._cellular_updates:
            self._call_platform("stop_updates", self._cellular.stop_updates)
            self._cellular_updates = False
        self._context.clear_cellular()
        return Message.ack(message.type)

    # ------------------------------------------------------------------
    # Producer events
    # ------------------------------------------------------------------

    def _apply_reading(self, event: ReadingEvent) -> None:
        if not self._store.is_active(event.source_id):
            return
        if self._rate.should_export(event.timestamp):
            if self._store.has_pending_readings():
                snapshot = self._builder.export()
                self._broadcast(
                    Message(
                        type=MessageType.READING_SNAPSHOT,
                        payload={PayloadKey.SNAPSHOT: snapshot.to_document()},
                    )
                )
            self._rate.mark_exported(event.timestamp)
        name = self._store.source_name(event.source_id) or str(event.source_id)
        dimensionality = sensor_dimensionality(event.source_id) or 1
        self._store.record_reading(
            Reading(
                source_id=event.source_id,
                name=name,
                dimensionality=dimensionality,
                values=event.values,
                timestamp=event.timestamp,
                captured_at=event.observed_at,
            )
        )

    def _apply_location(self, event: LocationFixEvent) -> None:
        try:
            self._context.set_location(event.latitude, event.longitude, event.utc_time)
        except HubValidationError as exc:
            self._logger.warning("Dropping location fix: %s", exc)
            return
        self._broadcast(
            Message(
                type=MessageType.LOCATION_DATA,
                payload={
                    PayloadKey.LATITUDE: event.latitude,
                    PayloadKey.LONGITUDE: event.longitude,
                    PayloadKey.LOCATION_TIME: event.utc_time,
                },
            )
        )

