"""Client side of the broker protocol.

A :class:`ReplyChannel` is the opaque return address the broker holds for a
client: a bounded inbox it can write to and nothing else. A
:class:`ClientChannel` owns one reply channel, issues commands as
non-blocking calls returning :class:`asyncio.Future` objects and runs a
receive task that resolves those futures and forwards broadcasts to a
:class:`ChannelListener`.

Pending futures are matched to replies in FIFO order per message type. The
protocol has no timeout; wrap a future in :func:`asyncio.wait_for` if needed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict, deque
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

from pysensorhub.exceptions import HubChannelError, HubError, error_for_code
from pysensorhub.models.context import ProviderStatus
from pysensorhub.models.message import Message, MessageType, PayloadKey
from pysensorhub.models.reading import SourceInfo
from pysensorhub.state.policy import IntervalUnit

if TYPE_CHECKING:
    from pysensorhub.broker import ServiceBroker

_logger = logging.getLogger(__name__)


class ReplyChannel:
    """Inbox of one client as seen by the broker.

    ``send`` never blocks: a closed or full inbox raises
    :class:`HubChannelError`, which the broker treats as a dead client.
    """

    def __init__(self, client_id: int, maxsize: int = 0) -> None:
        self._client_id = client_id
        self._queue: asyncio.Queue[Message] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def client_id(self) -> int:
        return self._client_id

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def send(self, message: Message) -> None:
        if self._closed:
            raise HubChannelError(f"Channel of client {self._client_id} is closed", client_id=self._client_id)
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull as exc:
            raise HubChannelError(
                f"Channel of client {self._client_id} is full ({self._queue.maxsize} messages)",
                client_id=self._client_id,
            ) from exc

    async def receive(self) -> Message:
        return await self._queue.get()

    def close(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ReplyChannel(client_id={self._client_id}, {state})"


class ChannelListener(Protocol):
    """Callbacks for messages that arrive on a client channel."""

    def on_sources(self, sources: list[SourceInfo]) -> None: ...

    def on_snapshot(self, document: dict[str, Any]) -> None: ...

    def on_location(self, latitude: float, longitude: float, utc_time: int) -> None: ...

    def on_ack(self, message_type: MessageType, payload: dict[str, Any]) -> None: ...

    def on_error(self, error: HubError) -> None: ...


class NullListener:
    """Listener that ignores everything. Subclass and override what you need."""

    def on_sources(self, sources: list[SourceInfo]) -> None:
        return None

    def on_snapshot(self, document: dict[str, Any]) -> None:
        return None

    def on_location(self, latitude: float, longitude: float, utc_time: int) -> None:
        return None

    def on_ack(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        return None

    def on_error(self, error: HubError) -> None:
        return None


def sources_from_payload(payload: dict[str, Any]) -> list[SourceInfo]:
    ids = payload.get(PayloadKey.SOURCE_IDS) or []
    names = payload.get(PayloadKey.SOURCE_NAMES) or []
    return [SourceInfo(source_id=source_id, name=name) for source_id, name in zip(ids, names, strict=False)]


class ClientChannel:
    """Handle a foreground consumer uses to talk to the broker.

    Usage::

        async with ClientChannel(broker, client_id=7, listener=my_listener) as channel:
            sources = await channel.list_available_sources()
            await channel.enable_sources([s.source_id for s in sources])
            await channel.set_interval_timer(500, "ms")

    Entering the context registers the client, leaving it unregisters and
    closes the channel.
    """

    def __init__(
        self,
        broker: ServiceBroker,
        client_id: int,
        listener: ChannelListener | None = None,
        *,
        queue_size: int | None = None,
    ) -> None:
        if queue_size is None:
            queue_size = broker.config.client_queue_size
        self._broker = broker
        self._client_id = client_id
        self._listener: ChannelListener = listener or NullListener()
        self._reply = ReplyChannel(client_id, queue_size)
        self._pending: defaultdict[MessageType, deque[asyncio.Future[Any]]] = defaultdict(deque)
        self._receiver: asyncio.Task[None] | None = None

    async def __aenter__(self) -> ClientChannel:
        await self.register()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._reply.closed and self._broker.is_running:
            try:
                await self.unregister()
            except HubError:
                _logger.debug("Unregister of client %s failed", self._client_id, exc_info=True)
        await self.close()

    @property
    def client_id(self) -> int:
        return self._client_id

    @property
    def reply_channel(self) -> ReplyChannel:
        return self._reply

    @property
    def pending_count(self) -> int:
        return sum(len(queue) for queue in self._pending.values())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def register(self) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.REGISTER_CLIENT)

    def unregister(self) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.UNREGISTER_CLIENT)

    def list_available_sources(self) -> asyncio.Future[list[SourceInfo]]:
        """Resolve with the discovered sources, sorted by id."""
        return self._issue(MessageType.LIST_SOURCES)

    def enable_sources(self, source_ids: Iterable[int] | None = None) -> asyncio.Future[dict[str, Any]]:
        """Subscribe sources; ``None`` means every discovered source."""
        return self._issue(MessageType.ENABLE_SOURCES, _ids_payload(source_ids))

    def disable_sources(self, source_ids: Iterable[int] | None = None) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.DISABLE_SOURCES, _ids_payload(source_ids))

    def set_interval_timer(
        self, duration: int, unit: IntervalUnit | str = IntervalUnit.SECONDS
    ) -> asyncio.Future[dict[str, Any]]:
        return self._issue(
            MessageType.SET_INTERVAL,
            {PayloadKey.INTERVAL: duration, PayloadKey.INTERVAL_UNIT: str(unit)},
        )

    def set_location_context(
        self, latitude: float, longitude: float, utc_time: int = -1
    ) -> asyncio.Future[dict[str, Any]]:
        return self._issue(
            MessageType.SET_LOCATION,
            {
                PayloadKey.LATITUDE: latitude,
                PayloadKey.LONGITUDE: longitude,
                PayloadKey.LOCATION_TIME: utc_time,
            },
        )

    def reset_location_context(self) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.RESET_LOCATION)

    def set_user_context(
        self, publisher: str | None = None, note: str | None = None
    ) -> asyncio.Future[dict[str, Any]]:
        payload: dict[str, Any] = {}
        if publisher is not None:
            payload[PayloadKey.PUBLISHER] = publisher
        if note is not None:
            payload[PayloadKey.NOTE] = note
        return self._issue(MessageType.SET_USER_DATA, payload)

    def start_location_updates(self) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.LOCATION_START_UPDATES)

    def stop_location_updates(self) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.LOCATION_STOP_UPDATES)

    def request_provider_status(self) -> asyncio.Future[ProviderStatus]:
        return self._issue(MessageType.LOCATION_PROVIDER_STATUS)

    def start_cellular_updates(self) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.CELLULAR_START_UPDATES)

    def stop_cellular_updates(self) -> asyncio.Future[dict[str, Any]]:
        return self._issue(MessageType.CELLULAR_STOP_UPDATES)

    def _issue(self, message_type: MessageType, payload: dict[str, Any] | None = None) -> asyncio.Future[Any]:
        if self._reply.closed:
            raise HubChannelError(f"Channel of client {self._client_id} is closed", client_id=self._client_id)
        loop = asyncio.get_running_loop()
        self._ensure_receiving(loop)
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[message_type].append(future)
        try:
            self._broker.post(Message.request(message_type, self._client_id, payload, reply_to=self._reply))
        except HubError as exc:
            self._pending[message_type].remove(future)
            future.set_exception(exc)
        return future

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    def _ensure_receiving(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._receiver is None or self._receiver.done():
            self._receiver = loop.create_task(self._receive_loop(), name=f"pysensorhub-client-{self._client_id}")

    async def _receive_loop(self) -> None:
        while True:
            message = await self._reply.receive()
            try:
                self._dispatch(message)
            except Exception:
                _logger.warning(
                    "Client %s failed to handle %s", self._client_id, message.type.name, exc_info=True
                )

    def _take_pending(self, message_type: MessageType) -> asyncio.Future[Any] | None:
        queue = self._pending.get(message_type)
        while queue:
            future = queue.popleft()
            if not future.done():
                return future
        return None

    def _dispatch(self, message: Message) -> None:
        payload = message.payload
        if message.type == MessageType.ERROR:
            raw_type = payload.get(PayloadKey.REQUEST_TYPE)
            error = error_for_code(
                message.correlation_arg,
                str(payload.get(PayloadKey.ERROR_MESSAGE, "")),
                request_type=raw_type,
            )
            future = None
            with contextlib.suppress(ValueError):
                future = self._take_pending(MessageType(raw_type))
            if future is not None:
                future.set_exception(error)
            self._notify("on_error", error)
            return

        if message.type == MessageType.SOURCE_LIST:
            sources = sources_from_payload(payload)
            future = self._take_pending(MessageType.LIST_SOURCES)
            if future is not None:
                future.set_result(sources)
            self._notify("on_sources", sources)
            return

        if message.type == MessageType.READING_SNAPSHOT:
            self._notify("on_snapshot", payload.get(PayloadKey.SNAPSHOT, {}))
            return

        if message.type == MessageType.LOCATION_DATA:
            self._notify(
                "on_location",
                payload.get(PayloadKey.LATITUDE),
                payload.get(PayloadKey.LONGITUDE),
                payload.get(PayloadKey.LOCATION_TIME, -1),
            )
            return

        result: Any = dict(payload)
        if message.type == MessageType.LOCATION_PROVIDER_STATUS:
            result = ProviderStatus(
                enabled=bool(payload.get(PayloadKey.PROVIDER_ENABLED)),
                sources=str(payload.get(PayloadKey.PROVIDER_SOURCES) or ""),
            )
        future = self._take_pending(message.type)
        if future is not None:
            future.set_result(result)
        else:
            _logger.debug("Client %s got unsolicited %s", self._client_id, message.type.name)
        self._notify("on_ack", message.type, dict(payload))

    def _notify(self, callback: str, *args: Any) -> None:
        try:
            getattr(self._listener, callback)(*args)
        except Exception:
            _logger.debug("Listener %s callback failed", callback, exc_info=True)

    async def close(self) -> None:
        """Close the reply channel, stop receiving and cancel pending calls."""
        self._reply.close()
        receiver = self._receiver
        self._receiver = None
        if receiver is not None and not receiver.done():
            receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receiver
        for queue in self._pending.values():
            for future in queue:
                if not future.done():
                    future.cancel()
        self._pending.clear()


def _ids_payload(source_ids: Iterable[int] | None) -> dict[str, Any]:
    if source_ids is None:
        return {}
    return {PayloadKey.SOURCE_IDS: list(source_ids)}
