from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pysensorhub.broker import ServiceBroker
from pysensorhub.channel import ClientChannel, NullListener, ReplyChannel
from pysensorhub.exceptions import HubChannelError, HubError, HubValidationError
from pysensorhub.models.message import Message, MessageType


class _Explodes(NullListener):
    def __init__(self) -> None:
        self.acks: list[MessageType] = []

    def on_ack(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        self.acks.append(message_type)
        raise RuntimeError("listener bug")


def test_reply_channel_rejects_after_close() -> None:
    channel = ReplyChannel(5)
    channel.close()

    with pytest.raises(HubChannelError) as excinfo:
        channel.send(Message.ack(MessageType.REGISTER_CLIENT))

    assert excinfo.value.client_id == 5
    assert channel.closed


@pytest.mark.asyncio
async def test_reply_channel_full_raises() -> None:
    channel = ReplyChannel(6, maxsize=1)
    channel.send(Message.ack(MessageType.REGISTER_CLIENT))

    with pytest.raises(HubChannelError, match="full"):
        channel.send(Message.ack(MessageType.UNREGISTER_CLIENT))

    received = await channel.receive()
    assert received.type == MessageType.REGISTER_CLIENT


@pytest.mark.asyncio
async def test_futures_resolve_in_fifo_order_per_type() -> None:
    async with ServiceBroker() as broker:
        channel = ClientChannel(broker, 1)
        await channel.register()

        first = channel.set_interval_timer(2)
        second = channel.set_interval_timer(0)
        third = channel.set_interval_timer(3, "ms")

        results = await asyncio.gather(first, second, third, return_exceptions=True)

        assert results[0]["interval"] == 2
        assert isinstance(results[1], HubValidationError)
        assert results[2]["interval_unit"] == "ms"
        assert broker.rate.interval_ns == 3_000_000
        assert channel.pending_count == 0
        await channel.close()


@pytest.mark.asyncio
async def test_listener_failure_does_not_break_receiving() -> None:
    async with ServiceBroker() as broker:
        listener = _Explodes()
        channel = ClientChannel(broker, 1, listener)

        await channel.register()
        await channel.reset_location_context()

        assert listener.acks == [MessageType.REGISTER_CLIENT, MessageType.RESET_LOCATION]
        await channel.close()


@pytest.mark.asyncio
async def test_context_manager_registers_and_unregisters() -> None:
    async with ServiceBroker() as broker:
        async with ClientChannel(broker, 8) as channel:
            assert broker.registered_client_ids == [8]
        assert broker.registered_client_ids == []
        assert channel.reply_channel.closed


@pytest.mark.asyncio
async def test_close_cancels_pending_and_blocks_new_commands() -> None:
    async with ServiceBroker() as broker:
        channel = ClientChannel(broker, 2)
        await channel.register()
        await broker.flush()

        pending = channel.reset_location_context()
        channel.reply_channel.close()
        await channel.close()

        assert pending.cancelled()
        with pytest.raises(HubChannelError):
            channel.register()


@pytest.mark.asyncio
async def test_commands_fail_when_broker_not_running() -> None:
    broker = ServiceBroker()
    channel = ClientChannel(broker, 1)

    future = channel.register()

    with pytest.raises(HubError, match="not running"):
        await future
    await channel.close()
