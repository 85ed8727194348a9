#!/usr/bin/env python3
"""Run the broker against a simulated platform and print snapshots.

A producer thread emits synthetic accelerometer, light and gyroscope
readings, plus an occasional location fix and LTE radio sample, through the
broker's thread-safe callbacks. A console client prints every snapshot.
Sinks configured through ``SENSORHUB_*`` variables (MQTT, HTTP) run too.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import random
import sys
import threading
import time
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pysensorhub import (  # noqa: E402
    ClientChannel,
    HttpSnapshotSink,
    HubConfig,
    HubError,
    MqttSnapshotSink,
    NullListener,
    ProviderStatus,
    ServiceBroker,
)

_SOURCES = {1: "Simulated Accelerometer", 4: "Simulated Gyroscope", 5: "Simulated Light"}


class _SimulatedLocation:
    def __init__(self) -> None:
        self.active = False

    def request_updates(self) -> None:
        self.active = True

    def stop_updates(self) -> None:
        self.active = False

    def provider_status(self) -> ProviderStatus:
        return ProviderStatus(enabled=True, sources="simulated")


class _SimulatedCellular:
    def __init__(self) -> None:
        self.active = False

    def start_updates(self) -> None:
        self.active = True

    def stop_updates(self) -> None:
        self.active = False


class _SimulatedPlatform:
    """Sensor source plus one producer thread feeding all simulated sources."""

    def __init__(self, rate_hz: float) -> None:
        self._period = 1.0 / rate_hz
        self._subscribed: set[int] = set()
        self.location = _SimulatedLocation()
        self.cellular = _SimulatedCellular()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.broker: ServiceBroker | None = None

    def discover(self) -> list[tuple[int, str]]:
        return list(_SOURCES.items())

    def subscribe(self, source_id: int) -> None:
        self._subscribed.add(source_id)

    def unsubscribe(self, source_id: int) -> None:
        self._subscribed.discard(source_id)

    def start(self) -> None:
        self._thread = threading.Thread(target=self._produce, name="simulated-platform", daemon=True)
        self._thread.start()

    def close(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()

    def _produce(self) -> None:
        tick = 0
        while not self._stop.wait(self._period):
            broker = self.broker
            if broker is None:
                continue
            now = time.monotonic_ns()
            phase = tick / 10.0
            try:
                for source_id in sorted(self._subscribed):
                    if source_id == 5:
                        values = [400.0 + 50.0 * math.sin(phase)]
                    else:
                        values = [random.gauss(0.0, 0.2) for _ in range(3)]
                    broker.on_reading(source_id, values, now)
                if self.location.active and tick % 20 == 0:
                    broker.on_location(48.137 + 0.001 * math.sin(phase), 11.575, int(time.time() * 1000))
                if self.cellular.active and tick % 30 == 0:
                    broker.on_signal_sample(13, {"rsrp": random.randint(-110, -80), "rsrq": -10, "rssnr": 12})
            except HubError:
                return
            tick += 1


class _Printer(NullListener):
    def __init__(self, pretty: bool) -> None:
        self._pretty = pretty

    def on_snapshot(self, document: dict[str, Any]) -> None:
        print(json.dumps(document, indent=4 if self._pretty else None))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulated pysensorhub collector.")
    parser.add_argument("--duration", type=int, default=10, help="Runtime in seconds.")
    parser.add_argument("--rate-hz", type=float, default=20.0, help="Producer rate per source.")
    parser.add_argument("--interval-ms", type=int, default=1000, help="Export interval in milliseconds.")
    parser.add_argument("--json", action="store_true", help="Pretty-print snapshot JSON.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> None:
    config = HubConfig.from_env()
    platform = _SimulatedPlatform(args.rate_hz)
    sinks: list[Any] = []

    async with ServiceBroker(config, sensors=platform, location=platform.location, cellular=platform.cellular) as broker:
        platform.broker = broker
        if config.mqtt_enabled:
            sinks.append(MqttSnapshotSink(broker))
        if config.http_endpoint:
            sinks.append(HttpSnapshotSink(broker))
        for sink in sinks:
            await sink.start()

        async with ClientChannel(broker, client_id=1, listener=_Printer(args.json)) as channel:
            await channel.set_user_context(publisher="simulate_hub", note="synthetic data")
            await channel.enable_sources()
            await channel.set_interval_timer(args.interval_ms, "ms")
            await channel.start_location_updates()
            await channel.start_cellular_updates()
            platform.start()
            try:
                await asyncio.sleep(args.duration)
            finally:
                platform.close()

        for sink in sinks:
            await sink.stop()


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130
    except HubError as exc:
        print(f"[simulate] failed: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
