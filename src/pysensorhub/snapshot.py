"""Snapshot composition.

Turns the reading cache and the auxiliary context into one immutable
:class:`~pysensorhub.models.snapshot.Snapshot`. Building never mutates state;
:meth:`SnapshotBuilder.export` is build followed by clearing the reading
cache.
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime

from pysensorhub._constants import COORDINATE_DECIMALS
from pysensorhub.config import DeviceProfile
from pysensorhub.ingestion.cellular import build_cellular_block
from pysensorhub.ingestion.sensors import sensor_dimensionality, sensor_type_name
from pysensorhub.models._base import to_iso8601
from pysensorhub.models.context import LocationContext
from pysensorhub.models.reading import Reading
from pysensorhub.models.snapshot import LocationBlock, SensorEntry, Snapshot
from pysensorhub.state.context import AuxiliaryContextStore
from pysensorhub.state.store import ReadingStore

_logger = logging.getLogger(__name__)


def _format_coordinate(value: float) -> str:
    return f"{value:.{COORDINATE_DECIMALS}f}"


def location_block(location: LocationContext | None) -> LocationBlock | None:
    """Render the location block, or ``None`` without a usable fix."""
    if location is None:
        return None
    if math.isnan(location.latitude) or math.isnan(location.longitude):
        return None
    timestamp = None
    if location.utc_time >= 0:
        try:
            timestamp = to_iso8601(datetime.fromtimestamp(location.utc_time / 1000.0, tz=UTC))
        except (ValueError, OverflowError, OSError):
            _logger.warning("Location time %s ms not representable; omitting timestamp", location.utc_time)
    return LocationBlock(
        latitude=_format_coordinate(location.latitude),
        longitude=_format_coordinate(location.longitude),
        timestamp=timestamp,
    )


def sensor_entry(reading: Reading) -> SensorEntry:
    """Render one reading with the number of values its type carries."""
    dimensionality = sensor_dimensionality(reading.source_id)
    if dimensionality is None:
        _logger.warning(
            "Unknown sensor type %s (%s); exporting as scalar",
            reading.source_id,
            reading.name,
        )
        dimensionality = 1
    if len(reading.values) < dimensionality:
        _logger.warning(
            "Reading of %s carries %d values, expected %d",
            reading.name,
            len(reading.values),
            dimensionality,
        )
    values = reading.values[:dimensionality]
    entry_kwargs = {
        "type": sensor_type_name(reading.source_id),
        "name": reading.name,
        "id": reading.source_id if reading.source_id > 0 else None,
        "timestamp": to_iso8601(reading.captured_at),
    }
    if dimensionality == 1:
        return SensorEntry(value=values[0], **entry_kwargs)
    return SensorEntry(values=values, **entry_kwargs)


class SnapshotBuilder:
    """Compose snapshot documents from the broker's state."""

    def __init__(self, device: DeviceProfile, store: ReadingStore, context: AuxiliaryContextStore) -> None:
        self._device = device
        self._store = store
        self._context = context

    def build(self) -> Snapshot:
        user = self._context.user
        userinfo = user.model_dump(exclude_none=True) if not user.is_empty else None
        cellular = self._context.cellular
        return Snapshot(
            sysinfo=self._device.as_sysinfo(),
            userinfo=userinfo,
            location=location_block(self._context.location),
            cellular=build_cellular_block(cellular) if cellular is not None else None,
            sensors=tuple(sensor_entry(reading) for reading in self._store.active_readings()),
        )

    def export(self) -> Snapshot:
        """Build a snapshot and clear the reading cache."""
        snapshot = self.build()
        self._store.clear_readings()
        _logger.debug("Exported snapshot with %d sensor entries", len(snapshot.sensors))
        return snapshot
