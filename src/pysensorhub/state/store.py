"""Per-source latest-value cache.

Holds, per source id, the display name, the active flag and at most one
reading. The active flag is independent of the stored value: excluding a
source keeps its last value but stops further updates and export inclusion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pysensorhub.models.reading import Reading, SourceInfo

_logger = logging.getLogger(__name__)


@dataclass
class _SourceEntry:
    name: str
    active: bool = False
    latest: Reading | None = None


class ReadingStore:
    """In-memory cache of the latest reading per source.

    Deterministic: iteration is always in ascending source id order.
    """

    def __init__(self) -> None:
        self._sources: dict[int, _SourceEntry] = {}

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def register_source(self, source_id: int, name: str) -> None:
        """Upsert a discovered source. Re-registering only renames it."""
        entry = self._sources.get(source_id)
        if entry is None:
            self._sources[source_id] = _SourceEntry(name=name)
            _logger.debug("Registered source id=%s name=%s", source_id, name)
            return
        entry.name = name

    def source_name(self, source_id: int) -> str | None:
        entry = self._sources.get(source_id)
        return entry.name if entry is not None else None

    def is_active(self, source_id: int) -> bool:
        entry = self._sources.get(source_id)
        return entry is not None and entry.active

    def include_source(self, source_id: int) -> bool:
        """Mark a source active. Returns ``False`` for unknown ids."""
        entry = self._sources.get(source_id)
        if entry is None:
            return False
        entry.active = True
        return True

    def exclude_source(self, source_id: int) -> bool:
        """Mark a source inactive, keeping its name and last value."""
        entry = self._sources.get(source_id)
        if entry is None:
            return False
        entry.active = False
        return True

    def record_reading(self, reading: Reading) -> bool:
        """Overwrite the latest reading of an active source.

        Readings of unknown or inactive sources are dropped and ``False`` is
        returned.
        """
        entry = self._sources.get(reading.source_id)
        if entry is None:
            _logger.debug("Dropping reading of unknown source id=%s", reading.source_id)
            return False
        if not entry.active:
            return False
        entry.latest = reading
        return True

    def latest(self, source_id: int) -> Reading | None:
        entry = self._sources.get(source_id)
        return entry.latest if entry is not None else None

    def list_source_ids(self) -> list[int]:
        return sorted(self._sources)

    def list_sources(self) -> list[SourceInfo]:
        return [
            SourceInfo(source_id=source_id, name=entry.name, active=entry.active)
            for source_id, entry in sorted(self._sources.items())
        ]

    def list_active_source_ids(self) -> list[int]:
        return sorted(source_id for source_id, entry in self._sources.items() if entry.active)

    def active_readings(self) -> list[Reading]:
        """Latest readings of active sources, ascending by source id."""
        readings: list[Reading] = []
        for source_id in self.list_active_source_ids():
            latest = self._sources[source_id].latest
            if latest is not None:
                readings.append(latest)
        return readings

    def has_pending_readings(self) -> bool:
        return any(entry.active and entry.latest is not None for entry in self._sources.values())

    def clear_readings(self) -> None:
        """Drop every cached value; names and active flags stay."""
        for entry in self._sources.values():
            entry.latest = None
