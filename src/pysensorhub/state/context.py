"""Auxiliary context: location, user metadata and the latest radio sample."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pysensorhub._constants import MAX_EPOCH_MS
from pysensorhub.exceptions import HubValidationError
from pysensorhub.models._base import utcnow
from pysensorhub.models.context import CellularContext, LocationContext, UserContext, coordinate_problem

_logger = logging.getLogger(__name__)


class AuxiliaryContextStore:
    """Context merged into every snapshot.

    Each block is independently optional. Setters validate first and only
    then replace state, so a rejected update never leaves a partial change.
    """

    def __init__(self) -> None:
        self._location: LocationContext | None = None
        self._user = UserContext()
        self._cellular: CellularContext | None = None

    @property
    def location(self) -> LocationContext | None:
        return self._location

    @property
    def user(self) -> UserContext:
        return self._user

    @property
    def cellular(self) -> CellularContext | None:
        return self._cellular

    def set_location(self, latitude: float, longitude: float, utc_time: int = -1) -> LocationContext:
        problem = coordinate_problem(latitude, longitude)
        if problem is not None:
            raise HubValidationError(problem)
        if utc_time > MAX_EPOCH_MS:
            raise HubValidationError(f"Location time {utc_time} ms is past year 9999")
        self._location = LocationContext(latitude=latitude, longitude=longitude, utc_time=utc_time)
        return self._location

    def reset_location(self) -> None:
        self._location = None

    def set_user(self, publisher: str | None = None, note: str | None = None) -> UserContext:
        """Update the given fields; ``None`` leaves a field unchanged."""
        if publisher is None and note is None:
            raise HubValidationError("User data needs a publisher or a note")
        updates: dict[str, str] = {}
        if publisher is not None:
            updates["publisher"] = publisher
        if note is not None:
            updates["note"] = note
        self._user = self._user.model_copy(update=updates)
        return self._user

    def set_cellular(
        self,
        network_type: int,
        raw_sample: dict[str, Any],
        timestamp: datetime | None = None,
    ) -> CellularContext:
        self._cellular = CellularContext(
            network_type=network_type,
            raw_sample=dict(raw_sample),
            timestamp=timestamp or utcnow(),
        )
        return self._cellular

    def clear_cellular(self) -> None:
        self._cellular = None
