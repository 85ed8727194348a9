"""Export rate policy.

Intervals arrive in caller-chosen units and are normalized to nanoseconds,
the unit of the producers' monotonic event clock. Every input is checked
against ``INT64_MAX // unit_factor`` before scaling so the stored threshold
always fits a signed 64-bit clock.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pysensorhub._constants import INT64_MAX, NANOS_PER_SECOND
from pysensorhub.exceptions import HubValidationError

_logger = logging.getLogger(__name__)


class IntervalUnit(StrEnum):
    SECONDS = "s"
    MILLISECONDS = "ms"
    MICROSECONDS = "us"
    NANOSECONDS = "ns"

    @property
    def factor(self) -> int:
        return _UNIT_FACTORS[self]


_UNIT_FACTORS: dict[IntervalUnit, int] = {
    IntervalUnit.SECONDS: NANOS_PER_SECOND,
    IntervalUnit.MILLISECONDS: 1_000_000,
    IntervalUnit.MICROSECONDS: 1_000,
    IntervalUnit.NANOSECONDS: 1,
}


def to_nanoseconds(duration: int, unit: IntervalUnit | str = IntervalUnit.SECONDS) -> int:
    """Validate and scale an interval.

    Raises
    ------
    HubValidationError
        When the unit is unknown, the duration is not a positive integer, or
        scaling would overflow the 64-bit nanosecond clock.
    """
    try:
        unit = IntervalUnit(unit)
    except ValueError as exc:
        raise HubValidationError(f"Unknown interval unit {unit!r}") from exc
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise HubValidationError(f"Interval must be an integer, got {type(duration).__name__}")
    if duration <= 0:
        raise HubValidationError(f"Invalid interval value {duration}: must be > 0")
    limit = INT64_MAX // unit.factor
    if duration > limit:
        raise HubValidationError(f"IntervalTimer({duration}{unit.value}) out of range: max {limit}{unit.value}")
    return duration * unit.factor


class RateController:
    """Gate how often a snapshot is exported.

    ``should_export`` is checked with each incoming reading's event time; a
    ``True`` answer obliges the caller to export and then call
    ``mark_exported`` with the same timestamp.
    """

    def __init__(self, interval_ns: int = NANOS_PER_SECOND) -> None:
        if interval_ns <= 0 or interval_ns > INT64_MAX:
            raise HubValidationError(f"Invalid interval {interval_ns}ns")
        self._interval_ns = interval_ns
        self._last_export_ns = 0

    @property
    def interval_ns(self) -> int:
        return self._interval_ns

    @property
    def last_export_ns(self) -> int:
        return self._last_export_ns

    def set_interval(self, duration: int, unit: IntervalUnit | str = IntervalUnit.SECONDS) -> int:
        """Change the threshold; invalid input leaves it untouched.

        Readings already buffered stay in the current window, which is now
        measured against the new threshold from the last export.
        """
        interval_ns = to_nanoseconds(duration, unit)
        _logger.debug("Export interval %sns -> %sns", self._interval_ns, interval_ns)
        self._interval_ns = interval_ns
        return interval_ns

    def should_export(self, event_ns: int) -> bool:
        return event_ns - self._last_export_ns >= self._interval_ns

    def mark_exported(self, event_ns: int) -> None:
        self._last_export_ns = event_ns
