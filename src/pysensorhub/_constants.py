"""Internal constants shared across the library."""

#: Highest message-set version this broker speaks. Version 1 is the core
#: command set; version 2 adds location and cellular update control.
PROTOCOL_VERSION = 2

#: Largest value of the signed 64-bit nanosecond clock used internally.
INT64_MAX = 2**63 - 1

#: Platform sentinel for "field not available" in raw radio samples.
CELL_INFO_UNAVAILABLE = 2**31 - 1

NANOS_PER_SECOND = 1_000_000_000

#: Number of decimals used for latitude/longitude in snapshot documents.
COORDINATE_DECIMALS = 6

LATITUDE_RANGE: tuple[float, float] = (-90.0, 90.0)
LONGITUDE_RANGE: tuple[float, float] = (-180.0, 180.0)

#: Result code carried by a successful acknowledgement.
RESULT_OK = 0

#: Last millisecond of 9999-12-31 UTC, the largest fix time a snapshot can render.
MAX_EPOCH_MS = 253_402_300_799_999
