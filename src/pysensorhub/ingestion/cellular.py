"""Cellular radio sample parsing.

The platform hands over a network-type code plus a flat map of raw signal
fields. Which fields mean something depends on the radio-access technology,
so parsing first resolves the technology and then keeps only that
technology's fields. Fields holding the platform "unavailable" sentinel or
a non-numeric value are dropped, never emitted as null.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pysensorhub._constants import CELL_INFO_UNAVAILABLE
from pysensorhub.ingestion.normalize import safe_int
from pysensorhub.models._base import to_iso8601
from pysensorhub.models.context import CellularContext

_logger = logging.getLogger(__name__)


class RadioAccessTechnology(StrEnum):
    GSM = "gsm"
    CDMA = "cdma"
    EVDO = "evdo"
    TD_SCDMA = "td-scdma"
    WCDMA = "w-cdma"
    LTE = "lte"
    NR = "nr"
    OTHERS = "others"


class NetworkType(StrEnum):
    """Human readable names of the platform network-type codes."""

    UNKNOWN = "unknown"
    GPRS = "gprs"
    EDGE = "edge"
    UMTS = "umts"
    CDMA = "cdma"
    EVDO_0 = "evdo_0"
    EVDO_A = "evdo_a"
    ONE_X_RTT = "1xrtt"
    HSDPA = "hsdpa"
    HSUPA = "hsupa"
    HSPA = "hspa"
    IDEN = "iden"
    EVDO_B = "evdo_b"
    LTE = "lte"
    EHRPD = "ehrpd"
    HSPAP = "hspap"
    GSM = "gsm"
    TD_SCDMA = "td_scdma"
    IWLAN = "iwlan"
    NR = "nr"


_NETWORK_TYPE_CODES: dict[int, tuple[NetworkType, RadioAccessTechnology]] = {
    0: (NetworkType.UNKNOWN, RadioAccessTechnology.OTHERS),
    1: (NetworkType.GPRS, RadioAccessTechnology.GSM),
    2: (NetworkType.EDGE, RadioAccessTechnology.GSM),
    3: (NetworkType.UMTS, RadioAccessTechnology.WCDMA),
    4: (NetworkType.CDMA, RadioAccessTechnology.CDMA),
    5: (NetworkType.EVDO_0, RadioAccessTechnology.EVDO),
    6: (NetworkType.EVDO_A, RadioAccessTechnology.EVDO),
    7: (NetworkType.ONE_X_RTT, RadioAccessTechnology.CDMA),
    8: (NetworkType.HSDPA, RadioAccessTechnology.WCDMA),
    9: (NetworkType.HSUPA, RadioAccessTechnology.WCDMA),
    10: (NetworkType.HSPA, RadioAccessTechnology.WCDMA),
    11: (NetworkType.IDEN, RadioAccessTechnology.OTHERS),
    12: (NetworkType.EVDO_B, RadioAccessTechnology.EVDO),
    13: (NetworkType.LTE, RadioAccessTechnology.LTE),
    14: (NetworkType.EHRPD, RadioAccessTechnology.EVDO),
    15: (NetworkType.HSPAP, RadioAccessTechnology.WCDMA),
    16: (NetworkType.GSM, RadioAccessTechnology.GSM),
    17: (NetworkType.TD_SCDMA, RadioAccessTechnology.TD_SCDMA),
    18: (NetworkType.IWLAN, RadioAccessTechnology.OTHERS),
    20: (NetworkType.NR, RadioAccessTechnology.NR),
}

# (raw sample key, document key) per technology, in document order.
_RAT_FIELDS: dict[RadioAccessTechnology, tuple[tuple[str, str], ...]] = {
    RadioAccessTechnology.GSM: (("rssi", "rssi"), ("ber", "ber")),
    RadioAccessTechnology.CDMA: (("rssi", "rssi"), ("ecio", "ecio")),
    RadioAccessTechnology.EVDO: (("rssi", "rssi"), ("ecio", "ecio"), ("snr", "snr")),
    RadioAccessTechnology.TD_SCDMA: (("rscp", "rscp"),),
    RadioAccessTechnology.WCDMA: (("rscp", "rscp"), ("ecno", "ecno")),
    RadioAccessTechnology.LTE: (
        ("rssi", "rssi"),
        ("rsrp", "rsrp"),
        ("rsrq", "rsrq"),
        ("rssnr", "rssnr"),
        ("cqi", "cqi"),
        ("cqi_table_index", "cqiTableIndex"),
        ("ta", "ta"),
    ),
    RadioAccessTechnology.NR: (
        ("ss_rsrp", "ssRsrp"),
        ("ss_rsrq", "ssRsrq"),
        ("ss_sinr", "ssSinr"),
    ),
    RadioAccessTechnology.OTHERS: (),
}


def network_type_name(network_type: int) -> NetworkType:
    entry = _NETWORK_TYPE_CODES.get(network_type)
    return entry[0] if entry is not None else NetworkType.UNKNOWN


def radio_access_technology(network_type: int) -> RadioAccessTechnology:
    entry = _NETWORK_TYPE_CODES.get(network_type)
    if entry is None:
        _logger.debug("Unmapped network type %s treated as others", network_type)
        return RadioAccessTechnology.OTHERS
    return entry[1]


def _field_value(raw_sample: Mapping[str, Any], raw_key: str, doc_key: str) -> int | None:
    value = raw_sample.get(raw_key)
    if value is None and doc_key != raw_key:
        value = raw_sample.get(doc_key)
    parsed = safe_int(value)
    if parsed is None or parsed == CELL_INFO_UNAVAILABLE:
        return None
    return parsed


def parse_signal_fields(network_type: int, raw_sample: Mapping[str, Any]) -> tuple[RadioAccessTechnology, dict[str, int]]:
    """Pick the fields relevant to the sample's technology.

    Raw keys are snake_case; the camelCase document key is accepted as an
    alias.
    """
    rat = radio_access_technology(network_type)
    fields: dict[str, int] = {}
    for raw_key, doc_key in _RAT_FIELDS[rat]:
        value = _field_value(raw_sample, raw_key, doc_key)
        if value is not None:
            fields[doc_key] = value
    return rat, fields


def build_cellular_block(context: CellularContext) -> dict[str, dict[str, Any]]:
    """Render the ``device.cellular`` block for one sample."""
    rat, fields = parse_signal_fields(context.network_type, context.raw_sample)
    block: dict[str, Any] = dict(fields)
    block["timestamp"] = to_iso8601(context.timestamp)
    return {rat.value: block}
