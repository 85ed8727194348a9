from __future__ import annotations

import math

import pytest

from pysensorhub.exceptions import HubValidationError
from pysensorhub.state.context import AuxiliaryContextStore


def test_blocks_start_empty() -> None:
    context = AuxiliaryContextStore()
    assert context.location is None
    assert context.user.is_empty
    assert context.cellular is None


def test_location_out_of_range_leaves_state_untouched() -> None:
    context = AuxiliaryContextStore()
    context.set_location(48.1, 11.5, 1_700_000_000_000)

    with pytest.raises(HubValidationError, match="Latitude"):
        context.set_location(91.0, 0.0, 1)
    with pytest.raises(HubValidationError, match="Longitude"):
        context.set_location(0.0, -180.5)
    with pytest.raises(HubValidationError):
        context.set_location(math.nan, 0.0)

    assert context.location is not None
    assert context.location.latitude == 48.1
    assert context.location.utc_time == 1_700_000_000_000


def test_fix_time_past_year_9999_rejected() -> None:
    context = AuxiliaryContextStore()
    context.set_location(48.1, 11.5, 253_402_300_799_999)

    with pytest.raises(HubValidationError, match="9999"):
        context.set_location(35.0, 139.0, 10**18)

    assert context.location is not None
    assert context.location.latitude == 48.1


def test_range_bounds_are_inclusive() -> None:
    context = AuxiliaryContextStore()
    context.set_location(-90.0, 180.0)
    assert context.location is not None


def test_reset_location_is_unconditional() -> None:
    context = AuxiliaryContextStore()
    context.reset_location()
    context.set_location(1.0, 2.0)
    context.reset_location()
    assert context.location is None


def test_user_fields_update_independently() -> None:
    context = AuxiliaryContextStore()
    context.set_user(publisher="alice")
    context.set_user(note="bench run")

    assert context.user.publisher == "alice"
    assert context.user.note == "bench run"

    context.set_user(publisher="bob")
    assert context.user.note == "bench run"


def test_user_update_needs_a_field() -> None:
    context = AuxiliaryContextStore()
    with pytest.raises(HubValidationError):
        context.set_user()


def test_cellular_sample_replaced_and_cleared() -> None:
    context = AuxiliaryContextStore()
    context.set_cellular(13, {"rsrp": -90})
    context.set_cellular(20, {"ss_rsrp": -80})

    assert context.cellular is not None
    assert context.cellular.network_type == 20

    context.clear_cellular()
    assert context.cellular is None
