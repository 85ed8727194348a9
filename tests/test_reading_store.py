from __future__ import annotations

from pysensorhub.models.reading import Reading
from pysensorhub.state.store import ReadingStore


def _reading(source_id: int, *values: float, timestamp: int = 0) -> Reading:
    return Reading(
        source_id=source_id,
        name=f"sensor-{source_id}",
        dimensionality=len(values),
        values=values,
        timestamp=timestamp,
    )


def _store(*ids: int) -> ReadingStore:
    store = ReadingStore()
    for source_id in ids:
        store.register_source(source_id, f"sensor-{source_id}")
        store.include_source(source_id)
    return store


def test_last_value_wins() -> None:
    store = _store(1)

    store.record_reading(_reading(1, 1.0, 2.0, 3.0, timestamp=1))
    store.record_reading(_reading(1, 4.0, 5.0, 6.0, timestamp=2))

    readings = store.active_readings()
    assert len(readings) == 1
    assert readings[0].values == (4.0, 5.0, 6.0)


def test_register_is_idempotent_upsert() -> None:
    store = _store(5)
    store.record_reading(_reading(5, 1.0))

    store.register_source(5, "renamed")

    assert len(store) == 1
    assert store.source_name(5) == "renamed"
    assert store.is_active(5)
    assert store.latest(5) is not None


def test_unknown_and_inactive_sources_ignored() -> None:
    store = _store(1)
    store.register_source(2, "inactive")

    assert store.record_reading(_reading(99, 1.0)) is False
    assert store.record_reading(_reading(2, 1.0)) is False
    assert store.active_readings() == []


def test_exclude_keeps_value_and_stops_updates() -> None:
    store = _store(1)
    store.record_reading(_reading(1, 1.0))

    assert store.exclude_source(1) is True
    assert store.record_reading(_reading(1, 2.0)) is False

    assert store.latest(1) is not None
    assert store.latest(1).values == (1.0,)  # type: ignore[union-attr]
    assert store.active_readings() == []

    store.include_source(1)
    assert [r.values for r in store.active_readings()] == [(1.0,)]


def test_toggle_unknown_id_returns_false() -> None:
    store = ReadingStore()
    assert store.include_source(42) is False
    assert store.exclude_source(42) is False


def test_listing_is_sorted_by_id() -> None:
    store = ReadingStore()
    for source_id in (9, 1, 4):
        store.register_source(source_id, f"s{source_id}")
    store.include_source(9)
    store.include_source(1)

    assert store.list_active_source_ids() == [1, 9]
    assert [(s.source_id, s.name) for s in store.list_sources()] == [(1, "s1"), (4, "s4"), (9, "s9")]


def test_active_readings_ascending() -> None:
    store = _store(3, 1, 2)
    for source_id in (3, 1, 2):
        store.record_reading(_reading(source_id, float(source_id)))

    assert [r.source_id for r in store.active_readings()] == [1, 2, 3]


def test_clear_keeps_names_and_flags() -> None:
    store = _store(1)
    store.record_reading(_reading(1, 1.0))

    store.clear_readings()

    assert not store.has_pending_readings()
    assert store.is_active(1)
    assert store.source_name(1) == "sensor-1"
