"""Tests for EtaSnapshotStore."""

import datetime

from fleet_eta.core.snapshot_store import EtaRecord, EtaSnapshotStore
from fleet_eta.core.traffic_model import TrafficLevel

T0 = datetime.datetime(2026, 3, 2, 9, 0, tzinfo=datetime.timezone.utc)


def make_record(trip_id="t1", updated=T0, distance=1500.0) -> EtaRecord:
    return EtaRecord(
        trip_id=trip_id,
        expected_arrival_time=T0 + datetime.timedelta(minutes=20),
        remaining_distance_m=distance,
        traffic_condition=TrafficLevel.MODERATE,
        delay_minutes=0,
        last_updated=updated,
    )


def test_set_replaces_under_same_key():
    store = EtaSnapshotStore()
    store.set("t1", make_record(distance=1500))
    store.set("t1", make_record(distance=900, updated=T0 + datetime.timedelta(seconds=5)))
    assert len(store) == 1
    assert store.get("t1").remaining_distance_m == 900


def test_last_updated_never_goes_backwards():
    store = EtaSnapshotStore()
    later = T0 + datetime.timedelta(minutes=1)
    store.set("t1", make_record(updated=later))
    stored = store.set("t1", make_record(updated=T0, distance=700))
    assert stored.last_updated == later
    assert store.get("t1").remaining_distance_m == 700


def test_get_returns_copy():
    store = EtaSnapshotStore()
    store.set("t1", make_record())
    record = store.get("t1")
    record.delay_minutes = 99
    assert store.get("t1").delay_minutes == 0


def test_remove_and_keys():
    store = EtaSnapshotStore()
    store.set("a", make_record("a"))
    store.set("b", make_record("b"))
    assert sorted(store.keys()) == ["a", "b"]
    assert store.remove("a").trip_id == "a"
    assert store.remove("a") is None
    assert "a" not in store
    assert list(store.snapshot()) == ["b"]


def test_formatting():
    record = make_record(distance=1549.0)
    assert record.formatted_distance == "1.5 km"
    assert make_record(distance=999.9).formatted_distance == "999 m"
    assert record.formatted_eta == "09:20"
