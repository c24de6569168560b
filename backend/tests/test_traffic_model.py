"""Tests for TrafficModel."""

import random

from fleet_eta.core.geo import Coordinate
from fleet_eta.core.traffic_model import TrafficLevel, TrafficModel, TrafficZone

SF = Coordinate(37.7749, -122.4194)


def test_seed_zones():
    model = TrafficModel()
    zones = model.zones()
    assert len(zones) == 3
    assert zones[0].center == SF
    assert zones[0].radius_m == 5000
    assert zones[0].level == TrafficLevel.HEAVY
    assert model.speed_factor == 1.0


def test_speed_factor_bounds():
    model = TrafficModel(rng=random.Random(42))
    for _ in range(500):
        factor = model.tick()
        assert 0.5 * 0.9 <= factor <= 1.0 * 1.1
        assert model.speed_factor == factor


def test_zero_zones_factor_is_jittered_default():
    model = TrafficModel(zones=[], rng=random.Random(7))
    for _ in range(200):
        factor = model.tick()
        assert 0.81 <= factor <= 0.99


def test_tick_only_changes_levels():
    model = TrafficModel(rng=random.Random(1))
    before = model.zones()
    for _ in range(20):
        model.tick()
    after = model.zones()
    assert [(z.center, z.radius_m) for z in after] == [(z.center, z.radius_m) for z in before]


def test_level_inside_and_outside_zone():
    model = TrafficModel(zones=[TrafficZone(SF, 5000, TrafficLevel.HEAVY)])
    assert model.level_at(SF) == TrafficLevel.HEAVY

    # ~10 km north, outside the 5 km radius
    far = Coordinate(SF.lat + 0.09, SF.lon)
    assert model.level_at(far) == TrafficLevel.MODERATE


def test_level_uses_first_matching_zone():
    model = TrafficModel(zones=[
        TrafficZone(SF, 1000, TrafficLevel.LIGHT),
        TrafficZone(SF, 5000, TrafficLevel.HEAVY),
    ])
    assert model.level_at(SF) == TrafficLevel.LIGHT


def test_explicit_zones_are_copied():
    zone = TrafficZone(SF, 5000, TrafficLevel.HEAVY)
    model = TrafficModel(zones=[zone])
    zone.level = TrafficLevel.LIGHT
    assert model.level_at(SF) == TrafficLevel.HEAVY


def test_random_level_weights():
    model = TrafficModel(rng=random.Random(3))
    draws = [model.random_level() for _ in range(5000)]
    share = {lvl: draws.count(lvl) / len(draws) for lvl in TrafficLevel}
    assert 0.15 < share[TrafficLevel.LIGHT] < 0.25
    assert 0.45 < share[TrafficLevel.MODERATE] < 0.55
    assert 0.25 < share[TrafficLevel.HEAVY] < 0.35
