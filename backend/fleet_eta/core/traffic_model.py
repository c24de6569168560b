"""Simulated traffic zones and the global speed factor derived from them.

A fixed handful of circular zones each carry a congestion level. Every tick
some zones change level at random and the zones are folded into one speed
multiplier used by the ETA engine.
"""

import enum
import logging
import random
import threading
from dataclasses import dataclass, replace

from fleet_eta.core.geo import Coordinate, haversine_m

logger = logging.getLogger(__name__)

# Chance that a zone's congestion level is redrawn on each tick
LEVEL_CHANGE_PROBABILITY = 0.3
# Factor used when there are no zones to average over
DEFAULT_SPEED_FACTOR = 0.9
JITTER_RANGE = (0.9, 1.1)


class TrafficLevel(str, enum.Enum):
    LIGHT = "Light"
    MODERATE = "Moderate"
    HEAVY = "Heavy"

    @property
    def speed_factor(self) -> float:
        return _LEVEL_SPEED_FACTORS[self]


_LEVEL_SPEED_FACTORS = {
    TrafficLevel.LIGHT: 1.0,
    TrafficLevel.MODERATE: 0.8,
    TrafficLevel.HEAVY: 0.5,
}


@dataclass
class TrafficZone:
    center: Coordinate
    radius_m: float
    level: TrafficLevel

    def contains(self, coordinate: Coordinate) -> bool:
        return haversine_m(self.center, coordinate) <= self.radius_m


def _seed_zones() -> list[TrafficZone]:
    """Zones around downtown San Francisco."""
    return [
        TrafficZone(Coordinate(37.7749, -122.4194), 5000, TrafficLevel.HEAVY),
        TrafficZone(Coordinate(37.7800, -122.4300), 3000, TrafficLevel.MODERATE),
        TrafficZone(Coordinate(37.7650, -122.4050), 2000, TrafficLevel.LIGHT),
    ]


class TrafficModel:
    """Owns the traffic zones and the speed factor derived from them."""

    def __init__(
        self,
        zones: list[TrafficZone] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._zones: list[TrafficZone] = []
        # Nominal speed until the first tick
        self._speed_factor = 1.0
        if zones is None:
            self.initialize()
        else:
            self._zones = [replace(z) for z in zones]

    def initialize(self) -> None:
        """Reset zones to the built-in seed set."""
        with self._lock:
            self._zones = _seed_zones()

    @property
    def speed_factor(self) -> float:
        with self._lock:
            return self._speed_factor

    def zones(self) -> list[TrafficZone]:
        with self._lock:
            return [replace(z) for z in self._zones]

    def tick(self) -> float:
        """Randomly shift zone congestion and recompute the speed factor."""
        with self._lock:
            zones = [replace(z) for z in self._zones]
            for zone in zones:
                if self._rng.random() < LEVEL_CHANGE_PROBABILITY:
                    zone.level = self._rng.choice(list(TrafficLevel))

            if zones:
                factor = sum(z.level.speed_factor for z in zones) / len(zones)
            else:
                factor = DEFAULT_SPEED_FACTOR
            factor *= self._rng.uniform(*JITTER_RANGE)

            self._zones = zones
            self._speed_factor = factor

        logger.debug(
            "Traffic tick: factor=%.3f levels=%s",
            factor, [z.level.value for z in zones],
        )
        return factor

    def level_at(self, coordinate: Coordinate) -> TrafficLevel:
        """Level of the first zone covering the coordinate, Moderate elsewhere."""
        with self._lock:
            for zone in self._zones:
                if zone.contains(coordinate):
                    return zone.level
        return TrafficLevel.MODERATE

    def random_level(self) -> TrafficLevel:
        """Weighted draw used when perturbing existing estimates (20/50/30)."""
        r = self._rng.random()
        if r < 0.2:
            return TrafficLevel.LIGHT
        if r < 0.7:
            return TrafficLevel.MODERATE
        return TrafficLevel.HEAVY
