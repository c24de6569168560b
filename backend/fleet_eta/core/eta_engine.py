"""Periodic ETA engine: traffic ticks plus on-demand per-trip estimates.

Everything that mutates engine state runs on the asyncio event loop: the
scheduled tick is a coroutine (so APScheduler's asyncio executor runs it on
the loop rather than in a thread) and compute_eta writes its record in one
synchronous step after the geocoding await. The store and traffic model
still lock internally for readers on other threads.
"""

import datetime
import logging
import math
import random
from collections.abc import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from fleet_eta.config import settings
from fleet_eta.core.broadcaster import Broadcaster
from fleet_eta.core.errors import GeocodeError
from fleet_eta.core.geo import Coordinate, haversine_m
from fleet_eta.core.geocoder import Geocoder
from fleet_eta.core.scheduler import add_tick_job, create_scheduler
from fleet_eta.core.snapshot_store import EtaRecord, EtaSnapshotStore
from fleet_eta.core.traffic_model import TrafficModel
from fleet_eta.core.trips import Trip, TripLookup
from fleet_eta.schemas.eta import EtaInfo

logger = logging.getLogger(__name__)

# Lower bound on the speed factor so adjusted speed stays positive
MIN_SPEED_FACTOR = 0.05
# Random shift applied to tracked arrivals on each tick (seconds)
PERTURB_RANGE_S = (-180.0, 120.0)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _as_utc(dt: datetime.datetime) -> datetime.datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def delay_minutes(
    expected_arrival: datetime.datetime,
    scheduled_end: datetime.datetime | None,
) -> int:
    """Whole minutes late against the schedule, never negative."""
    if scheduled_end is None:
        return 0
    late_s = (_as_utc(expected_arrival) - _as_utc(scheduled_end)).total_seconds()
    return max(0, math.floor(late_s / 60))


class EtaEngine:
    """Keeps per-trip ETAs fresh against simulated traffic."""

    def __init__(
        self,
        traffic: TrafficModel,
        store: EtaSnapshotStore,
        geocoder: Geocoder,
        trips: TripLookup,
        broadcaster: Broadcaster | None = None,
        scheduler: AsyncIOScheduler | None = None,
        interval_seconds: float | None = None,
        base_speed_mps: float | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self.traffic = traffic
        self.store = store
        self.geocoder = geocoder
        self.trips = trips
        self.broadcaster = broadcaster
        self.scheduler = scheduler or create_scheduler()
        self.interval_seconds = (
            settings.eta_update_interval_seconds if interval_seconds is None else interval_seconds
        )
        self.base_speed_mps = settings.base_speed_mps if base_speed_mps is None else base_speed_mps
        self._rng = rng or random.Random()
        self._clock = clock
        self._job = None
        self.tick_count = 0
        # Geocoding round-trips currently awaited by compute_eta
        self._pending = 0

    # Lifecycle

    @property
    def is_running(self) -> bool:
        return self._job is not None

    @property
    def speed_factor(self) -> float:
        return self.traffic.speed_factor

    @property
    def pending(self) -> int:
        return self._pending

    def start(self) -> None:
        """Begin periodic ticking and refresh once right away.

        Must be called from a running event loop. A second call while
        running is a no-op.
        """
        if self._job is not None:
            return
        if not self.scheduler.running:
            self.scheduler.start()
        self._job = add_tick_job(self.scheduler, self.tick, self.interval_seconds)
        logger.info("ETA engine started - ticking every %ss", self.interval_seconds)
        self._run_tick()

    def stop(self) -> None:
        """Cancel periodic ticking. Safe to call when not running."""
        if self._job is None:
            return
        job, self._job = self._job, None
        if self.scheduler.get_job(job.id) is not None:
            job.remove()
        logger.info("ETA engine stopped after %d ticks", self.tick_count)

    # Periodic path

    async def tick(self) -> None:
        """One recomputation cycle: traffic, tracked ETAs, broadcast."""
        self._run_tick()
        await self._publish()

    def _run_tick(self) -> None:
        factor = self.traffic.tick()
        perturbed = self.recompute_all()
        self.tick_count += 1
        logger.debug(
            "Tick %d: speed factor %.3f, %d ETAs perturbed",
            self.tick_count, factor, perturbed,
        )

    def recompute_all(self) -> int:
        """Nudge every tracked ETA to follow changing traffic.

        Arrival shifts by a random offset and the destination level is
        redrawn; distance is not recomputed and no geocoding happens. Delay
        is re-derived only for trips the lookup still knows about.
        """
        now = self._clock()
        count = 0
        for trip_id in self.store.keys():
            record = self.store.get(trip_id)
            if record is None:
                # Removed since keys() was taken
                continue

            shift = self._rng.uniform(*PERTURB_RANGE_S)
            record.expected_arrival_time += datetime.timedelta(seconds=shift)
            record.traffic_condition = self.traffic.random_level()
            record.last_updated = now

            trip = self.trips.get_trip(trip_id)
            if trip is None:
                logger.debug("Trip %s no longer known, keeping delay", trip_id)
            elif trip.scheduled_end_time is not None:
                record.delay_minutes = delay_minutes(
                    record.expected_arrival_time, trip.scheduled_end_time,
                )

            self.store.set(trip_id, record)
            count += 1
        return count

    # On-demand path

    async def compute_eta(self, trip: Trip, vehicle_location: Coordinate) -> EtaRecord:
        """Estimate arrival for one trip from the vehicle's current position.

        Raises GeocodeError when the destination cannot be resolved; the
        store is left untouched in that case.
        """
        self._pending += 1
        try:
            destination = await self.geocoder.geocode(trip.end_location)
        except GeocodeError as e:
            logger.warning("ETA for trip %s skipped: %s", trip.id, e)
            raise
        finally:
            self._pending -= 1

        distance_m = max(0.0, haversine_m(vehicle_location, destination))
        factor = max(self.traffic.speed_factor, MIN_SPEED_FACTOR)
        speed_mps = self.base_speed_mps * factor

        now = self._clock()
        expected_arrival = now + datetime.timedelta(seconds=distance_m / speed_mps)

        record = EtaRecord(
            trip_id=trip.id,
            expected_arrival_time=expected_arrival,
            remaining_distance_m=distance_m,
            traffic_condition=self.traffic.level_at(destination),
            delay_minutes=delay_minutes(expected_arrival, trip.scheduled_end_time),
            last_updated=now,
        )
        stored = self.store.set(trip.id, record)
        logger.info(
            "Trip %s: %.0f m to go at %.1f m/s, arrival %s, delay %d min",
            trip.id, distance_m, speed_mps, expected_arrival.isoformat(), stored.delay_minutes,
        )
        await self._publish()
        return stored

    async def clear(self, trip_id: str) -> bool:
        """Drop a trip's ETA, e.g. once the trip completes, and republish."""
        if self.store.remove(trip_id) is None:
            return False
        await self._publish()
        return True

    # Read access

    def snapshot(self) -> dict[str, EtaRecord]:
        return self.store.snapshot()

    def published_etas(self) -> list[dict]:
        """Current ETA map in the JSON shape sent to live consumers."""
        return [
            EtaInfo.from_record(r).model_dump(mode="json")
            for r in self.store.snapshot().values()
        ]

    async def _publish(self) -> None:
        if self.broadcaster is None:
            return
        await self.broadcaster.publish(self.published_etas())
