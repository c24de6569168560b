"""Trip metadata and the lookup the ETA engine resolves trips through."""

import datetime
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class TripStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


@dataclass
class Trip:
    id: str
    title: str
    start_location: str
    end_location: str
    scheduled_start_time: datetime.datetime
    scheduled_end_time: datetime.datetime | None = None
    status: TripStatus = TripStatus.SCHEDULED
    driver_id: str | None = None
    vehicle_id: str | None = None
    description: str = ""


class TripLookup(Protocol):
    def get_trip(self, trip_id: str) -> Trip | None: ...


class InMemoryTripDirectory:
    """Process-local trip registry keyed by trip id."""

    def __init__(self, trips: list[Trip] | None = None) -> None:
        self._lock = threading.Lock()
        self._trips: dict[str, Trip] = {t.id: t for t in trips or []}

    def get_trip(self, trip_id: str) -> Trip | None:
        with self._lock:
            return self._trips.get(trip_id)

    def upsert(self, trip: Trip) -> None:
        with self._lock:
            self._trips[trip.id] = trip
        logger.debug("Trip %s stored (status=%s)", trip.id, trip.status.value)

    def remove(self, trip_id: str) -> Trip | None:
        with self._lock:
            return self._trips.pop(trip_id, None)

    def all(self) -> list[Trip]:
        with self._lock:
            return list(self._trips.values())
