"""Latest ETA per trip, shared between the engine and readers."""

import datetime
import logging
import threading
from dataclasses import dataclass, replace

from fleet_eta.core.traffic_model import TrafficLevel

logger = logging.getLogger(__name__)


@dataclass
class EtaRecord:
    trip_id: str
    expected_arrival_time: datetime.datetime
    remaining_distance_m: float
    traffic_condition: TrafficLevel
    delay_minutes: int
    last_updated: datetime.datetime

    @property
    def formatted_distance(self) -> str:
        if self.remaining_distance_m >= 1000:
            return f"{self.remaining_distance_m / 1000:.1f} km"
        return f"{int(self.remaining_distance_m)} m"

    @property
    def formatted_eta(self) -> str:
        return self.expected_arrival_time.strftime("%H:%M")


class EtaSnapshotStore:
    """Thread-safe trip_id -> EtaRecord mapping with insert-or-replace writes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, EtaRecord] = {}

    def get(self, trip_id: str) -> EtaRecord | None:
        with self._lock:
            record = self._records.get(trip_id)
            return replace(record) if record else None

    def set(self, trip_id: str, record: EtaRecord) -> EtaRecord:
        """Insert or replace; last_updated never moves backwards for a trip."""
        with self._lock:
            existing = self._records.get(trip_id)
            if existing and record.last_updated < existing.last_updated:
                record = replace(record, last_updated=existing.last_updated)
            self._records[trip_id] = record
            return replace(record)

    def remove(self, trip_id: str) -> EtaRecord | None:
        with self._lock:
            record = self._records.pop(trip_id, None)
        if record:
            logger.debug("Cleared ETA for trip %s", trip_id)
        return record

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def snapshot(self) -> dict[str, EtaRecord]:
        with self._lock:
            return {k: replace(v) for k, v in self._records.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, trip_id: object) -> bool:
        with self._lock:
            return trip_id in self._records
