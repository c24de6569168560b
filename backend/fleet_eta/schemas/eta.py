import datetime

from pydantic import BaseModel, Field

from fleet_eta.core.snapshot_store import EtaRecord
from fleet_eta.core.traffic_model import TrafficLevel, TrafficZone


class EtaInfo(BaseModel):
    trip_id: str
    expected_arrival_time: datetime.datetime
    remaining_distance_m: float
    traffic_condition: TrafficLevel
    delay_minutes: int
    last_updated: datetime.datetime
    formatted_eta: str
    formatted_distance: str

    @classmethod
    def from_record(cls, record: EtaRecord) -> "EtaInfo":
        return cls(
            trip_id=record.trip_id,
            expected_arrival_time=record.expected_arrival_time,
            remaining_distance_m=record.remaining_distance_m,
            traffic_condition=record.traffic_condition,
            delay_minutes=record.delay_minutes,
            last_updated=record.last_updated,
            formatted_eta=record.formatted_eta,
            formatted_distance=record.formatted_distance,
        )


class ComputeEtaRequest(BaseModel):
    trip_id: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class TrafficZoneInfo(BaseModel):
    lat: float
    lon: float
    radius_m: float
    level: TrafficLevel

    @classmethod
    def from_zone(cls, zone: TrafficZone) -> "TrafficZoneInfo":
        return cls(
            lat=zone.center.lat, lon=zone.center.lon,
            radius_m=zone.radius_m, level=zone.level,
        )


class TrafficState(BaseModel):
    speed_factor: float
    zones: list[TrafficZoneInfo]


class EngineStatus(BaseModel):
    running: bool
    tick_count: int
    interval_seconds: float
    tracked_trips: int
    pending: int
    speed_factor: float
