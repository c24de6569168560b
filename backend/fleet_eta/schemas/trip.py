import datetime

from pydantic import BaseModel

from fleet_eta.core.trips import Trip, TripStatus


class TripIn(BaseModel):
    title: str
    start_location: str
    end_location: str
    scheduled_start_time: datetime.datetime
    scheduled_end_time: datetime.datetime | None = None
    status: TripStatus = TripStatus.SCHEDULED
    driver_id: str | None = None
    vehicle_id: str | None = None
    description: str = ""

    def to_trip(self, trip_id: str) -> Trip:
        return Trip(id=trip_id, **self.model_dump())


class TripOut(TripIn):
    id: str

    @classmethod
    def from_trip(cls, trip: Trip) -> "TripOut":
        return cls(
            id=trip.id,
            title=trip.title,
            start_location=trip.start_location,
            end_location=trip.end_location,
            scheduled_start_time=trip.scheduled_start_time,
            scheduled_end_time=trip.scheduled_end_time,
            status=trip.status,
            driver_id=trip.driver_id,
            vehicle_id=trip.vehicle_id,
            description=trip.description,
        )
