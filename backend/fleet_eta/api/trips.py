"""Trip directory endpoints."""

from fastapi import APIRouter, HTTPException, Response

from fleet_eta.core.errors import TripNotFoundError
from fleet_eta.core.trips import TripStatus
from fleet_eta.schemas.trip import TripIn, TripOut

router = APIRouter(prefix="/api/trips", tags=["trips"])

# Will be set by main.py
trips = None
engine = None


@router.get("", response_model=list[TripOut])
async def list_trips():
    if trips is None:
        return []
    return [TripOut.from_trip(t) for t in trips.all()]


@router.get("/{trip_id}", response_model=TripOut)
async def get_trip(trip_id: str):
    trip = trips.get_trip(trip_id) if trips else None
    if trip is None:
        raise TripNotFoundError(trip_id)
    return TripOut.from_trip(trip)


@router.put("/{trip_id}", response_model=TripOut)
async def put_trip(trip_id: str, body: TripIn):
    """Create or replace a trip. Finished trips stop being tracked."""
    if trips is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    trip = body.to_trip(trip_id)
    trips.upsert(trip)
    if engine is not None and trip.status in (TripStatus.COMPLETED, TripStatus.CANCELLED):
        await engine.clear(trip_id)
    return TripOut.from_trip(trip)


@router.delete("/{trip_id}", status_code=204)
async def delete_trip(trip_id: str):
    if trips is None or trips.remove(trip_id) is None:
        raise TripNotFoundError(trip_id)
    if engine is not None:
        await engine.clear(trip_id)
    return Response(status_code=204)
