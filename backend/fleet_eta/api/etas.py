"""ETA REST API endpoints."""

from fastapi import APIRouter, HTTPException, Response

from fleet_eta.core.errors import TripNotFoundError
from fleet_eta.core.geo import Coordinate
from fleet_eta.schemas.eta import ComputeEtaRequest, EtaInfo

router = APIRouter(prefix="/api/etas", tags=["etas"])

# Will be set by main.py
engine = None
trips = None


@router.get("", response_model=list[EtaInfo])
async def list_etas(delayed_only: bool = False):
    """Get the latest ETA for every tracked trip."""
    if engine is None:
        return []
    infos = [EtaInfo.from_record(r) for r in engine.snapshot().values()]
    if delayed_only:
        infos = [i for i in infos if i.delay_minutes > 0]
    return infos


@router.get("/{trip_id}", response_model=EtaInfo)
async def get_eta(trip_id: str):
    """Get the latest ETA for one trip."""
    record = engine.store.get(trip_id) if engine else None
    if record is None:
        raise HTTPException(status_code=404, detail="No ETA for trip")
    return EtaInfo.from_record(record)


@router.post("/compute", response_model=EtaInfo)
async def compute_eta(body: ComputeEtaRequest):
    """Recompute a trip's ETA from the vehicle's current position.

    Geocoding failures surface as 502 through the app's error handlers.
    """
    if engine is None or trips is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    trip = trips.get_trip(body.trip_id)
    if trip is None:
        raise TripNotFoundError(body.trip_id)
    record = await engine.compute_eta(
        trip, Coordinate(lat=body.latitude, lon=body.longitude),
    )
    return EtaInfo.from_record(record)


@router.delete("/{trip_id}", status_code=204)
async def clear_eta(trip_id: str):
    """Drop a trip's ETA."""
    if engine is not None:
        await engine.clear(trip_id)
    return Response(status_code=204)
