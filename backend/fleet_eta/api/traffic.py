"""Traffic simulation and engine lifecycle endpoints."""

from fastapi import APIRouter, HTTPException

from fleet_eta.schemas.eta import EngineStatus, TrafficState, TrafficZoneInfo

router = APIRouter(prefix="/api", tags=["traffic"])

# Will be set by main.py
engine = None


def _engine():
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _status() -> EngineStatus:
    eng = _engine()
    return EngineStatus(
        running=eng.is_running,
        tick_count=eng.tick_count,
        interval_seconds=eng.interval_seconds,
        tracked_trips=len(eng.store),
        pending=eng.pending,
        speed_factor=eng.speed_factor,
    )


@router.get("/traffic", response_model=TrafficState)
async def get_traffic():
    """Current speed factor and zone congestion."""
    eng = _engine()
    return TrafficState(
        speed_factor=eng.speed_factor,
        zones=[TrafficZoneInfo.from_zone(z) for z in eng.traffic.zones()],
    )


@router.get("/engine", response_model=EngineStatus)
async def get_engine_status():
    return _status()


@router.post("/engine/start", response_model=EngineStatus)
async def start_engine():
    _engine().start()
    return _status()


@router.post("/engine/stop", response_model=EngineStatus)
async def stop_engine():
    _engine().stop()
    return _status()


@router.post("/engine/tick", response_model=EngineStatus)
async def tick_engine():
    """Run one recomputation cycle now, outside the schedule."""
    await _engine().tick()
    return _status()
