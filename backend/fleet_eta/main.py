"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleet_eta.api import etas, traffic, trips, ws
from fleet_eta.config import settings
from fleet_eta.core.broadcaster import Broadcaster
from fleet_eta.core.errors import GeocodeError, TripNotFoundError
from fleet_eta.core.eta_engine import EtaEngine
from fleet_eta.core.geocoder import HttpGeocoder
from fleet_eta.core.scheduler import create_scheduler
from fleet_eta.core.snapshot_store import EtaSnapshotStore
from fleet_eta.core.traffic_model import TrafficModel
from fleet_eta.core.trips import InMemoryTripDirectory

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    geocoder = HttpGeocoder()
    broadcaster = Broadcaster()
    await broadcaster.connect()

    trip_directory = InMemoryTripDirectory()
    scheduler = create_scheduler()
    engine = EtaEngine(
        TrafficModel(),
        EtaSnapshotStore(),
        geocoder,
        trip_directory,
        broadcaster=broadcaster,
        scheduler=scheduler,
    )

    # Wire up API modules
    etas.engine = engine
    etas.trips = trip_directory
    trips.engine = engine
    trips.trips = trip_directory
    traffic.engine = engine
    ws.engine = engine
    ws.broadcaster = broadcaster

    engine.start()
    logger.info("Fleet ETA started - ticking every %ss", engine.interval_seconds)

    yield

    # Shutdown
    engine.stop()
    scheduler.shutdown(wait=False)
    await geocoder.close()
    await broadcaster.close()
    logger.info("Fleet ETA shut down")


async def trip_not_found(request: Request, exc: TripNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def geocode_failed(request: Request, exc: GeocodeError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def health():
    return {"status": "ok"}


def create_app(lifespan=lifespan) -> FastAPI:
    """Build the app; tests pass lifespan=None and wire the API modules themselves."""
    app = FastAPI(
        title="Fleet ETA",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(etas.router)
    app.include_router(trips.router)
    app.include_router(traffic.router)
    app.include_router(ws.router)
    app.add_api_route("/api/health", health, methods=["GET"])
    app.add_exception_handler(TripNotFoundError, trip_not_found)
    app.add_exception_handler(GeocodeError, geocode_failed)
    return app


app = create_app()
