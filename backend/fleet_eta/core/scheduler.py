"""APScheduler setup for periodic tasks."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

ETA_TICK_JOB_ID = "eta_tick"


def create_scheduler() -> AsyncIOScheduler:
    """Create the scheduler shared by the engine's periodic jobs."""
    return AsyncIOScheduler(
        job_defaults={"coalesce": True, "max_instances": 1},
    )


def add_tick_job(scheduler: AsyncIOScheduler, tick, interval_seconds: float):
    """Register the periodic ETA tick; `tick` must be a coroutine function."""
    return scheduler.add_job(
        tick,
        "interval",
        seconds=interval_seconds,
        id=ETA_TICK_JOB_ID,
        name="Recompute traffic and tracked ETAs",
        max_instances=1,
        replace_existing=True,
    )
