"""APScheduler setup for the polling cadence."""

import datetime
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from crossing_monitor.config import Settings

logger = logging.getLogger(__name__)

POLL_JOB_ID = "poll_routes"


def create_scheduler(poller, config: Settings | None = None) -> AsyncIOScheduler:
    """Create the scheduler with the recurring poll job.

    The first cycle is due immediately. max_instances=1 means a cycle still
    running when the next one fires causes that next run to be skipped, so a
    route is never polled twice concurrently.
    """
    if config is None:
        from crossing_monitor.config import settings as config

    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        poller.poll_cycle,
        "interval",
        minutes=config.interval_min,
        id=POLL_JOB_ID,
        name="Poll TomTom for every crossing route",
        next_run_time=datetime.datetime.now(datetime.timezone.utc),
        max_instances=1,
        coalesce=True,
    )

    return scheduler
