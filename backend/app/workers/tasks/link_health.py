"""Opt-out link health task."""

import asyncio

from celery import shared_task

from app.config import settings
from app.db.database import worker_session_factory
from app.services.cron_logger import LINK_HEALTH_JOB
from app.services.job_runner import run_scheduled_job
from app.services.link_health import link_health_job


@shared_task(
    bind=True,
    soft_time_limit=settings.link_check_max_duration + 30,
    time_limit=settings.link_check_max_duration + 60,
)
def check_opt_out_links(self):
    """Probe every broker opt-out URL and report broken ones."""
    return asyncio.run(_check_opt_out_links_async())


async def _check_opt_out_links_async():
    async with worker_session_factory() as session_factory:
        return await run_scheduled_job(
            session_factory,
            LINK_HEALTH_JOB,
            link_health_job,
            settings.link_check_max_duration,
        )
