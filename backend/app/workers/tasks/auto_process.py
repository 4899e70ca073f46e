"""Auto-processing queue task."""

import asyncio

from celery import shared_task

from app.config import settings
from app.db.database import worker_session_factory
from app.services.cron_logger import AUTO_PROCESS_JOB
from app.services.job_runner import run_scheduled_job
from app.services.removal_queue import auto_process_job


@shared_task(
    bind=True,
    soft_time_limit=settings.auto_process_max_duration + 30,
    time_limit=settings.auto_process_max_duration + 60,
)
def auto_process_removals(self):
    """Create removal requests for eligible exposures."""
    return asyncio.run(_auto_process_removals_async())


async def _auto_process_removals_async():
    async with worker_session_factory() as session_factory:
        return await run_scheduled_job(
            session_factory,
            AUTO_PROCESS_JOB,
            auto_process_job,
            settings.auto_process_max_duration,
        )
