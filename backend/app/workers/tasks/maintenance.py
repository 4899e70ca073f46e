"""Housekeeping tasks."""

import asyncio

from celery import shared_task

from app.config import settings
from app.db.database import worker_session_factory
from app.models.enums import JobStatus
from app.services.cron_logger import (
    CRON_LOG_CLEANUP_JOB,
    DATA_PROCESSOR_CLEANUP_JOB,
    cleanup_old_cron_logs,
)
from app.services.data_processor_cleanup import data_processor_cleanup_job
from app.services.job_runner import JobOutcome, run_scheduled_job

CRON_LOG_RETENTION_DAYS = 30


@shared_task(
    bind=True,
    soft_time_limit=settings.cleanup_max_duration + 30,
    time_limit=settings.cleanup_max_duration + 60,
)
def cleanup_data_processors(self):
    """Whitelist exposures that belong to data processors."""
    return asyncio.run(_cleanup_data_processors_async())


async def _cleanup_data_processors_async():
    async with worker_session_factory() as session_factory:
        return await run_scheduled_job(
            session_factory,
            DATA_PROCESSOR_CLEANUP_JOB,
            data_processor_cleanup_job,
            settings.cleanup_max_duration,
        )


@shared_task(bind=True)
def cleanup_cron_logs(self):
    """Delete old execution records."""
    return asyncio.run(_cleanup_cron_logs_async())


async def cron_log_cleanup_job(session_factory, deadline) -> JobOutcome:
    async with session_factory() as db:
        deleted = await cleanup_old_cron_logs(db, days=CRON_LOG_RETENTION_DAYS)
    return JobOutcome(
        status=JobStatus.SUCCESS,
        message=f"Deleted {deleted} execution records older than {CRON_LOG_RETENTION_DAYS} days",
        metadata={"deleted": deleted},
    )


async def _cleanup_cron_logs_async():
    async with worker_session_factory() as session_factory:
        return await run_scheduled_job(
            session_factory,
            CRON_LOG_CLEANUP_JOB,
            cron_log_cleanup_job,
            settings.cleanup_max_duration,
        )
