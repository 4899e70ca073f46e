"""Execution records for scheduled jobs."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cron_log import CronLog
from app.models.enums import JobStatus
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


AUTO_PROCESS_JOB = "auto-process-removals"
RECONCILE_JOB = "reconcile-replies"
LINK_HEALTH_JOB = "link-health-check"
DATA_PROCESSOR_CLEANUP_JOB = "data-processor-cleanup"
CRON_LOG_CLEANUP_JOB = "cleanup-cron-logs"

# How often each job is scheduled, in hours
EXPECTED_INTERVALS = {
    AUTO_PROCESS_JOB: 8,
    RECONCILE_JOB: 12,
    LINK_HEALTH_JOB: 24,
    DATA_PROCESSOR_CLEANUP_JOB: 24,
    CRON_LOG_CLEANUP_JOB: 24 * 7,
}

# A job is overdue once its last success is this many intervals old
OVERDUE_FACTOR = 1.5


async def log_cron_execution(
    db: AsyncSession,
    job_name: str,
    status: JobStatus | str,
    duration_ms: Optional[int] = None,
    message: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> CronLog:
    """Persist one execution record."""
    entry = CronLog(
        job_name=job_name,
        status=JobStatus(status).value,
        duration_ms=duration_ms,
        message=message,
        metadata_json=metadata,
    )
    db.add(entry)
    await db.commit()
    return entry


async def get_last_successful_run(db: AsyncSession, job_name: str) -> Optional[CronLog]:
    """Most recent SUCCESS or PARTIAL run of a job."""
    result = await db.execute(
        select(CronLog)
        .where(
            CronLog.job_name == job_name,
            CronLog.status.in_([JobStatus.SUCCESS.value, JobStatus.PARTIAL.value]),
        )
        .order_by(CronLog.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_recent_runs(db: AsyncSession, job_name: str, limit: int = 20) -> list[CronLog]:
    result = await db.execute(
        select(CronLog)
        .where(CronLog.job_name == job_name)
        .order_by(CronLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_cron_health_status(db: AsyncSession, now: Optional[datetime] = None) -> list[dict]:
    """Per-job health: last run, last success and whether the job is overdue."""
    now = now or utc_now()
    statuses = []

    for job_name, interval_hours in EXPECTED_INTERVALS.items():
        recent = await get_recent_runs(db, job_name, limit=1)
        last_run = recent[0] if recent else None
        last_success = await get_last_successful_run(db, job_name)

        overdue_after = timedelta(hours=interval_hours * OVERDUE_FACTOR)
        if last_success is None:
            health = "never_run" if last_run is None else "failing"
        elif now - last_success.created_at > overdue_after:
            health = "overdue"
        elif last_run is not None and last_run.status == JobStatus.FAILED.value:
            health = "failing"
        else:
            health = "healthy"

        statuses.append({
            "job_name": job_name,
            "expected_interval_hours": interval_hours,
            "last_run_at": last_run.created_at if last_run else None,
            "last_status": last_run.status if last_run else None,
            "last_success_at": last_success.created_at if last_success else None,
            "health": health,
        })

    return statuses


async def cleanup_old_cron_logs(db: AsyncSession, days: int = 30) -> int:
    """Delete execution records older than ``days``."""
    cutoff = utc_now() - timedelta(days=days)
    result = await db.execute(delete(CronLog).where(CronLog.created_at < cutoff))
    await db.commit()
    logger.info("Deleted %d cron log entries older than %d days", result.rowcount, days)
    return result.rowcount
