"""Scheduled job routes."""

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.api.deps import DbSession
from app.services.cron_logger import (
    AUTO_PROCESS_JOB,
    CRON_LOG_CLEANUP_JOB,
    DATA_PROCESSOR_CLEANUP_JOB,
    EXPECTED_INTERVALS,
    LINK_HEALTH_JOB,
    RECONCILE_JOB,
    get_cron_health_status,
    get_recent_runs,
)
from app.workers.celery_app import celery_app

router = APIRouter()

JOB_TASKS = {
    AUTO_PROCESS_JOB: "app.workers.tasks.auto_process.auto_process_removals",
    RECONCILE_JOB: "app.workers.tasks.reconcile_replies.reconcile_replies",
    LINK_HEALTH_JOB: "app.workers.tasks.link_health.check_opt_out_links",
    DATA_PROCESSOR_CLEANUP_JOB: "app.workers.tasks.maintenance.cleanup_data_processors",
    CRON_LOG_CLEANUP_JOB: "app.workers.tasks.maintenance.cleanup_cron_logs",
}


# Schemas
class JobHealth(BaseModel):
    job_name: str
    expected_interval_hours: int
    last_run_at: datetime | None
    last_status: str | None
    last_success_at: datetime | None
    health: str


class JobRun(BaseModel):
    id: str
    job_name: str
    status: str
    duration_ms: int | None
    message: str | None
    metadata: dict | None
    created_at: datetime


class TriggerResponse(BaseModel):
    job_name: str
    task_id: str


def _require_known_job(job_name: str) -> None:
    if job_name not in EXPECTED_INTERVALS:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_name}")


@router.get("/health", response_model=list[JobHealth])
async def job_health(db: DbSession):
    """Last run and overdue status for every scheduled job."""
    return await get_cron_health_status(db)


@router.get("/{job_name}/runs", response_model=list[JobRun])
async def job_runs(job_name: str, db: DbSession, limit: int = 20):
    """Recent execution records for a job."""
    _require_known_job(job_name)
    runs = await get_recent_runs(db, job_name, limit=min(limit, 100))
    return [
        JobRun(
            id=str(run.id),
            job_name=run.job_name,
            status=run.status,
            duration_ms=run.duration_ms,
            message=run.message,
            metadata=run.metadata_json,
            created_at=run.created_at,
        )
        for run in runs
    ]


@router.post("/{job_name}/trigger", response_model=TriggerResponse, status_code=202)
async def trigger_job(job_name: str):
    """Queue a job run now. The job lock still prevents overlapping runs."""
    _require_known_job(job_name)
    result = celery_app.send_task(JOB_TASKS[job_name])
    return TriggerResponse(job_name=job_name, task_id=str(result.id))
