"""Run scheduled jobs under a named lock with a wall-clock deadline."""

import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.enums import JobStatus
from app.services.cron_logger import log_cron_execution
from app.services.job_lock import acquire_job_lock, release_job_lock

logger = logging.getLogger(__name__)


class Deadline:
    """Time box for one job run, measured on the monotonic clock.

    ``expired()`` turns true ``margin`` seconds before the hard limit so the
    in-flight item can finish before the scheduler kills the task.
    """

    def __init__(self, seconds: float, margin: float = 0.0, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._ends_at = clock() + seconds
        self.margin = margin

    def remaining(self) -> float:
        return max(0.0, self._ends_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= self.margin


@dataclass
class JobOutcome:
    """What a job's work function reports back to the runner."""
    status: JobStatus = JobStatus.SUCCESS
    message: str = ""
    metadata: dict = field(default_factory=dict)


JobWork = Callable[[async_sessionmaker[AsyncSession], Deadline], Awaitable[JobOutcome]]


async def run_scheduled_job(
    session_factory: async_sessionmaker[AsyncSession],
    job_name: str,
    work: JobWork,
    max_duration: int,
    deadline_margin: Optional[float] = None,
) -> dict:
    """Acquire the job's lock, run ``work`` and record the execution.

    Never raises: lock contention becomes SKIPPED and any error from the
    work becomes FAILED. The lock is always released.
    """
    started = time.monotonic()
    lock = None
    outcome: JobOutcome

    if deadline_margin is None:
        deadline_margin = settings.job_deadline_margin_seconds

    try:
        async with session_factory() as db:
            lock = await acquire_job_lock(db, job_name, max_duration + settings.job_lock_margin_seconds)

        if not lock.acquired:
            outcome = JobOutcome(status=JobStatus.SKIPPED, message=lock.reason or "Lock not acquired")
        else:
            logger.info("Starting job %s", job_name)
            deadline = Deadline(max_duration, margin=deadline_margin)
            outcome = await work(session_factory, deadline)
    except Exception as e:
        logger.exception("Job %s failed", job_name)
        outcome = JobOutcome(status=JobStatus.FAILED, message=f"{type(e).__name__}: {e}")
    finally:
        if lock is not None and lock.acquired:
            try:
                async with session_factory() as db:
                    await release_job_lock(db, job_name, lock.holder_token)
            except Exception:
                logger.exception("Failed to release job lock %s; it expires at %s", job_name, lock.expires_at)

    duration_ms = int((time.monotonic() - started) * 1000)

    try:
        async with session_factory() as db:
            await log_cron_execution(
                db,
                job_name,
                outcome.status,
                duration_ms=duration_ms,
                message=outcome.message,
                metadata=outcome.metadata,
            )
    except Exception:
        logger.exception("Failed to write execution log for %s", job_name)

    logger.info("Job %s finished: %s in %dms %s", job_name, outcome.status.value, duration_ms, outcome.message)

    return {
        "job_name": job_name,
        "status": outcome.status.value,
        "success": outcome.status != JobStatus.FAILED,
        "duration_ms": duration_ms,
        "message": outcome.message,
        "metadata": outcome.metadata,
    }
