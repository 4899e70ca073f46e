"""Named job locks backed by the job_locks table.

Acquisition is a single INSERT against the job_name primary key, so two
overlapping scheduler ticks can never both hold the same lock. Locks expire
after a fixed TTL; there is no heartbeat renewal.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.job_lock import JobLock
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class LockResult:
    """Outcome of an acquire attempt."""
    acquired: bool
    job_name: str
    holder_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None


async def acquire_job_lock(
    db: AsyncSession,
    job_name: str,
    ttl_seconds: int,
    now: Optional[datetime] = None,
) -> LockResult:
    """Try to take the lock for ``job_name``.

    Not acquiring the lock is a normal outcome, reported through
    ``LockResult.acquired``.
    """
    now = now or utc_now()

    # Clear an expired holder so the insert below can take over
    await db.execute(
        delete(JobLock).where(JobLock.job_name == job_name, JobLock.expires_at <= now)
    )
    await db.commit()

    token = secrets.token_hex(16)
    expires_at = now + timedelta(seconds=ttl_seconds)
    db.add(JobLock(job_name=job_name, holder_token=token, acquired_at=now, expires_at=expires_at))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        result = await db.execute(select(JobLock.expires_at).where(JobLock.job_name == job_name))
        held_until = result.scalar_one_or_none()
        reason = f"Lock held until {held_until.isoformat()}" if held_until else "Lock held by another run"
        logger.info("Job lock %s not acquired: %s", job_name, reason)
        return LockResult(acquired=False, job_name=job_name, reason=reason)

    logger.debug("Job lock %s acquired until %s", job_name, expires_at.isoformat())
    return LockResult(acquired=True, job_name=job_name, holder_token=token, expires_at=expires_at)


async def release_job_lock(db: AsyncSession, job_name: str, holder_token: Optional[str] = None) -> bool:
    """Release the lock. Safe to call when the lock is already gone.

    With ``holder_token`` only that holder's lock is removed, so a run that
    outlived its TTL cannot release a successor's lock.
    """
    stmt = delete(JobLock).where(JobLock.job_name == job_name)
    if holder_token is not None:
        stmt = stmt.where(JobLock.holder_token == holder_token)
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount > 0
