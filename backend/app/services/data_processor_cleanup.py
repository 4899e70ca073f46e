"""Whitelist exposures that belong to data processors.

Data processors only handle data on behalf of their clients (the data
controllers) and cannot act on deletion requests (GDPR Articles 28/29), so
their exposures are taken out of the removal flow.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.enums import ExposureStatus, JobStatus
from app.models.exposure import Exposure
from app.services.job_runner import Deadline, JobOutcome
from app.services.state_machine import whitelist_exposure
from brokers import DATA_PROCESSOR_DOMAINS, DATA_PROCESSOR_SOURCES

logger = logging.getLogger(__name__)

WHITELIST_REASON = "Data processor, not a data broker"
CANCEL_NOTE = (
    "Cancelled: source is a data processor acting for data controllers and cannot "
    "action deletion requests without controller authorization (GDPR Art. 28/29)"
)


@dataclass
class CleanupResult:
    exposures_found: int = 0
    exposures_whitelisted: int = 0
    errors: int = 0
    partial: bool = False
    users_affected: set = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "exposures_found": self.exposures_found,
            "exposures_whitelisted": self.exposures_whitelisted,
            "errors": self.errors,
            "partial": self.partial,
            "users_affected": len(self.users_affected),
        }


def data_processor_filter():
    """Exposures whose source or URL points at a data processor."""
    conditions = [Exposure.source.icontains(name, autoescape=True) for name in DATA_PROCESSOR_SOURCES]
    conditions += [Exposure.source_url.icontains(domain, autoescape=True) for domain in DATA_PROCESSOR_DOMAINS]
    return or_(*conditions)


async def find_data_processor_exposures(db: AsyncSession) -> list[Exposure]:
    result = await db.execute(
        select(Exposure)
        .where(
            data_processor_filter(),
            Exposure.status.notin_([ExposureStatus.REMOVED.value, ExposureStatus.WHITELISTED.value]),
        )
        .order_by(Exposure.created_at)
    )
    return list(result.scalars().all())


async def cleanup_data_processor_exposures(
    session_factory: async_sessionmaker[AsyncSession],
    deadline: Optional[Deadline] = None,
    dry_run: bool = False,
) -> CleanupResult:
    """Whitelist data processor exposures and cancel their open requests."""
    result = CleanupResult()

    async with session_factory() as db:
        exposures = await find_data_processor_exposures(db)
    result.exposures_found = len(exposures)

    for exposure in exposures:
        result.users_affected.add(exposure.user_id)
        if dry_run:
            continue
        if deadline is not None and deadline.expired():
            result.partial = True
            break

        try:
            async with session_factory() as db:
                current = await db.get(Exposure, exposure.id)
                await whitelist_exposure(db, current, WHITELIST_REASON, request_note=CANCEL_NOTE)
                await db.commit()
        except Exception:
            logger.exception("Failed to whitelist data processor exposure %s (%s)", exposure.id, exposure.source)
            result.errors += 1
            continue
        result.exposures_whitelisted += 1

    logger.info(
        "Data processor cleanup: %d found, %d whitelisted, %d errors",
        result.exposures_found, result.exposures_whitelisted, result.errors,
    )
    return result


async def data_processor_cleanup_job(
    session_factory: async_sessionmaker[AsyncSession],
    deadline: Deadline,
) -> JobOutcome:
    """Scheduled entrypoint for the data processor cleanup."""
    result = await cleanup_data_processor_exposures(session_factory, deadline=deadline)
    return JobOutcome(
        status=JobStatus.PARTIAL if result.partial else JobStatus.SUCCESS,
        message=f"Whitelisted {result.exposures_whitelisted} of {result.exposures_found} data processor exposures",
        metadata=result.to_dict(),
    )
