"""Reply reconciliation tasks."""

import asyncio
import logging
import uuid

from celery import shared_task

from app.config import settings
from app.db.database import worker_session_factory
from app.services.cron_logger import RECONCILE_JOB
from app.services.job_runner import run_scheduled_job
from app.services.reconciliation import apply_broker_reply, reconcile_job

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    soft_time_limit=settings.reconcile_max_duration + 30,
    time_limit=settings.reconcile_max_duration + 60,
)
def reconcile_replies(self):
    """Ingest delivery statuses and resolve aged acknowledgments."""
    return asyncio.run(_reconcile_replies_async())


async def _reconcile_replies_async():
    async with worker_session_factory() as session_factory:
        return await run_scheduled_job(
            session_factory,
            RECONCILE_JOB,
            reconcile_job,
            settings.reconcile_max_duration,
        )


@shared_task(bind=True, max_retries=3)
def process_broker_reply(self, request_id: str, text: str):
    """Apply an inbound broker reply to its removal request."""
    try:
        parsed_id = uuid.UUID(request_id)
    except ValueError:
        logger.error("Invalid removal request id %r", request_id)
        return {"request_id": request_id, "action": "invalid_id"}
    return asyncio.run(_process_broker_reply_async(parsed_id, text))


async def _process_broker_reply_async(request_id: uuid.UUID, text: str):
    async with worker_session_factory() as session_factory:
        return await apply_broker_reply(session_factory, request_id, text)
