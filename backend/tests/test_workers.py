"""Tests for Celery wiring and the housekeeping job."""

from datetime import timedelta

from sqlalchemy import select

import app.workers.tasks.auto_process  # noqa: F401
import app.workers.tasks.link_health  # noqa: F401
import app.workers.tasks.maintenance  # noqa: F401
import app.workers.tasks.reconcile_replies  # noqa: F401
from app.api.routes.jobs import JOB_TASKS
from app.models import CronLog
from app.services.cron_logger import EXPECTED_INTERVALS
from app.services.job_runner import Deadline
from app.utils.datetime_utils import utc_now
from app.workers.celery_app import celery_app
from app.workers.tasks.maintenance import cron_log_cleanup_job
from app.workers.tasks.reconcile_replies import process_broker_reply


class TestCeleryWiring:
    def test_every_job_is_scheduled(self):
        assert set(celery_app.conf.beat_schedule) == set(EXPECTED_INTERVALS)

    def test_schedule_and_triggers_point_at_registered_tasks(self):
        registered = set(celery_app.tasks.keys())
        for job_name, entry in celery_app.conf.beat_schedule.items():
            assert entry["task"] in registered
            assert JOB_TASKS[job_name] == entry["task"]

    def test_broker_reply_with_bad_id(self):
        assert process_broker_reply.run("not-a-uuid", "Thanks") == {
            "request_id": "not-a-uuid",
            "action": "invalid_id",
        }


class TestCronLogCleanupJob:
    def test_deletes_old_records(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                db.add(CronLog(job_name="auto-process-removals", status="SUCCESS",
                               created_at=utc_now() - timedelta(days=40)))
                db.add(CronLog(job_name="auto-process-removals", status="SUCCESS"))
                await db.commit()

            outcome = await cron_log_cleanup_job(session_factory, Deadline(60))
            async with session_factory() as db:
                remaining = (await db.execute(select(CronLog))).scalars().all()
            return outcome, remaining

        outcome, remaining = run_db(scenario)
        assert outcome.metadata == {"deleted": 1}
        assert len(remaining) == 1
