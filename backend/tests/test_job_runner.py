"""Tests for the scheduled job runner."""

from sqlalchemy import select

from app.models import CronLog, JobLock
from app.models.enums import JobStatus
from app.services.job_lock import acquire_job_lock
from app.services.job_runner import Deadline, JobOutcome, run_scheduled_job


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestDeadline:
    def test_remaining_counts_down(self):
        clock = FakeClock()
        deadline = Deadline(60, clock=clock)
        clock.now += 20
        assert deadline.remaining() == 40
        assert not deadline.expired()

    def test_expires_at_margin(self):
        clock = FakeClock()
        deadline = Deadline(60, margin=15, clock=clock)
        clock.now += 44
        assert not deadline.expired()
        clock.now += 1
        assert deadline.expired()

    def test_remaining_never_negative(self):
        clock = FakeClock()
        deadline = Deadline(5, clock=clock)
        clock.now += 100
        assert deadline.remaining() == 0.0
        assert deadline.expired()


async def _logs_and_locks(session_factory):
    async with session_factory() as db:
        logs = (await db.execute(select(CronLog))).scalars().all()
        locks = (await db.execute(select(JobLock))).scalars().all()
    return logs, locks


class TestRunScheduledJob:
    def test_successful_run_is_logged_and_releases_lock(self, run_db):
        calls = []

        async def work(session_factory, deadline):
            calls.append(deadline)
            return JobOutcome(message="did things", metadata={"created": 3})

        async def scenario(session_factory):
            result = await run_scheduled_job(session_factory, "auto-process-removals", work, max_duration=60)
            logs, locks = await _logs_and_locks(session_factory)
            return result, logs, locks

        result, logs, locks = run_db(scenario)
        assert result["status"] == "SUCCESS"
        assert result["success"] is True
        assert result["metadata"] == {"created": 3}
        assert len(calls) == 1
        assert isinstance(calls[0], Deadline)
        assert locks == []
        assert len(logs) == 1
        assert logs[0].job_name == "auto-process-removals"
        assert logs[0].status == "SUCCESS"
        assert logs[0].message == "did things"
        assert logs[0].metadata_json == {"created": 3}

    def test_failure_is_logged_and_releases_lock(self, run_db):
        async def work(session_factory, deadline):
            raise RuntimeError("database went away")

        async def scenario(session_factory):
            result = await run_scheduled_job(session_factory, "reconcile-replies", work, max_duration=60)
            logs, locks = await _logs_and_locks(session_factory)
            return result, logs, locks

        result, logs, locks = run_db(scenario)
        assert result["status"] == "FAILED"
        assert result["success"] is False
        assert "database went away" in result["message"]
        assert locks == []
        assert logs[0].status == "FAILED"

    def test_held_lock_skips_without_running(self, run_db):
        calls = []

        async def work(session_factory, deadline):
            calls.append(1)
            return JobOutcome()

        async def scenario(session_factory):
            async with session_factory() as db:
                held = await acquire_job_lock(db, "link-health-check", ttl_seconds=600)
            result = await run_scheduled_job(session_factory, "link-health-check", work, max_duration=60)
            logs, locks = await _logs_and_locks(session_factory)
            return held, result, logs, locks

        held, result, logs, locks = run_db(scenario)
        assert result["status"] == "SKIPPED"
        assert result["success"] is True
        assert calls == []
        # The other run's lock is left alone
        assert [lock.holder_token for lock in locks] == [held.holder_token]
        assert logs[0].status == "SKIPPED"

    def test_partial_outcome_is_recorded(self, run_db):
        async def work(session_factory, deadline):
            return JobOutcome(status=JobStatus.PARTIAL, message="stopped at deadline")

        async def scenario(session_factory):
            result = await run_scheduled_job(session_factory, "data-processor-cleanup", work, max_duration=60)
            logs, _ = await _logs_and_locks(session_factory)
            return result, logs

        result, logs = run_db(scenario)
        assert result["status"] == "PARTIAL"
        assert logs[0].status == "PARTIAL"
