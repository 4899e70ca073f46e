"""Tests for named job locks."""

import asyncio
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.pool import NullPool

from app.models import JobLock
from app.services.job_lock import acquire_job_lock, release_job_lock
from app.utils.datetime_utils import utc_now

from factories import create_session_factory


class TestAcquire:
    def test_first_caller_gets_lock(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                return await acquire_job_lock(db, "auto-process-removals", ttl_seconds=360)

        lock = run_db(scenario)
        assert lock.acquired
        assert lock.holder_token
        assert lock.expires_at > utc_now()

    def test_second_caller_is_refused_while_held(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                first = await acquire_job_lock(db, "reconcile-replies", ttl_seconds=360)
            async with session_factory() as db:
                second = await acquire_job_lock(db, "reconcile-replies", ttl_seconds=360)
            return first, second

        first, second = run_db(scenario)
        assert first.acquired
        assert not second.acquired
        assert second.holder_token is None
        assert "Lock held" in second.reason

    def test_locks_are_per_job(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                a = await acquire_job_lock(db, "job-a", ttl_seconds=60)
                b = await acquire_job_lock(db, "job-b", ttl_seconds=60)
            return a, b

        a, b = run_db(scenario)
        assert a.acquired and b.acquired

    def test_expired_lock_can_be_taken_over(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                stale = await acquire_job_lock(
                    db, "link-health-check", ttl_seconds=60, now=utc_now() - timedelta(hours=1)
                )
            async with session_factory() as db:
                fresh = await acquire_job_lock(db, "link-health-check", ttl_seconds=60)
                rows = (await db.execute(select(JobLock))).scalars().all()
            return stale, fresh, rows

        stale, fresh, rows = run_db(scenario)
        assert stale.acquired
        assert fresh.acquired
        assert fresh.holder_token != stale.holder_token
        assert len(rows) == 1
        assert rows[0].holder_token == fresh.holder_token


    def test_concurrent_callers_get_exactly_one_lock(self, tmp_path):
        async def main():
            url = f"sqlite+aiosqlite:///{tmp_path / 'locks.db'}"
            engine, session_factory = await create_session_factory(url, poolclass=NullPool)

            async def attempt(job_name):
                async with session_factory() as db:
                    return await acquire_job_lock(db, job_name, ttl_seconds=360)

            try:
                rounds = []
                for i in range(5):
                    rounds.append(await asyncio.gather(attempt(f"race-{i}"), attempt(f"race-{i}")))
                async with session_factory() as db:
                    rows = (await db.execute(select(JobLock))).scalars().all()
                return rounds, rows
            finally:
                await engine.dispose()

        rounds, rows = asyncio.run(main())
        for results in rounds:
            assert sorted(r.acquired for r in results) == [False, True]
        winners = {r.job_name: r.holder_token for results in rounds for r in results if r.acquired}
        assert {row.job_name: row.holder_token for row in rows} == winners


class TestRelease:
    def test_release_allows_reacquire(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                lock = await acquire_job_lock(db, "cleanup-cron-logs", ttl_seconds=60)
                released = await release_job_lock(db, "cleanup-cron-logs", lock.holder_token)
                again = await acquire_job_lock(db, "cleanup-cron-logs", ttl_seconds=60)
            return released, again

        released, again = run_db(scenario)
        assert released
        assert again.acquired

    def test_release_is_idempotent(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                lock = await acquire_job_lock(db, "cleanup-cron-logs", ttl_seconds=60)
                first = await release_job_lock(db, "cleanup-cron-logs", lock.holder_token)
                second = await release_job_lock(db, "cleanup-cron-logs", lock.holder_token)
                never_held = await release_job_lock(db, "never-held")
            return first, second, never_held

        assert run_db(scenario) == (True, False, False)

    def test_release_with_other_token_keeps_lock(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                await acquire_job_lock(db, "auto-process-removals", ttl_seconds=60)
                released = await release_job_lock(db, "auto-process-removals", "not-the-holder")
                retry = await acquire_job_lock(db, "auto-process-removals", ttl_seconds=60)
            return released, retry

        released, retry = run_db(scenario)
        assert not released
        assert not retry.acquired
