"""Tests for broker success statistics."""

from sqlalchemy import select

from app.models import BrokerIntelligence
from app.services.broker_intelligence import (
    BrokerIntelligenceStore,
    compute_success_rate,
    recommend_method,
)

from factories import make_exposure, make_request, make_user


class TestComputeSuccessRate:
    def test_sparse_history_is_neutral(self):
        assert compute_success_rate(0, 0, 0, min_sample=5) == (50.0, None)
        assert compute_success_rate(4, 0, 0, min_sample=5) == (50.0, None)

    def test_rate_over_resolved_requests(self):
        assert compute_success_rate(8, 1, 1, min_sample=5) == (80.0, "EMAIL")
        assert compute_success_rate(2, 2, 1, min_sample=5) == (40.0, "BOTH")
        assert compute_success_rate(1, 3, 1, min_sample=5) == (20.0, "FORM")

    def test_recommend_method_bands(self):
        assert recommend_method(70) == "EMAIL"
        assert recommend_method(69.9) == "BOTH"
        assert recommend_method(40) == "BOTH"
        assert recommend_method(39.9) == "FORM"


async def _add_history(db, source, statuses, created_days_ago=1):
    user = await make_user(db)
    for status in statuses:
        exposure = await make_exposure(db, user, source=source, status="REMOVAL_IN_PROGRESS")
        await make_request(db, exposure, status=status, created_days_ago=created_days_ago)
    await db.commit()


class TestBrokerIntelligenceStore:
    def test_unknown_source_gets_neutral_signal(self, run_db):
        async def scenario(session_factory):
            store = BrokerIntelligenceStore(session_factory)
            return await store.get_broker_intelligence("NEVER_SEEN")

        intel = run_db(scenario)
        assert intel.success_rate == 50.0
        assert intel.recommended_method is None
        assert intel.sample_size == 0

    def test_computes_from_history_and_caches(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                await _add_history(db, "SPOKEO", ["COMPLETED"] * 4 + ["FAILED"] + ["PENDING", "ACKNOWLEDGED"])
            store = BrokerIntelligenceStore(session_factory)
            intel = await store.get_broker_intelligence("SPOKEO")
            async with session_factory() as db:
                cached = await db.get(BrokerIntelligence, "SPOKEO")
            return intel, cached

        intel, cached = run_db(scenario)
        assert intel.success_rate == 80.0
        assert intel.recommended_method == "EMAIL"
        assert intel.sample_size == 5
        assert cached.completed_count == 4
        assert cached.failed_count == 1
        assert cached.expires_at > cached.computed_at

    def test_ignores_requests_outside_lookback(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                await _add_history(db, "RADARIS", ["COMPLETED"] * 6, created_days_ago=60)
                await _add_history(db, "RADARIS", ["FAILED"] * 5)
            return await BrokerIntelligenceStore(session_factory).get_broker_intelligence("RADARIS")

        intel = run_db(scenario)
        assert intel.success_rate == 0.0
        assert intel.recommended_method == "FORM"

    def test_memoized_within_a_run(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                await _add_history(db, "WHITEPAGES", ["COMPLETED"] * 5)
            store = BrokerIntelligenceStore(session_factory)
            first = await store.get_broker_intelligence("WHITEPAGES")
            async with session_factory() as db:
                await _add_history(db, "WHITEPAGES", ["FAILED"] * 5)
            second = await store.get_broker_intelligence("WHITEPAGES")
            # Cached row is still fresh for a new store too
            third = await BrokerIntelligenceStore(session_factory).get_broker_intelligence("WHITEPAGES")
            await store.invalidate("WHITEPAGES")
            fourth = await store.get_broker_intelligence("WHITEPAGES")
            return first, second, third, fourth

        first, second, third, fourth = run_db(scenario)
        assert first.success_rate == second.success_rate == third.success_rate == 100.0
        assert fourth.success_rate == 50.0
        assert fourth.sample_size == 10

    def test_response_signal_survives_recompute(self, run_db):
        async def scenario(session_factory):
            store = BrokerIntelligenceStore(session_factory)
            await store.record_response_signal("MYLIFE", rejects_email=True, preferred_method="FORM")
            intel = await store.get_broker_intelligence("MYLIFE")
            async with session_factory() as db:
                rows = (await db.execute(select(BrokerIntelligence))).scalars().all()
            return intel, rows

        intel, rows = run_db(scenario)
        assert intel.rejects_email is True
        assert intel.preferred_method == "FORM"
        assert intel.success_rate == 50.0
        assert len(rows) == 1
        assert rows[0].last_signal_at is not None
