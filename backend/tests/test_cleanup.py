"""Tests for the data processor cleanup."""

from sqlalchemy import select

from app.models import Exposure, RemovalRequest, Whitelist
from app.services.data_processor_cleanup import (
    WHITELIST_REASON,
    cleanup_data_processor_exposures,
    find_data_processor_exposures,
)
from app.services.job_runner import Deadline

from factories import make_exposure, make_request, make_user


async def _statuses(session_factory):
    async with session_factory() as db:
        result = await db.execute(select(Exposure.source, Exposure.status))
        return dict(result.all())


class TestDataProcessorCleanup:
    def test_whitelists_processor_and_cancels_request(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                user = await make_user(db)
                exposure = await make_exposure(db, user, source="SYNDIGO", status="REMOVAL_PENDING")
                request = await make_request(db, exposure, status="PENDING")
                await db.commit()

            result = await cleanup_data_processor_exposures(session_factory)
            async with session_factory() as db:
                exposure = await db.get(Exposure, exposure.id)
                request = await db.get(RemovalRequest, request.id)
                entries = (await db.execute(select(Whitelist))).scalars().all()
            return result, exposure, request, entries

        result, exposure, request, entries = run_db(scenario)
        assert result.exposures_found == 1
        assert result.exposures_whitelisted == 1
        assert result.to_dict()["users_affected"] == 1
        assert exposure.status == "WHITELISTED"
        assert exposure.is_whitelisted is True
        assert request.status == "CANCELLED"
        assert "GDPR Art. 28/29" in request.notes
        assert [(e.source, e.reason) for e in entries] == [("SYNDIGO", WHITELIST_REASON)]

    def test_matches_processor_domain_in_url(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                user = await make_user(db)
                await make_exposure(
                    db, user, source="REVIEW_WIDGET",
                    source_url="https://apps.bazaarvoice.com/reviews/12345",
                )
                await db.commit()
            result = await cleanup_data_processor_exposures(session_factory)
            return result, await _statuses(session_factory)

        result, statuses = run_db(scenario)
        assert result.exposures_whitelisted == 1
        assert statuses == {"REVIEW_WIDGET": "WHITELISTED"}

    def test_matches_source_name_variants(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                user = await make_user(db)
                await make_exposure(db, user, source="yotpo_reviews")
                await db.commit()
                return await find_data_processor_exposures(db)

        assert [e.source for e in run_db(scenario)] == ["yotpo_reviews"]

    def test_underscore_in_processor_name_is_literal(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                user = await make_user(db)
                await make_exposure(db, user, source="SALESXLAYER")
                await make_exposure(db, user, source="TIBCO-MDM")
                await make_exposure(db, user, source="sales_layer_feed")
                await db.commit()
                return await find_data_processor_exposures(db)

        assert [e.source for e in run_db(scenario)] == ["sales_layer_feed"]

    def test_leaves_brokers_and_removed_exposures_alone(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                user = await make_user(db)
                await make_exposure(db, user, source="SPOKEO")
                await make_exposure(db, user, source="POWERREVIEWS", status="REMOVED")
                await db.commit()
            result = await cleanup_data_processor_exposures(session_factory)
            return result, await _statuses(session_factory)

        result, statuses = run_db(scenario)
        assert result.exposures_found == 0
        assert statuses == {"SPOKEO": "ACTIVE", "POWERREVIEWS": "REMOVED"}

    def test_second_run_finds_nothing(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                user = await make_user(db)
                await make_exposure(db, user, source="SALSIFY")
                await make_exposure(db, user, source="AKENEO", status="REMOVAL_FAILED")
                await db.commit()
            first = await cleanup_data_processor_exposures(session_factory)
            second = await cleanup_data_processor_exposures(session_factory)
            return first, second

        first, second = run_db(scenario)
        assert first.exposures_whitelisted == 2
        assert second.exposures_found == 0

    def test_dry_run_changes_nothing(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                first = await make_user(db)
                second = await make_user(db)
                await make_exposure(db, first, source="SYNDIGO")
                await make_exposure(db, second, source="PLYTIX")
                await db.commit()
            result = await cleanup_data_processor_exposures(session_factory, dry_run=True)
            return result, await _statuses(session_factory)

        result, statuses = run_db(scenario)
        assert result.exposures_found == 2
        assert result.exposures_whitelisted == 0
        assert len(result.users_affected) == 2
        assert statuses == {"SYNDIGO": "ACTIVE", "PLYTIX": "ACTIVE"}

    def test_expired_deadline_is_partial(self, run_db):
        async def scenario(session_factory):
            async with session_factory() as db:
                user = await make_user(db)
                await make_exposure(db, user, source="SYNDIGO")
                await db.commit()
            return await cleanup_data_processor_exposures(session_factory, deadline=Deadline(0))

        result = run_db(scenario)
        assert result.partial is True
        assert result.exposures_whitelisted == 0
