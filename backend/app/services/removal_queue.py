"""Auto-processing queue: turns eligible exposures into removal requests.

Eligible exposures are ACTIVE, flagged for manual action that nobody has
taken, not whitelisted, from a source that may receive deletion requests,
without a removal request, and either confident enough or unscored.
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Optional

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.enums import ExposureStatus, JobStatus, RemovalStatus
from app.models.exposure import Exposure
from app.models.request import RemovalRequest
from app.services.broker_intelligence import BrokerIntelligenceStore
from app.services.job_runner import Deadline, JobOutcome
from app.services.plans import get_effective_plans, get_monthly_removal_counts, removal_limit, UNLIMITED
from app.services.removal_method import get_best_automation_method
from app.services.state_machine import note_line, transition_exposure
from app.utils.datetime_utils import month_start, utc_now
from brokers import DATA_PROCESSOR_SOURCES, get_broker, get_removal_coverage

logger = logging.getLogger(__name__)

# Data processors act for controllers and must not be sent deletion requests
EXCLUDED_SOURCES = tuple(DATA_PROCESSOR_SOURCES)


@dataclass
class QueueRunResult:
    """Counters for one pass over the queue."""
    processed: int = 0
    created: int = 0
    skipped_plan_limit: int = 0
    skipped_low_confidence: int = 0
    skipped_excluded: int = 0
    moved_to_monitoring: int = 0
    errors: int = 0
    remaining_queue: int = 0
    batches: int = 0
    partial: bool = False
    related_sources_covered: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _awaiting_action():
    """Exposures waiting for someone to start a removal."""
    return and_(
        Exposure.status == ExposureStatus.ACTIVE.value,
        Exposure.requires_manual_action.is_(True),
        Exposure.manual_action_taken.is_(False),
        Exposure.is_whitelisted.is_(False),
        ~exists().where(RemovalRequest.exposure_id == Exposure.id),
    )


def _confident_enough(min_confidence: int):
    # Legacy exposures without a score are treated as passing
    return or_(Exposure.confidence_score.is_(None), Exposure.confidence_score >= min_confidence)


def eligible_exposures_filter(min_confidence: int):
    return and_(
        _awaiting_action(),
        Exposure.source.notin_(EXCLUDED_SOURCES),
        _confident_enough(min_confidence),
    )


async def _count(db: AsyncSession, criteria) -> int:
    result = await db.execute(select(func.count(Exposure.id)).where(criteria))
    return result.scalar_one()


async def count_queue(db: AsyncSession, min_confidence: int) -> dict:
    """Queue depth and the exposures held back by each gate."""
    return {
        "eligible": await _count(db, eligible_exposures_filter(min_confidence)),
        "low_confidence": await _count(
            db,
            and_(
                _awaiting_action(),
                Exposure.source.notin_(EXCLUDED_SOURCES),
                Exposure.confidence_score < min_confidence,
            ),
        ),
        "excluded": await _count(db, and_(_awaiting_action(), Exposure.source.in_(EXCLUDED_SOURCES))),
    }


async def _create_removal_request(
    session_factory: async_sessionmaker[AsyncSession],
    exposure: Exposure,
    intel_store: BrokerIntelligenceStore,
) -> list[str]:
    """Create a PENDING request and move the exposure to REMOVAL_PENDING in one transaction.

    Returns the related sources the removal also covers.
    """
    intel = await intel_store.get_broker_intelligence(exposure.source)
    decision = get_best_automation_method(exposure.source, intel)
    coverage = get_removal_coverage(exposure.source)

    lines = [note_line(f"Auto-queued via {decision.method.value}: {decision.reason}")]
    if coverage["covered"]:
        lines.append(note_line(f"Also covers {', '.join(coverage['covered'])}: {coverage['note']}"))

    now = utc_now()
    async with session_factory() as db:
        async with db.begin():
            db.add(RemovalRequest(
                user_id=exposure.user_id,
                exposure_id=exposure.id,
                status=RemovalStatus.PENDING.value,
                method=decision.method.value,
                notes="\n".join(lines),
            ))
            await transition_exposure(
                db,
                exposure.id,
                ExposureStatus.REMOVAL_PENDING,
                expected=ExposureStatus.ACTIVE,
                values={
                    "manual_action_taken": True,
                    "manual_action_taken_at": now,
                    "user_confirmed": True,
                    "user_confirmed_at": now,
                },
            )
    return coverage["covered"]


async def _move_to_monitoring(session_factory: async_sessionmaker[AsyncSession], exposure: Exposure) -> None:
    """Breach and monitoring-only sources are watched, not removed."""
    async with session_factory() as db:
        async with db.begin():
            await transition_exposure(db, exposure.id, ExposureStatus.MONITORING, expected=ExposureStatus.ACTIVE)


async def process_auto_removals(
    session_factory: async_sessionmaker[AsyncSession],
    deadline: Optional[Deadline] = None,
    intel_store: Optional[BrokerIntelligenceStore] = None,
    batch_size: Optional[int] = None,
    max_batches: Optional[int] = None,
    min_confidence: Optional[int] = None,
) -> QueueRunResult:
    """One pass over the auto-processing queue, oldest exposures first.

    Plans and monthly usage are loaded once per batch for users not seen yet,
    then tracked in memory so a user cannot pass their quota within a run.
    Each exposure gets its own transaction; a failure is logged and counted.
    """
    batch_size = batch_size or settings.auto_process_batch_size
    max_batches = max_batches or settings.auto_process_max_batches
    if min_confidence is None:
        min_confidence = settings.auto_process_min_confidence
    intel_store = intel_store or BrokerIntelligenceStore(session_factory)

    result = QueueRunResult()
    plans: dict[uuid.UUID, str] = {}
    usage: dict[uuid.UUID, int] = {}
    since = month_start()
    cursor = None
    covered: set[str] = set()

    for _ in range(max_batches):
        if deadline is not None and deadline.expired():
            result.partial = True
            break

        async with session_factory() as db:
            stmt = select(Exposure).where(eligible_exposures_filter(min_confidence))
            if cursor is not None:
                found_at, last_id = cursor
                stmt = stmt.where(or_(
                    Exposure.first_found_at > found_at,
                    and_(Exposure.first_found_at == found_at, Exposure.id > last_id),
                ))
            stmt = stmt.order_by(Exposure.first_found_at, Exposure.id).limit(batch_size)
            exposures = list((await db.execute(stmt)).scalars().all())
            if not exposures:
                break

            new_users = {e.user_id for e in exposures} - plans.keys()
            plans.update(await get_effective_plans(db, new_users))
            limited = [user_id for user_id in new_users if removal_limit(plans[user_id]) != UNLIMITED]
            usage.update(await get_monthly_removal_counts(db, limited, since))

        result.batches += 1

        for exposure in exposures:
            if deadline is not None and deadline.expired():
                result.partial = True
                break

            result.processed += 1
            cursor = (exposure.first_found_at, exposure.id)

            broker = get_broker(exposure.source)
            if broker is not None and not broker.is_removable:
                try:
                    await _move_to_monitoring(session_factory, exposure)
                except Exception:
                    logger.exception("Failed to move exposure %s (%s) to monitoring", exposure.id, exposure.source)
                    result.errors += 1
                    continue
                result.moved_to_monitoring += 1
                continue

            limit = removal_limit(plans[exposure.user_id])
            if limit != UNLIMITED and usage.get(exposure.user_id, 0) >= limit:
                result.skipped_plan_limit += 1
                continue

            try:
                related = await _create_removal_request(session_factory, exposure, intel_store)
            except Exception:
                logger.exception("Failed to queue removal for exposure %s (%s)", exposure.id, exposure.source)
                result.errors += 1
                continue

            result.created += 1
            covered.update(related)
            if limit != UNLIMITED:
                usage[exposure.user_id] = usage.get(exposure.user_id, 0) + 1

        if result.partial or len(exposures) < batch_size:
            break

    async with session_factory() as db:
        counts = await count_queue(db, min_confidence)
    result.remaining_queue = counts["eligible"]
    result.skipped_low_confidence = counts["low_confidence"]
    result.skipped_excluded = counts["excluded"]
    result.related_sources_covered = sorted(covered)

    logger.info(
        "Auto-process: %d processed, %d created, %d over plan limit, %d errors, %d remaining",
        result.processed, result.created, result.skipped_plan_limit, result.errors, result.remaining_queue,
    )
    return result


async def auto_process_job(session_factory: async_sessionmaker[AsyncSession], deadline: Deadline) -> JobOutcome:
    """Scheduled entrypoint for the auto-processing queue."""
    result = await process_auto_removals(session_factory, deadline=deadline)
    message = f"Created {result.created} removal requests from {result.processed} exposures"
    if result.errors:
        message += f", {result.errors} errors"
    if result.partial:
        message += f" (stopped at deadline, {result.remaining_queue} remaining)"
    return JobOutcome(
        status=JobStatus.PARTIAL if result.partial else JobStatus.SUCCESS,
        message=message,
        metadata=result.to_dict(),
    )
