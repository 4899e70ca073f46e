"""Reply reconciliation: delivery statuses, aged acknowledgments and broker replies.

Both scheduled sub-flows only act on rows that are still in the state they
look for, so re-running the job without new data changes nothing.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Optional

import httpx
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.email import EmailSuppression, OutboundEmail
from app.models.enums import (
    DEAD_CHANNEL_DELIVERY_STATUSES,
    DeliveryStatus,
    JobStatus,
    RemovalMethod,
    RemovalStatus,
    TERMINAL_REMOVAL_STATUSES,
)
from app.models.exposure import Exposure
from app.models.request import RemovalRequest
from app.services.broker_intelligence import BrokerIntelligenceStore
from app.services.email import DeliveryStatusRecord, EmailProvider, get_email_provider
from app.services.job_runner import Deadline, JobOutcome
from app.services.reply_classifier import ReplyCategory, classify_reply
from app.services.state_machine import append_note, can_transition_request, transition_request
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

# Requests still waiting on the email channel
OPEN_REQUEST_STATUSES = [
    RemovalStatus.PENDING.value,
    RemovalStatus.SUBMITTED.value,
    RemovalStatus.IN_PROGRESS.value,
    RemovalStatus.ACKNOWLEDGED.value,
]

SOFT_BOUNCE_SUPPRESSION_THRESHOLD = 3

SUPPRESSION_REASONS = {
    DeliveryStatus.BOUNCED: "hard_bounce",
    DeliveryStatus.FAILED: "send_failed",
    DeliveryStatus.REJECTED: "rejected",
    DeliveryStatus.COMPLAINED: "complaint",
    DeliveryStatus.SUPPRESSED: "provider_suppressed",
}


@dataclass
class ReconcileResult:
    """Counters for one reconciliation run."""
    statuses_checked: int = 0
    statuses_updated: int = 0
    suppressions: int = 0
    flagged_undeliverable: int = 0
    acknowledged_checked: int = 0
    completed: int = 0
    requires_manual: int = 0
    left_unresolved: int = 0
    errors: int = 0
    partial: bool = False
    delivery_status_error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


async def record_delivery_event(
    db: AsyncSession,
    recipient: str,
    status: DeliveryStatus,
    now: Optional[datetime] = None,
) -> bool:
    """Update the recipient's suppression entry; returns True if it is suppressed."""
    now = now or utc_now()
    if status not in DEAD_CHANNEL_DELIVERY_STATUSES and status != DeliveryStatus.DELIVERY_DELAYED:
        return False

    result = await db.execute(select(EmailSuppression).where(EmailSuppression.email == recipient))
    entry = result.scalar_one_or_none()
    if entry is None:
        entry = EmailSuppression(email=recipient, reason="soft_bounce", bounce_count=0, suppressed=False)
        db.add(entry)

    entry.last_event_at = now
    if status in DEAD_CHANNEL_DELIVERY_STATUSES:
        entry.reason = SUPPRESSION_REASONS[status]
        entry.bounce_count = (entry.bounce_count or 0) + (1 if status == DeliveryStatus.BOUNCED else 0)
    else:
        entry.bounce_count = (entry.bounce_count or 0) + 1
        if entry.bounce_count >= SOFT_BOUNCE_SUPPRESSION_THRESHOLD and not entry.suppressed:
            entry.reason = "soft_bounce_repeated"

    should_suppress = status in DEAD_CHANNEL_DELIVERY_STATUSES or entry.bounce_count >= SOFT_BOUNCE_SUPPRESSION_THRESHOLD
    if should_suppress and not entry.suppressed:
        entry.suppressed = True
        entry.suppressed_at = now
        logger.warning("Suppressed %s (%s)", recipient, entry.reason)
    return bool(entry.suppressed)


async def _flag_undeliverable_requests(db: AsyncSession, recipient: str, status: DeliveryStatus) -> int:
    """Force open requests emailed to ``recipient`` into REQUIRES_MANUAL."""
    result = await db.execute(
        select(RemovalRequest)
        .join(OutboundEmail, OutboundEmail.removal_request_id == RemovalRequest.id)
        .where(OutboundEmail.recipient == recipient, RemovalRequest.status.in_(OPEN_REQUEST_STATUSES))
        .distinct()
    )
    flagged = 0
    for request in result.scalars().all():
        await transition_request(
            db,
            request,
            RemovalStatus.REQUIRES_MANUAL,
            note=f"Email to {recipient} {status.value}; automated email channel unavailable",
            force=True,
        )
        flagged += 1
    return flagged


async def _apply_delivery_status(
    session_factory: async_sessionmaker[AsyncSession],
    record: DeliveryStatusRecord,
    result: ReconcileResult,
    now: datetime,
) -> None:
    async with session_factory() as db:
        outbound = (await db.execute(
            select(OutboundEmail).where(OutboundEmail.provider_message_id == record.message_id)
        )).scalar_one_or_none()
        if outbound is None:
            # Not a broker email (operator reports, notifications)
            return

        suppressed = False
        if outbound.delivery_status != record.status.value:
            outbound.delivery_status = record.status.value
            outbound.status_checked_at = now
            result.statuses_updated += 1
            suppressed = await record_delivery_event(db, record.recipient, record.status, now)
            if suppressed:
                result.suppressions += 1

        if record.status in DEAD_CHANNEL_DELIVERY_STATUSES or suppressed:
            result.flagged_undeliverable += await _flag_undeliverable_requests(db, record.recipient, record.status)

        await db.commit()


async def ingest_delivery_statuses(
    session_factory: async_sessionmaker[AsyncSession],
    provider: EmailProvider,
    result: ReconcileResult,
    deadline: Optional[Deadline] = None,
    now: Optional[datetime] = None,
) -> None:
    """Pull recent delivery statuses and close the email channel for dead addresses."""
    now = now or utc_now()
    since = now - timedelta(hours=settings.delivery_status_lookback_hours)
    records = await provider.list_delivery_statuses(since)

    for record in records:
        if deadline is not None and deadline.expired():
            result.partial = True
            return
        result.statuses_checked += 1
        try:
            await _apply_delivery_status(session_factory, record, result, now)
        except Exception:
            logger.exception("Failed to apply delivery status for message %s", record.message_id)
            result.errors += 1


async def resolve_aged_acknowledgments(
    session_factory: async_sessionmaker[AsyncSession],
    intel_store: BrokerIntelligenceStore,
    result: ReconcileResult,
    deadline: Optional[Deadline] = None,
    now: Optional[datetime] = None,
) -> None:
    """Decide ACKNOWLEDGED requests the broker has been silent on past the dwell time.

    A high broker success rate completes the request, a low one hands it to
    the user; anything in between is left for a later run.
    """
    now = now or utc_now()
    dwell_days = settings.acknowledged_dwell_days
    cutoff = now - timedelta(days=dwell_days)
    cursor = None

    while True:
        async with session_factory() as db:
            stmt = (
                select(RemovalRequest.id, RemovalRequest.updated_at, Exposure.source)
                .join(Exposure, RemovalRequest.exposure_id == Exposure.id)
                .where(
                    RemovalRequest.status == RemovalStatus.ACKNOWLEDGED.value,
                    RemovalRequest.updated_at < cutoff,
                )
            )
            if cursor is not None:
                updated_at, last_id = cursor
                stmt = stmt.where(or_(
                    RemovalRequest.updated_at > updated_at,
                    and_(RemovalRequest.updated_at == updated_at, RemovalRequest.id > last_id),
                ))
            stmt = stmt.order_by(RemovalRequest.updated_at, RemovalRequest.id).limit(settings.reconcile_batch_size)
            rows = (await db.execute(stmt)).all()

        if not rows:
            return

        for request_id, updated_at, source in rows:
            if deadline is not None and deadline.expired():
                result.partial = True
                return
            cursor = (updated_at, request_id)
            result.acknowledged_checked += 1

            intel = await intel_store.get_broker_intelligence(source)
            if intel.success_rate >= settings.reconcile_high_success_rate:
                target = RemovalStatus.COMPLETED
                note = (f"No broker reply in {dwell_days} days; {source} completes "
                        f"{intel.success_rate:.0f}% of requests, marking completed")
            elif intel.success_rate < settings.reconcile_low_success_rate:
                target = RemovalStatus.REQUIRES_MANUAL
                note = (f"No broker reply in {dwell_days} days; {source} completes only "
                        f"{intel.success_rate:.0f}% of requests, manual follow-up needed")
            else:
                result.left_unresolved += 1
                continue

            try:
                async with session_factory() as db:
                    request = await db.get(RemovalRequest, request_id)
                    if request is None or request.status != RemovalStatus.ACKNOWLEDGED.value:
                        continue
                    await transition_request(db, request, target, note=note)
                    await db.commit()
            except Exception:
                logger.exception("Failed to resolve acknowledged request %s", request_id)
                result.errors += 1
                continue

            if target == RemovalStatus.COMPLETED:
                result.completed += 1
            else:
                result.requires_manual += 1

        if len(rows) < settings.reconcile_batch_size:
            return


async def reconcile_replies(
    session_factory: async_sessionmaker[AsyncSession],
    provider: Optional[EmailProvider] = None,
    deadline: Optional[Deadline] = None,
    intel_store: Optional[BrokerIntelligenceStore] = None,
    now: Optional[datetime] = None,
) -> ReconcileResult:
    """Run both reconciliation flows."""
    provider = provider or get_email_provider()
    intel_store = intel_store or BrokerIntelligenceStore(session_factory)
    result = ReconcileResult()

    try:
        await ingest_delivery_statuses(session_factory, provider, result, deadline=deadline, now=now)
    except httpx.HTTPError as e:
        logger.error("Could not fetch delivery statuses: %s", e)
        result.errors += 1
        result.delivery_status_error = str(e) or type(e).__name__

    if not result.partial:
        await resolve_aged_acknowledgments(session_factory, intel_store, result, deadline=deadline, now=now)

    logger.info(
        "Reconcile: %d statuses (%d flagged), %d acknowledged checked, %d completed, %d manual, %d unresolved",
        result.statuses_checked, result.flagged_undeliverable, result.acknowledged_checked,
        result.completed, result.requires_manual, result.left_unresolved,
    )
    return result


async def reconcile_job(session_factory: async_sessionmaker[AsyncSession], deadline: Deadline) -> JobOutcome:
    """Scheduled entrypoint for reply reconciliation."""
    result = await reconcile_replies(session_factory, deadline=deadline)
    message = (f"Completed {result.completed}, flagged {result.requires_manual + result.flagged_undeliverable} "
               f"for manual follow-up, {result.left_unresolved} unresolved")
    if result.errors:
        message += f", {result.errors} errors"
    return JobOutcome(
        status=JobStatus.PARTIAL if result.partial else JobStatus.SUCCESS,
        message=message,
        metadata=result.to_dict(),
    )


async def apply_broker_reply(
    session_factory: async_sessionmaker[AsyncSession],
    request_id: uuid.UUID,
    text: str,
    intel_store: Optional[BrokerIntelligenceStore] = None,
) -> dict:
    """Classify a broker's reply and advance the request it answers."""
    category = classify_reply(text)
    intel_store = intel_store or BrokerIntelligenceStore(session_factory)
    excerpt = " ".join(text.split())[:200]
    reply_note = f"Broker reply classified {category.value}: {excerpt}"
    learned_rejects_email = False
    source = None

    async with session_factory() as db:
        request = await db.get(RemovalRequest, request_id)
        if request is None:
            logger.warning("Broker reply for unknown removal request %s", request_id)
            return {"request_id": str(request_id), "category": category.value, "action": "not_found"}

        exposure = await db.get(Exposure, request.exposure_id)
        source = exposure.source if exposure else None
        current = RemovalStatus(request.status)

        target = None
        if current not in TERMINAL_REMOVAL_STATUSES:
            if category == ReplyCategory.CONFIRMED_REMOVAL:
                target = RemovalStatus.IN_PROGRESS
            elif category == ReplyCategory.NO_RECORD:
                target = RemovalStatus.COMPLETED
            elif category == ReplyCategory.REQUIRES_MANUAL:
                target = RemovalStatus.REQUIRES_MANUAL
                learned_rejects_email = request.method == RemovalMethod.AUTO_EMAIL.value

        force = target == RemovalStatus.REQUIRES_MANUAL
        if target is not None and target != current and can_transition_request(current, target, force=force):
            await transition_request(db, request, target, note=reply_note, force=force)
            action = f"transitioned:{target.value}"
        else:
            await append_note(db, request.id, reply_note)
            action = "noted"
        await db.commit()

    if learned_rejects_email and source:
        await intel_store.record_response_signal(source, rejects_email=True, preferred_method="FORM")

    logger.info("Broker reply for request %s: %s -> %s", request_id, category.value, action)
    return {"request_id": str(request_id), "category": category.value, "action": action}
