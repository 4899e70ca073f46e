"""Per-broker success statistics derived from removal request history.

Statistics are cached in the broker_intelligence table with a TTL and
memoized for the lifetime of a store instance, so every decision made
within one job run sees the same numbers.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.broker_intelligence import BrokerIntelligence
from app.models.enums import RemovalStatus
from app.models.exposure import Exposure
from app.models.request import RemovalRequest
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

NEUTRAL_SUCCESS_RATE = 50.0

RESOLVED_STATUSES = [
    RemovalStatus.COMPLETED.value,
    RemovalStatus.FAILED.value,
    RemovalStatus.REQUIRES_MANUAL.value,
]


@dataclass(frozen=True)
class BrokerIntel:
    """Routing signal for one source."""
    source: str
    success_rate: float
    recommended_method: Optional[str]
    sample_size: int = 0
    preferred_method: Optional[str] = None
    rejects_email: bool = False

    @classmethod
    def from_row(cls, row: BrokerIntelligence) -> "BrokerIntel":
        return cls(
            source=row.source,
            success_rate=row.success_rate,
            recommended_method=row.recommended_method,
            sample_size=row.sample_size,
            preferred_method=row.preferred_method,
            rejects_email=row.rejects_email,
        )


def recommend_method(success_rate: float) -> str:
    """Channel to favor for a broker given its success rate."""
    if success_rate >= 70:
        return "EMAIL"
    if success_rate >= 40:
        return "BOTH"
    return "FORM"


def compute_success_rate(completed: int, failed: int, manual: int, min_sample: int) -> tuple[float, Optional[str]]:
    """Success rate and recommended method; neutral when history is sparse."""
    total = completed + failed + manual
    if total < min_sample:
        return NEUTRAL_SUCCESS_RATE, None
    rate = round(completed / total * 100, 1)
    return rate, recommend_method(rate)


class BrokerIntelligenceStore:
    """Read-through cache over removal outcomes, one instance per job run."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._memo: dict[str, BrokerIntel] = {}

    async def get_broker_intelligence(self, source: str) -> BrokerIntel:
        """Success rate and recommended method for ``source``.

        Sources without enough resolved requests get a neutral signal.
        """
        if source in self._memo:
            return self._memo[source]

        async with self.session_factory() as db:
            row = await db.get(BrokerIntelligence, source)
            now = utc_now()
            if row is not None and row.expires_at > now:
                intel = BrokerIntel.from_row(row)
            else:
                intel = await self._recompute(db, source, row)

        self._memo[source] = intel
        return intel

    async def _recompute(self, db: AsyncSession, source: str, row: Optional[BrokerIntelligence]) -> BrokerIntel:
        now = utc_now()
        since = now - timedelta(days=settings.broker_intel_lookback_days)

        result = await db.execute(
            select(RemovalRequest.status, func.count(RemovalRequest.id))
            .join(Exposure, RemovalRequest.exposure_id == Exposure.id)
            .where(
                Exposure.source == source,
                RemovalRequest.created_at >= since,
                RemovalRequest.status.in_(RESOLVED_STATUSES),
            )
            .group_by(RemovalRequest.status)
        )
        counts = {status: count for status, count in result.all()}
        completed = counts.get(RemovalStatus.COMPLETED.value, 0)
        failed = counts.get(RemovalStatus.FAILED.value, 0)
        manual = counts.get(RemovalStatus.REQUIRES_MANUAL.value, 0)
        rate, recommended = compute_success_rate(completed, failed, manual, settings.broker_intel_min_sample)

        if row is None:
            row = BrokerIntelligence(source=source)
            db.add(row)
        row.success_rate = rate
        row.completed_count = completed
        row.failed_count = failed
        row.manual_count = manual
        row.recommended_method = recommended
        row.rejects_email = bool(row.rejects_email)
        row.computed_at = now
        row.expires_at = now + timedelta(minutes=settings.broker_intel_cache_ttl_minutes)

        try:
            await db.commit()
        except IntegrityError:
            # Another run cached the same source first
            await db.rollback()
            logger.debug("Broker intelligence for %s cached concurrently", source)
            return BrokerIntel(source=source, success_rate=rate, recommended_method=recommended,
                               sample_size=completed + failed + manual)

        logger.debug("Broker intelligence for %s: %.1f%% over %d requests", source, rate, row.sample_size)
        return BrokerIntel.from_row(row)

    async def record_response_signal(
        self,
        source: str,
        rejects_email: Optional[bool] = None,
        preferred_method: Optional[str] = None,
    ) -> None:
        """Store a signal learned from a broker's reply."""
        now = utc_now()
        async with self.session_factory() as db:
            row = await db.get(BrokerIntelligence, source)
            if row is None:
                # Expired on arrival so the next read computes statistics
                row = BrokerIntelligence(
                    source=source,
                    success_rate=NEUTRAL_SUCCESS_RATE,
                    completed_count=0,
                    failed_count=0,
                    manual_count=0,
                    rejects_email=False,
                    computed_at=now,
                    expires_at=now,
                )
                db.add(row)
            if rejects_email is not None:
                row.rejects_email = rejects_email
            if preferred_method is not None:
                row.preferred_method = preferred_method
            row.last_signal_at = now
            await db.commit()

        self._memo.pop(source, None)
        logger.info(
            "Recorded broker signal for %s: rejects_email=%s preferred_method=%s",
            source, rejects_email, preferred_method,
        )

    async def invalidate(self, source: str) -> None:
        """Force recomputation on the next read."""
        async with self.session_factory() as db:
            await db.execute(
                update(BrokerIntelligence)
                .where(BrokerIntelligence.source == source)
                .values(expires_at=utc_now())
            )
            await db.commit()
        self._memo.pop(source, None)
