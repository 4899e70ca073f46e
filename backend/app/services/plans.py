"""Plan lookups and monthly removal quotas."""

import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.models.enums import Plan
from app.models.request import RemovalRequest
from app.models.user import User

UNLIMITED = -1

PLAN_REMOVAL_LIMITS = {
    Plan.FREE.value: 3,
    Plan.PRO.value: UNLIMITED,
    Plan.ENTERPRISE.value: UNLIMITED,
}


def removal_limit(plan: str) -> int:
    """Monthly removal request limit for a plan, ``UNLIMITED`` for no limit."""
    return PLAN_REMOVAL_LIMITS.get(plan, PLAN_REMOVAL_LIMITS[Plan.FREE.value])


def is_unlimited(plan: str) -> bool:
    return removal_limit(plan) == UNLIMITED


async def get_effective_plans(db: AsyncSession, user_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]:
    """Effective plan per user in one query.

    Family members inherit ENTERPRISE from their family owner. Users that
    do not exist are treated as FREE.
    """
    ids = list(set(user_ids))
    if not ids:
        return {}

    owner = aliased(User)
    result = await db.execute(
        select(User.id, User.plan, owner.plan)
        .outerjoin(owner, User.family_owner_id == owner.id)
        .where(User.id.in_(ids))
    )

    plans = {user_id: Plan.FREE.value for user_id in ids}
    for user_id, plan, owner_plan in result.all():
        if owner_plan == Plan.ENTERPRISE.value:
            plans[user_id] = Plan.ENTERPRISE.value
        else:
            plans[user_id] = plan or Plan.FREE.value
    return plans


async def get_monthly_removal_counts(
    db: AsyncSession,
    user_ids: Iterable[uuid.UUID],
    since: datetime,
) -> dict[uuid.UUID, int]:
    """Removal requests created per user since ``since``, grouped in one query."""
    ids = list(set(user_ids))
    if not ids:
        return {}

    result = await db.execute(
        select(RemovalRequest.user_id, func.count(RemovalRequest.id))
        .where(RemovalRequest.user_id.in_(ids), RemovalRequest.created_at >= since)
        .group_by(RemovalRequest.user_id)
    )
    counts = {user_id: 0 for user_id in ids}
    counts.update({user_id: count for user_id, count in result.all()})
    return counts
