"""Lifecycle rules for exposures and removal requests.

Every status change is a conditional UPDATE guarded by the status the
caller observed. If another writer got there first the update matches no
rows and ``StaleTransition`` is raised. Callers own the transaction.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import (
    ExposureStatus,
    RemovalStatus,
    TERMINAL_REMOVAL_STATUSES,
)
from app.models.exposure import Exposure
from app.models.request import RemovalRequest
from app.models.whitelist import Whitelist
from app.services.errors import InvalidTransition, StaleTransition
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

E = ExposureStatus
R = RemovalStatus

EXPOSURE_TRANSITIONS: dict[ExposureStatus, set[ExposureStatus]] = {
    E.ACTIVE: {E.REMOVAL_PENDING, E.WHITELISTED, E.MONITORING},
    E.REMOVAL_PENDING: {E.REMOVAL_IN_PROGRESS, E.WHITELISTED},
    E.REMOVAL_IN_PROGRESS: {E.REMOVED, E.REMOVAL_FAILED, E.WHITELISTED},
    E.REMOVAL_FAILED: {E.WHITELISTED},
    E.MONITORING: {E.WHITELISTED},
    E.REMOVED: set(),
    # Only unwhitelist_exposure may leave WHITELISTED
    E.WHITELISTED: set(),
}

EXPOSURE_MAIN_CHAIN = [E.ACTIVE, E.REMOVAL_PENDING, E.REMOVAL_IN_PROGRESS, E.REMOVED]

REQUEST_TRANSITIONS: dict[RemovalStatus, set[RemovalStatus]] = {
    R.PENDING: {R.SUBMITTED, R.CANCELLED},
    R.SUBMITTED: {R.IN_PROGRESS, R.ACKNOWLEDGED, R.FAILED, R.CANCELLED, R.REQUIRES_MANUAL},
    R.IN_PROGRESS: {R.ACKNOWLEDGED, R.FAILED, R.CANCELLED, R.REQUIRES_MANUAL},
    R.ACKNOWLEDGED: {R.COMPLETED, R.REQUIRES_MANUAL, R.FAILED, R.CANCELLED},
    R.REQUIRES_MANUAL: {R.COMPLETED, R.CANCELLED},
    R.COMPLETED: set(),
    R.FAILED: set(),
    R.CANCELLED: set(),
}

REQUEST_MAIN_CHAIN = [R.PENDING, R.SUBMITTED, R.IN_PROGRESS, R.ACKNOWLEDGED, R.COMPLETED]

# Exposure status implied by a request reaching a status
REQUEST_TO_EXPOSURE: dict[RemovalStatus, ExposureStatus] = {
    R.SUBMITTED: E.REMOVAL_IN_PROGRESS,
    R.IN_PROGRESS: E.REMOVAL_IN_PROGRESS,
    R.ACKNOWLEDGED: E.REMOVAL_IN_PROGRESS,
    R.COMPLETED: E.REMOVED,
    R.FAILED: E.REMOVAL_FAILED,
}


def _path(transitions: dict, chain: list, current, target) -> list:
    """Statuses visited moving from ``current`` to ``target``, or [] if illegal."""
    if target in transitions.get(current, set()):
        return [target]
    if current in chain and target in chain:
        start, end = chain.index(current), chain.index(target)
        if start < end:
            hops = chain[start + 1:end + 1]
            previous = current
            for hop in hops:
                if hop not in transitions[previous]:
                    return []
                previous = hop
            return hops
    return []


def exposure_path(current: str, target: str) -> list[ExposureStatus]:
    return _path(EXPOSURE_TRANSITIONS, EXPOSURE_MAIN_CHAIN, E(current), E(target))


def request_path(current: str, target: str, force: bool = False) -> list[RemovalStatus]:
    """Hops from ``current`` to ``target``.

    ``force`` lets any non-terminal request go straight to REQUIRES_MANUAL.
    """
    current, target = R(current), R(target)
    path = _path(REQUEST_TRANSITIONS, REQUEST_MAIN_CHAIN, current, target)
    if not path and force and target == R.REQUIRES_MANUAL and current not in TERMINAL_REMOVAL_STATUSES \
            and current != R.REQUIRES_MANUAL:
        path = [target]
    return path


def can_transition_request(current: str, target: str, force: bool = False) -> bool:
    return bool(request_path(current, target, force=force))


def can_transition_exposure(current: str, target: str) -> bool:
    return bool(exposure_path(current, target))


def note_line(text: str) -> str:
    return f"[{utc_now().strftime('%Y-%m-%d %H:%M')}] {text}"


def _appended_notes(column, lines: list[str]):
    """SQL expression appending ``lines`` to a nullable notes column."""
    text = "\n".join(lines)
    return func.coalesce(column + "\n", "") + text


async def transition_exposure(
    db: AsyncSession,
    exposure_id: uuid.UUID,
    target: ExposureStatus,
    expected: Optional[ExposureStatus] = None,
    values: Optional[dict] = None,
) -> bool:
    """Move an exposure to ``target``.

    Returns False when the exposure is already there.
    """
    if expected is None:
        result = await db.execute(select(Exposure.status).where(Exposure.id == exposure_id))
        expected = result.scalar_one()
    expected, target = E(expected), E(target)
    if expected == target:
        return False

    if not exposure_path(expected, target):
        raise InvalidTransition("Exposure", expected.value, target.value)

    updates = dict(values or {})
    updates["status"] = target.value
    updates["updated_at"] = utc_now()
    if target == E.WHITELISTED:
        updates["is_whitelisted"] = True

    result = await db.execute(
        update(Exposure)
        .where(Exposure.id == exposure_id, Exposure.status == expected.value)
        .values(**updates)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StaleTransition("Exposure", exposure_id, expected.value)
    return True


async def transition_request(
    db: AsyncSession,
    request: RemovalRequest,
    target: RemovalStatus,
    note: Optional[str] = None,
    force: bool = False,
) -> list[RemovalStatus]:
    """Move a removal request to ``target`` and keep its exposure in step.

    Multi-hop moves along the main chain are written as one update with
    each hop recorded in the notes. Returns the hops taken.
    """
    current = R(request.status)
    target = R(target)
    path = request_path(current, target, force=force)
    if not path:
        raise InvalidTransition("RemovalRequest", current.value, target.value)

    now = utc_now()
    lines = []
    previous = current
    for hop in path:
        lines.append(note_line(f"{previous.value} -> {hop.value}"))
        previous = hop
    if note:
        lines.append(note_line(note))

    values = {
        "status": target.value,
        "updated_at": now,
        "notes": _appended_notes(RemovalRequest.notes, lines),
    }
    if R.SUBMITTED in path:
        values["submitted_at"] = now
    if target == R.COMPLETED:
        values["completed_at"] = now

    result = await db.execute(
        update(RemovalRequest)
        .where(RemovalRequest.id == request.id, RemovalRequest.status == current.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StaleTransition("RemovalRequest", request.id, current.value)

    exposure_target = REQUEST_TO_EXPOSURE.get(target)
    if exposure_target is not None:
        await _sync_exposure(db, request.exposure_id, exposure_target)

    await db.refresh(request)
    logger.info("Removal request %s: %s -> %s", request.id, current.value, target.value)
    return path


async def _sync_exposure(db: AsyncSession, exposure_id: uuid.UUID, target: ExposureStatus) -> None:
    result = await db.execute(select(Exposure.status).where(Exposure.id == exposure_id))
    current = E(result.scalar_one())
    if current == target:
        return
    if not exposure_path(current, target):
        # e.g. the exposure was whitelisted while the request was in flight
        logger.warning("Exposure %s left at %s; cannot follow request to %s", exposure_id, current.value, target.value)
        return
    await transition_exposure(db, exposure_id, target, expected=current)


async def append_note(db: AsyncSession, request_id: uuid.UUID, text: str) -> None:
    """Add a line to a request's audit trail without changing its status."""
    await db.execute(
        update(RemovalRequest)
        .where(RemovalRequest.id == request_id)
        .values(notes=_appended_notes(RemovalRequest.notes, [note_line(text)]), updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )


async def whitelist_exposure(
    db: AsyncSession,
    exposure: Exposure,
    reason: str,
    request_note: Optional[str] = None,
) -> None:
    """Exclude an exposure from automation.

    Cancels any open removal request, records the Whitelist entry and moves
    the exposure to WHITELISTED.
    """
    result = await db.execute(select(RemovalRequest).where(RemovalRequest.exposure_id == exposure.id))
    request = result.scalar_one_or_none()
    if request is not None and R(request.status) not in TERMINAL_REMOVAL_STATUSES:
        await transition_request(db, request, R.CANCELLED, note=request_note or reason)

    existing = await db.execute(
        select(Whitelist).where(Whitelist.user_id == exposure.user_id, Whitelist.source == exposure.source)
    )
    if existing.scalar_one_or_none() is None:
        db.add(Whitelist(
            user_id=exposure.user_id,
            source=exposure.source,
            source_name=exposure.source_name,
            reason=reason,
        ))

    await transition_exposure(db, exposure.id, E.WHITELISTED, expected=E(exposure.status))
    await db.refresh(exposure)


async def unwhitelist_exposure(db: AsyncSession, exposure: Exposure) -> None:
    """Return a whitelisted exposure to ACTIVE.

    The Whitelist entry for the source is dropped once no other exposure of
    the same user on that source is still WHITELISTED.
    """
    if E(exposure.status) != E.WHITELISTED:
        raise InvalidTransition("Exposure", exposure.status, E.ACTIVE.value)

    result = await db.execute(
        update(Exposure)
        .where(Exposure.id == exposure.id, Exposure.status == E.WHITELISTED.value)
        .values(status=E.ACTIVE.value, is_whitelisted=False, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StaleTransition("Exposure", exposure.id, E.WHITELISTED.value)

    still_whitelisted = await db.scalar(
        select(func.count())
        .select_from(Exposure)
        .where(
            Exposure.user_id == exposure.user_id,
            Exposure.source == exposure.source,
            Exposure.status == E.WHITELISTED.value,
            Exposure.id != exposure.id,
        )
    )
    if not still_whitelisted:
        await db.execute(
            delete(Whitelist).where(Whitelist.user_id == exposure.user_id, Whitelist.source == exposure.source)
        )
    await db.refresh(exposure)
