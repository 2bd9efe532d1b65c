"""Bonus point ledger with idempotency.

Badge rewards and admin adjustments are recorded as ledger rows instead of
in-place mutations; ``User.bonus_points`` is the denormalized ledger sum, floored at zero.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import PointAdjustment, User
from wocboard.errors import NotFoundError
from wocboard.gamification.stats_service import apply_total

logger = logging.getLogger(__name__)


async def grant_bonus(
    db: AsyncSession,
    user: User,
    amount: int,
    source: str,
    idempotency_key: str,
    source_id: str | None = None,
    reason: str | None = None,
    actor_id: int | None = None,
) -> bool:
    """Append a bonus entry for a user. Returns True if granted, False if duplicate.

    After granting:
    1. Insert into point_adjustments
    2. Set users.bonus_points to the ledger sum, clamped at zero
    3. Recompute users.points under the active policy
    """
    existing = await db.execute(
        select(PointAdjustment.id).where(PointAdjustment.idempotency_key == idempotency_key)
    )
    if existing.scalar_one_or_none() is not None:
        return False

    db.add(PointAdjustment(
        user_id=user.id,
        amount=amount,
        source=source,
        source_id=source_id,
        reason=reason,
        actor_id=actor_id,
        idempotency_key=idempotency_key,
    ))

    await db.flush()
    user.bonus_points = max(0, await ledger_total(db, user.id))
    apply_total(user)

    await db.flush()
    return True


async def ledger_total(db: AsyncSession, user_id: int) -> int:
    """Signed sum of a user's ledger entries."""
    result = await db.execute(
        select(func.coalesce(func.sum(PointAdjustment.amount), 0)).where(PointAdjustment.user_id == user_id)
    )
    return int(result.scalar_one())


async def adjust_points(
    db: AsyncSession,
    user_id: int,
    amount: int,
    reason: str,
    actor: User,
) -> tuple[User, int]:
    """Admin point adjustment. Returns (user, old_points)."""
    user = await db.get(User, user_id)
    if user is None:
        msg = "User not found"
        raise NotFoundError(msg)

    old_points = user.points
    await grant_bonus(
        db,
        user,
        amount=amount,
        source="admin",
        idempotency_key=f"admin:{user.id}:{uuid.uuid4().hex}",
        source_id=str(actor.id),
        reason=reason,
        actor_id=actor.id,
    )
    logger.warning(
        "Admin %s adjusted points for %s from %d to %d (change %+d). Reason: %s",
        actor.github_username, user.github_username, old_points, user.points, amount, reason,
    )
    return user, old_points


async def get_ledger_history(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[PointAdjustment], int]:
    """Paginated ledger entries for a user, newest first."""
    total_result = await db.execute(
        select(func.count()).select_from(PointAdjustment).where(PointAdjustment.user_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(PointAdjustment)
        .where(PointAdjustment.user_id == user_id)
        .order_by(PointAdjustment.created_at.desc(), PointAdjustment.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
