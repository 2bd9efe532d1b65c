"""Badge definitions and awards, with duplicate prevention and notification."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import Badge, User, UserBadge
from wocboard.errors import ConflictError, NotFoundError, ValidationError
from wocboard.gamification.ledger_service import grant_bonus

logger = logging.getLogger(__name__)


async def get_badge(db: AsyncSession, badge_id: int) -> Badge | None:
    """Fetch a badge by id."""
    return await db.get(Badge, badge_id)


async def get_badge_by_name(db: AsyncSession, name: str) -> Badge | None:
    """Fetch a badge by its unique name."""
    result = await db.execute(select(Badge).where(Badge.name == name))
    return result.scalar_one_or_none()


async def list_badges(db: AsyncSession, include_inactive: bool = False) -> list[Badge]:
    query = select(Badge).order_by(Badge.id)
    if not include_inactive:
        query = query.where(Badge.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def require_badge(db: AsyncSession, badge_id: int) -> Badge:
    badge = await get_badge(db, badge_id)
    if badge is None:
        msg = "Badge not found"
        raise NotFoundError(msg)
    return badge


def _check_threshold(criteria_type: str, threshold: int | None) -> None:
    if criteria_type != "special" and threshold is None:
        msg = "criteria_threshold is required unless criteria_type is special"
        raise ValidationError(msg, field="criteria_threshold")


async def create_badge(db: AsyncSession, data: dict) -> Badge:
    """Create a badge definition. Names are unique."""
    if await get_badge_by_name(db, data["name"]) is not None:
        msg = f"Badge {data['name']!r} already exists"
        raise ConflictError(msg)
    _check_threshold(data["criteria_type"], data.get("criteria_threshold"))

    badge = Badge(**data)
    db.add(badge)
    await db.flush()
    logger.info("Badge created: %s", badge.name)
    return badge


async def update_badge(db: AsyncSession, badge: Badge, changes: dict) -> Badge:
    """Partial update of a badge definition."""
    name = changes.get("name")
    if name and name != badge.name:
        clash = await get_badge_by_name(db, name)
        if clash is not None:
            msg = f"Badge {name!r} already exists"
            raise ConflictError(msg)

    for key, value in changes.items():
        if value is not None and hasattr(Badge, key):
            setattr(badge, key, value)
    _check_threshold(badge.criteria_type, badge.criteria_threshold)

    await db.flush()
    return badge


async def has_badge(db: AsyncSession, user_id: int, badge_id: int) -> bool:
    """Check if user already has a specific badge."""
    result = await db.execute(
        select(UserBadge.id).where(
            UserBadge.user_id == user_id,
            UserBadge.badge_id == badge_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def get_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """Awarded badges for a user, in award order."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.awarded_at.asc(), UserBadge.id.asc())
    )
    return list(result.scalars().all())


async def award_badge(
    db: AsyncSession,
    redis: object,
    user: User,
    badge: Badge,
    awarded_by: User | None = None,
    reason: str | None = None,
) -> bool:
    """Award a badge to a user.

    Returns True if awarded, False if already held.
    Handles:
    1. Insert into user_badges (with UNIQUE constraint)
    2. Grant the badge's points_reward through the bonus ledger (idempotent)
    3. Update badge award statistics
    4. Publish a badge_earned event
    """
    if await has_badge(db, user.id, badge.id):
        return False

    now = datetime.now(timezone.utc)
    badge_name, username = badge.name, user.github_username

    # Savepoint: a lost race only discards this row, not the caller's work
    try:
        async with db.begin_nested():
            db.add(UserBadge(
                user_id=user.id,
                badge_id=badge.id,
                awarded_at=now,
                awarded_by_id=awarded_by.id if awarded_by else None,
                reason=reason,
            ))
            await db.flush()
    except IntegrityError:
        logger.info("Badge %r already held by %s", badge_name, username)
        return False

    if badge.points_reward:
        await grant_bonus(
            db,
            user,
            amount=badge.points_reward,
            source="badge",
            idempotency_key=f"badge:{badge.id}:{user.id}",
            source_id=str(badge.id),
            reason=f'Earned badge: "{badge.name}"',
            actor_id=awarded_by.id if awarded_by else None,
        )

    badge.total_awarded = (badge.total_awarded or 0) + 1
    badge.last_awarded_at = now
    await db.flush()

    logger.info("Badge %r awarded to %s", badge.name, user.github_username)
    await _publish_badge_earned(redis, user, badge)
    return True


async def _publish_badge_earned(redis: object, user: User, badge: Badge) -> None:
    """Broadcast badge-earned event for live dashboards."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[union-attr]
            "pubsub:badge_earned",
            json.dumps({
                "user_id": user.id,
                "github_username": user.github_username,
                "badge_id": badge.id,
                "badge_name": badge.name,
                "rarity": badge.rarity,
                "points_reward": badge.points_reward,
            }),
        )
    except Exception:
        logger.warning("Failed to publish badge_earned notification", exc_info=True)
