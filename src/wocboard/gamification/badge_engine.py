"""Badge qualification engine: evaluates a user's stats against badge criteria."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import Badge, PullRequest, User, UserBadge
from wocboard.gamification.badge_service import award_badge

logger = logging.getLogger(__name__)


class BadgeEngine:
    """Evaluates active, auto-awarded badges for a user and awards the ones earned.

    Safe to run repeatedly: held badges never re-qualify, and the bonus
    ledger's idempotency key prevents double-counted rewards.
    """

    def __init__(self, db: AsyncSession, redis: object = None) -> None:
        self.db = db
        self.redis = redis

    async def _load_auto_badges(self) -> list[Badge]:
        result = await self.db.execute(
            select(Badge)
            .where(Badge.is_active.is_(True), Badge.is_auto_awarded.is_(True))
            .order_by(Badge.id)
        )
        return list(result.scalars().all())

    async def _held_badge_ids(self, user_id: int) -> set[int]:
        result = await self.db.execute(
            select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
        )
        return set(result.scalars().all())

    async def _recent_pr_count(self, user_id: int, days: int) -> int:
        """PRs created within the last ``days`` days (simplified streak)."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        result = await self.db.execute(
            select(func.count(PullRequest.id)).where(
                PullRequest.user_id == user_id,
                PullRequest.gh_created_at >= since,
            )
        )
        return int(result.scalar_one())

    async def meets_criteria(self, user: User, badge: Badge) -> bool:
        """Check the badge criterion only, ignoring whether the user holds it."""
        criteria = badge.criteria_type
        threshold = badge.criteria_threshold

        if criteria == "special" or threshold is None:
            return False
        if criteria == "pr_count":
            return user.total_prs >= threshold
        if criteria == "merged_prs":
            return user.merged_prs >= threshold
        if criteria == "points":
            return user.points >= threshold
        if criteria == "streak":
            return await self._recent_pr_count(user.id, threshold) >= threshold

        logger.warning("Unknown badge criteria type %r on badge %s", criteria, badge.id)
        return False

    async def qualifies(self, user: User, badge: Badge) -> bool:
        """True if the user does not hold the badge yet and meets its criterion."""
        if badge.id in await self._held_badge_ids(user.id):
            return False
        return await self.meets_criteria(user, badge)

    async def evaluate(self, user: User) -> list[Badge]:
        """Award every badge the user newly qualifies for.

        Returns the newly awarded badges (may be empty).
        """
        held = await self._held_badge_ids(user.id)
        awarded: list[Badge] = []

        for badge in await self._load_auto_badges():
            if badge.id in held:
                continue
            if not await self.meets_criteria(user, badge):
                continue
            if await award_badge(self.db, self.redis, user, badge):
                awarded.append(badge)
                held.add(badge.id)

        if awarded:
            logger.info(
                "Awarded badges %s to %s",
                [b.name for b in awarded], user.github_username,
            )
        return awarded
