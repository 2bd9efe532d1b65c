"""Recalculation pipeline: PR points, user stats, badges, then ranks."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import Badge, PullRequest, User
from wocboard.gamification.badge_engine import BadgeEngine
from wocboard.gamification.ranking import assign_ranks
from wocboard.gamification.stats_service import refresh_user_stats
from wocboard.pulls.points import apply_points, points_for

logger = logging.getLogger(__name__)


@dataclass
class RecalculationSummary:
    prs_scanned: int = 0
    prs_changed: int = 0
    users_recomputed: int = 0
    users_changed: int = 0
    ranked: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


async def recompute_user(db: AsyncSession, user: User, redis: object = None) -> list[Badge]:
    """Refresh a user's stats from their PRs, then award any newly earned badges."""
    await refresh_user_stats(db, user)
    return await BadgeEngine(db, redis).evaluate(user)


async def recompute_pr_points(db: AsyncSession) -> tuple[int, int]:
    """Recalculate points for every PR. Returns (scanned, changed)."""
    result = await db.execute(select(PullRequest).order_by(PullRequest.id))
    prs = list(result.unique().scalars().all())

    now = datetime.now(timezone.utc)
    changed = 0
    for pr in prs:
        if points_for(pr) != pr.points:
            apply_points(pr, now)
            changed += 1

    await db.flush()
    return len(prs), changed


async def recalculate_leaderboard(
    db: AsyncSession,
    redis: object = None,
    role: str | None = None,
    recalculate_pr_points: bool = True,
) -> RecalculationSummary:
    """Full rebuild of the leaderboard.

    1. Recompute every PR's points (optional)
    2. Recompute stats and badges for every user (optionally one role)
    3. Assign ranks globally
    """
    summary = RecalculationSummary()

    if recalculate_pr_points:
        summary.prs_scanned, summary.prs_changed = await recompute_pr_points(db)

    query = select(User).order_by(User.id)
    if role:
        query = query.where(User.role == role)
    users = list((await db.execute(query)).scalars().all())

    for user in users:
        before = (user.total_prs, user.merged_prs, user.points)
        await recompute_user(db, user, redis)
        summary.users_recomputed += 1
        if (user.total_prs, user.merged_prs, user.points) != before:
            summary.users_changed += 1

    summary.ranked = await assign_ranks(db)

    logger.info(
        "Leaderboard recalculated: %d/%d PRs changed, %d/%d users changed, %d ranked",
        summary.prs_changed, summary.prs_scanned,
        summary.users_changed, summary.users_recomputed, summary.ranked,
    )
    return summary
