"""Deterministic leaderboard ranking.

Active users ranked by points DESC, then total_prs DESC, then id ASC
(registration order) as the final tiebreaker. Every active user gets a
unique rank 1..N with no gaps; inactive users keep their last rank.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import User

logger = logging.getLogger(__name__)


async def assign_ranks(db: AsyncSession) -> int:
    """Rewrite ``User.rank`` for all active users. Returns the number ranked."""
    result = await db.execute(
        select(User)
        .where(User.is_active.is_(True))
        .order_by(User.points.desc(), User.total_prs.desc(), User.id.asc())
    )
    users = list(result.scalars().all())

    changed = 0
    for position, user in enumerate(users, start=1):
        if user.rank != position:
            user.rank = position
            changed += 1

    if changed:
        await db.flush()

    logger.info("Ranks assigned: %d active users, %d changed", len(users), changed)
    return len(users)
