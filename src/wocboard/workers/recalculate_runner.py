"""Standalone runner for a full leaderboard recalculation.

Recomputes every PR's points, every user's stats and badges, then ranks.

Usage: python -m wocboard.workers.recalculate_runner [role]
"""

from __future__ import annotations

import asyncio
import logging
import sys

from wocboard.config import get_settings
from wocboard.database import close_db, get_session_factory, init_db
from wocboard.db.models import USER_ROLES
from wocboard.gamification.pipeline import recalculate_leaderboard
from wocboard.redis_client import close_redis, get_redis_or_none, init_redis

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def main(role: str | None = None) -> int:
    """Run the recalculation. Returns a process exit code."""
    if role is not None and role not in USER_ROLES:
        logger.error("Unknown role %r (expected one of %s)", role, ", ".join(USER_ROLES))
        return 2

    settings = get_settings()
    await init_db(settings.database_url)
    try:
        await init_redis(settings.redis_url)
    except Exception:
        logger.warning("Redis unavailable; badge notifications disabled", exc_info=True)

    try:
        async with get_session_factory()() as db:
            summary = await recalculate_leaderboard(db, get_redis_or_none(), role=role)
            await db.commit()
        logger.info("Recalculation complete: %s", summary.to_dict())
        return 0
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))
