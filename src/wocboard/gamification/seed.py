"""Default badge seed data."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import Badge

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # PR count
    {
        "name": "First Steps",
        "description": "Made your first pull request",
        "icon": "\U0001f476",
        "color": "#4CAF50",
        "criteria_type": "pr_count",
        "criteria_threshold": 1,
        "criteria_description": "Create 1 pull request",
        "rarity": "Common",
        "points_reward": 5,
    },
    {
        "name": "Getting Started",
        "description": "Made 5 pull requests",
        "icon": "\U0001f680",
        "color": "#2196F3",
        "criteria_type": "pr_count",
        "criteria_threshold": 5,
        "criteria_description": "Create 5 pull requests",
        "rarity": "Common",
        "points_reward": 10,
    },
    # Merged PRs
    {
        "name": "Contributor",
        "description": "Got your first pull request merged",
        "icon": "✅",
        "color": "#FF9800",
        "criteria_type": "merged_prs",
        "criteria_threshold": 1,
        "criteria_description": "Get 1 pull request merged",
        "rarity": "Rare",
        "points_reward": 15,
    },
    {
        "name": "Active Contributor",
        "description": "Got 5 pull requests merged",
        "icon": "⭐",
        "color": "#9C27B0",
        "criteria_type": "merged_prs",
        "criteria_threshold": 5,
        "criteria_description": "Get 5 pull requests merged",
        "rarity": "Epic",
        "points_reward": 25,
    },
    # Points
    {
        "name": "Point Master",
        "description": "Earned 100 points",
        "icon": "\U0001f48e",
        "color": "#F44336",
        "criteria_type": "points",
        "criteria_threshold": 100,
        "criteria_description": "Earn 100 points",
        "rarity": "Epic",
        "points_reward": 20,
    },
    {
        "name": "Legend",
        "description": "Earned 500 points",
        "icon": "\U0001f451",
        "color": "#FFD700",
        "criteria_type": "points",
        "criteria_threshold": 500,
        "criteria_description": "Earn 500 points",
        "rarity": "Legendary",
        "points_reward": 50,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Upsert the default badges by name. Returns the number created."""
    result = await db.execute(select(Badge))
    existing = {b.name: b for b in result.scalars().all()}

    created = 0
    for data in BADGE_SEED_DATA:
        badge = existing.get(data["name"])
        if badge is None:
            db.add(Badge(**data))
            created += 1
        else:
            for key, value in data.items():
                setattr(badge, key, value)

    await db.flush()
    logger.info("Seeded %d badge definitions (%d new)", len(BADGE_SEED_DATA), created)
    return created
