"""Admin overview aggregation.

Counts across users, projects, pull requests and badges, plus the
"needs attention" alerts shown on the admin dashboard.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import Project, PullRequest, User, UserBadge

logger = structlog.get_logger()

TOP_CONTRIBUTORS_LIMIT = 5
INACTIVE_PROJECT_DAYS = 7


async def _count(db: AsyncSession, model: type, *where: object) -> int:
    query = select(func.count()).select_from(model)
    if where:
        query = query.where(*where)
    return (await db.execute(query)).scalar_one()


async def get_overview(db: AsyncSession) -> dict:
    """Dashboard counters, top contributors and alerts."""
    pending_prs = await _count(
        db, PullRequest, PullRequest.status == "open", PullRequest.is_validated.is_(False),
    )

    total_points = (
        await db.execute(select(func.coalesce(func.sum(User.points), 0)).where(User.role == "Contributor"))
    ).scalar_one()

    stale_before = datetime.now(timezone.utc) - timedelta(days=INACTIVE_PROJECT_DAYS)
    inactive_projects = await _count(
        db, Project, Project.is_active.is_(True), Project.updated_at < stale_before,
    )

    top_result = await db.execute(
        select(User)
        .where(User.role == "Contributor", User.is_active.is_(True))
        .order_by(User.points.desc(), User.total_prs.desc(), User.id)
        .limit(TOP_CONTRIBUTORS_LIMIT)
    )

    stats = {
        "total_users": await _count(db, User),
        "active_contributors": await _count(
            db, User, User.role == "Contributor", User.is_active.is_(True),
        ),
        "total_projects": await _count(db, Project),
        "active_projects": await _count(db, Project, Project.is_active.is_(True)),
        "total_prs": await _count(db, PullRequest),
        "merged_prs": await _count(db, PullRequest, PullRequest.status == "merged"),
        "pending_prs": pending_prs,
        "total_points_distributed": int(total_points),
        "badges_issued": await _count(db, UserBadge),
    }
    logger.debug("admin_overview_computed", **stats)

    return {
        "stats": stats,
        "top_contributors": [
            {
                "id": u.id,
                "github_username": u.github_username,
                "full_name": u.full_name,
                "avatar_url": u.avatar_url,
                "points": u.points,
            }
            for u in top_result.scalars().all()
        ],
        "alerts": {"pending_prs": pending_prs, "inactive_projects": inactive_projects},
    }
