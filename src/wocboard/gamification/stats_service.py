"""User stats aggregation. PR counts and point totals.

Two point-total policies exist:

* ``pr_points`` (canonical): ``max(0, sum(PR.points)) + bonus_points``.
  PR-level points stay the source of truth; badge rewards and admin
  adjustments live in ``bonus_points`` (see ``ledger_service``).
* ``full_recompute``: ``merged_prs * 10 + total_prs * 5``. Ignores
  per-PR bonuses and the bonus ledger.

Every path that writes ``User.points`` goes through ``apply_total`` so the
configured policy is applied uniformly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.config import get_settings
from wocboard.db.models import PullRequest, User

logger = logging.getLogger(__name__)

POLICY_PR_POINTS = "pr_points"
POLICY_FULL_RECOMPUTE = "full_recompute"
POLICIES = frozenset({POLICY_PR_POINTS, POLICY_FULL_RECOMPUTE})

MERGED_PR_WEIGHT = 10
ANY_PR_WEIGHT = 5


@dataclass(frozen=True)
class PRAggregate:
    total_prs: int
    merged_prs: int
    pr_points: int


def resolve_policy(policy: str | None = None) -> str:
    """Return ``policy`` or the configured default, rejecting unknown names."""
    policy = policy or get_settings().points_policy
    if policy not in POLICIES:
        msg = f"Unknown points policy: {policy!r}"
        raise ValueError(msg)
    return policy


def total_points(
    policy: str,
    *,
    total_prs: int,
    merged_prs: int,
    pr_points: int,
    bonus_points: int,
) -> int:
    """Compute a user's point total under ``policy``."""
    if policy == POLICY_FULL_RECOMPUTE:
        return merged_prs * MERGED_PR_WEIGHT + total_prs * ANY_PR_WEIGHT
    return max(0, pr_points) + max(0, bonus_points)


def apply_total(user: User, policy: str | None = None) -> int:
    """Recompute ``user.points`` from the user's stored stats columns."""
    user.points = total_points(
        resolve_policy(policy),
        total_prs=user.total_prs or 0,
        merged_prs=user.merged_prs or 0,
        pr_points=user.pr_points or 0,
        bonus_points=user.bonus_points or 0,
    )
    return user.points


async def aggregate_pr_stats(db: AsyncSession, user_id: int) -> PRAggregate:
    """Count and sum a user's PR records in one query."""
    result = await db.execute(
        select(
            func.count(PullRequest.id),
            func.coalesce(func.sum(case((PullRequest.status == "merged", 1), else_=0)), 0),
            func.coalesce(func.sum(PullRequest.points), 0),
        ).where(PullRequest.user_id == user_id)
    )
    total, merged, points = result.one()
    return PRAggregate(total_prs=int(total), merged_prs=int(merged), pr_points=int(points))


async def refresh_user_stats(
    db: AsyncSession,
    user: User,
    policy: str | None = None,
) -> PRAggregate:
    """Rewrite a user's PR counts and point total from their PR records.

    Keeps ``bonus_points`` (badge rewards / admin adjustments) untouched,
    apart from clamping it at zero.
    """
    agg = await aggregate_pr_stats(db, user.id)

    user.total_prs = agg.total_prs
    user.merged_prs = agg.merged_prs
    user.pr_points = max(0, agg.pr_points)
    user.bonus_points = max(0, user.bonus_points or 0)
    apply_total(user, policy)

    await db.flush()
    logger.debug(
        "Stats refreshed for user %s: total=%d merged=%d points=%d",
        user.github_username, user.total_prs, user.merged_prs, user.points,
    )
    return agg
