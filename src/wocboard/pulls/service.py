"""Pull request queries plus mentor validation and admin PR controls.

Every write that can change a PR's points re-runs the author's pipeline
(stats, badges) and reassigns ranks.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from wocboard.db.models import VALIDATION_OUTCOMES, Project, PullRequest, User
from wocboard.errors import NotFoundError, ValidationError
from wocboard.gamification.pipeline import recompute_user
from wocboard.gamification.ranking import assign_ranks
from wocboard.pulls.points import apply_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Admin-facing status labels -> (status, validation_status)
ADMIN_STATUS_MAP: dict[str, tuple[str, str | None]] = {
    "Merged": ("merged", "approved"),
    "Pending": ("open", None),
    "Rejected": ("closed", "rejected"),
}


def admin_status_label(status: str) -> str:
    """Collapse a PR status into the admin dashboard's three labels."""
    if status == "merged":
        return "Merged"
    if status == "open":
        return "Pending"
    return "Rejected"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_pull_request(db: AsyncSession, pr_id: int) -> PullRequest:
    pr = await db.get(PullRequest, pr_id)
    if pr is None:
        msg = "Pull request not found"
        raise NotFoundError(msg)
    return pr


async def list_pull_requests(
    db: AsyncSession,
    status: str | None = None,
    user_id: int | None = None,
    project_id: int | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[PullRequest], int]:
    """Filtered PRs, newest first."""
    conditions: list[Any] = []
    if status:
        conditions.append(PullRequest.status == status)
    if user_id is not None:
        conditions.append(PullRequest.user_id == user_id)
    if project_id is not None:
        conditions.append(PullRequest.project_id == project_id)

    total_result = await db.execute(select(func.count(PullRequest.id)).where(*conditions))
    total = total_result.scalar_one()

    result = await db.execute(
        select(PullRequest)
        .where(*conditions)
        .order_by(PullRequest.gh_created_at.desc(), PullRequest.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def recent_pull_requests(db: AsyncSession, limit: int = 10) -> list[PullRequest]:
    result = await db.execute(
        select(PullRequest)
        .order_by(PullRequest.gh_updated_at.desc(), PullRequest.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def _rescore(db: AsyncSession, pr: PullRequest, redis: object) -> None:
    apply_points(pr)
    await db.flush()
    author = await db.get(User, pr.user_id)
    if author is not None:
        await recompute_user(db, author, redis)
    await assign_ranks(db)


async def validate_pull_request(
    db: AsyncSession,
    pr: PullRequest,
    validator: User,
    outcome: str,
    notes: str | None = None,
    redis: object = None,
) -> PullRequest:
    """Record a mentor/admin review of a PR.

    Raises:
        ValidationError: Unknown outcome.
        PermissionError: Validator is neither an admin nor the project's mentor.
    """
    if outcome not in VALIDATION_OUTCOMES:
        msg = f"Validation status must be one of {', '.join(VALIDATION_OUTCOMES)}"
        raise ValidationError(msg, field="validation_status")

    if validator.role != "Admin":
        project = await db.get(Project, pr.project_id)
        if project is None or project.mentor_id != validator.id:
            msg = "Only the project's mentor or an admin can validate this pull request"
            raise PermissionError(msg)

    pr.is_validated = True
    pr.validation_status = outcome
    pr.validated_by_id = validator.id
    pr.validated_at = datetime.now(timezone.utc)
    if notes is not None:
        pr.validation_notes = notes

    await _rescore(db, pr, redis)
    logger.info(
        "PR #%s validated as %s by %s (points=%d)",
        pr.github_pr_number, outcome, validator.github_username, pr.points,
    )
    return pr


async def set_admin_status(
    db: AsyncSession,
    pr: PullRequest,
    admin: User,
    status: str,
    reason: str | None = None,
    admin_note: str | None = None,
    redis: object = None,
) -> tuple[PullRequest, str]:
    """Apply an admin status label (Pending / Merged / Rejected). Returns (pr, old_status)."""
    if status not in ADMIN_STATUS_MAP:
        msg = "Invalid status"
        raise ValidationError(msg, field="status")

    old_status = pr.status
    new_status, validation = ADMIN_STATUS_MAP[status]
    pr.status = new_status

    if validation is not None:
        pr.is_validated = True
        pr.validation_status = validation
        pr.validated_by_id = admin.id
        pr.validated_at = datetime.now(timezone.utc)

    if admin_note:
        pr.validation_notes = admin_note
    elif status == "Rejected":
        pr.validation_notes = reason or "Rejected by admin"

    await _rescore(db, pr, redis)
    logger.info(
        "Admin %s changed PR #%s status from %s to %s. Reason: %s",
        admin.github_username, pr.github_pr_number, old_status, pr.status, reason or "N/A",
    )
    return pr, old_status


async def override_points(
    db: AsyncSession,
    pr: PullRequest,
    admin: User,
    points: int,
    reason: str,
    redis: object = None,
) -> tuple[PullRequest, int]:
    """Pin a PR's points to a fixed value. Returns (pr, old_points)."""
    if points < 0:
        msg = "Points must be zero or greater"
        raise ValidationError(msg, field="points")

    old_points = pr.points
    pr.points_override = points
    await _rescore(db, pr, redis)
    logger.warning(
        "Admin %s adjusted PR #%s points from %d to %d. Reason: %s",
        admin.github_username, pr.github_pr_number, old_points, points, reason,
    )
    return pr, old_points


async def add_note(db: AsyncSession, pr: PullRequest, admin: User, note: str) -> PullRequest:
    if not note or not note.strip():
        msg = "Note cannot be empty"
        raise ValidationError(msg, field="note")
    pr.validation_notes = note
    await db.flush()
    logger.info("Admin %s added note to PR #%s", admin.github_username, pr.github_pr_number)
    return pr
