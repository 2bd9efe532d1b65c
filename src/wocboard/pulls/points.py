"""Pull request point calculation.

Base points by status, plus size, file-count and validation bonuses:

    merged 10 / open 5 / closed 2 / draft 0
    +3  if additions + deletions > 100
    +5  if additions + deletions > 500   (stacks with the +3)
    +2  if changed_files > 5
    +5  if validated and approved

The result is never capped. Calculating points never touches user stats;
callers run the stats refresh themselves.
"""

from __future__ import annotations

from datetime import datetime, timezone

from wocboard.db.models import PullRequest

STATUS_BASE_POINTS: dict[str, int] = {
    "merged": 10,
    "open": 5,
    "closed": 2,
    "draft": 0,
}

LARGE_DIFF_LINES = 100
HUGE_DIFF_LINES = 500
LARGE_DIFF_BONUS = 3
HUGE_DIFF_BONUS = 5
MANY_FILES_THRESHOLD = 5
MANY_FILES_BONUS = 2
VALIDATION_BONUS = 5


def calculate_points(
    status: str,
    additions: int = 0,
    deletions: int = 0,
    changed_files: int = 0,
    is_validated: bool = False,
    validation_status: str | None = None,
) -> int:
    """Compute the point value of a PR from its status, diff size and validation."""
    points = STATUS_BASE_POINTS.get(status, 0)

    total_changes = (additions or 0) + (deletions or 0)
    if total_changes > LARGE_DIFF_LINES:
        points += LARGE_DIFF_BONUS
    if total_changes > HUGE_DIFF_LINES:
        points += HUGE_DIFF_BONUS

    if (changed_files or 0) > MANY_FILES_THRESHOLD:
        points += MANY_FILES_BONUS

    if is_validated and validation_status == "approved":
        points += VALIDATION_BONUS

    return points


def points_for(pr: PullRequest) -> int:
    """Points for a PR record, honouring a non-negative admin override."""
    if pr.points_override is not None and pr.points_override >= 0:
        return pr.points_override
    return calculate_points(
        status=pr.status,
        additions=pr.additions,
        deletions=pr.deletions,
        changed_files=pr.changed_files,
        is_validated=bool(pr.is_validated),
        validation_status=pr.validation_status,
    )


def apply_points(pr: PullRequest, now: datetime | None = None) -> int:
    """Set ``pr.points`` and ``pr.points_calculated_at``. Returns the points."""
    pr.points = points_for(pr)
    pr.points_calculated_at = now or datetime.now(timezone.utc)
    return pr.points
