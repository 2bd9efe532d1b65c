"""Pull request sync from GitHub into the local leaderboard.

Per project:
1. List all PRs (paginated, state=all)
2. For each PR: resolve the author by GitHub username (unknown authors are
   skipped), fetch detail for diff metrics (falling back to the list
   payload), create or update the record, recompute its points, then
   refresh the author's stats and badges
3. Recount project stats, stamp ``last_sync_at``, reassign ranks once

Each PR is committed on its own; a failing PR is rolled back, logged and
reported without aborting the rest. A failure listing PRs aborts only that
project. Nothing is retried within a pass.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.config import get_settings
from wocboard.db.models import Project, PullRequest, User
from wocboard.errors import ExternalServiceError
from wocboard.gamification.pipeline import recompute_user
from wocboard.gamification.ranking import assign_ranks
from wocboard.github.client import GitHubAPIError, GitHubClient
from wocboard.projects.service import refresh_project_stats
from wocboard.pulls.points import apply_points

logger = logging.getLogger(__name__)

SYNC_LOCK_KEY = "sync:lock:project:{project_id}"
SYNC_IN_PROGRESS = "sync already in progress"

# Mutable fields copied from the GitHub payload on every sync.
DIFF_FIELDS = ("additions", "deletions", "changed_files", "commits")


@dataclass
class SyncResult:
    project: str
    project_id: int
    success: bool = True
    synced_count: int = 0
    new_count: int = 0
    skipped_count: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    last_sync_at: datetime | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def derive_status(gh_pr: dict[str, Any]) -> str:
    """``merged`` when a merge timestamp is present, else GitHub's raw state."""
    if gh_pr.get("merged_at"):
        return "merged"
    return gh_pr.get("state") or "open"


def pr_fields(gh_pr: dict[str, Any], now: datetime) -> dict[str, Any]:
    """Map a GitHub PR payload onto ``PullRequest`` columns."""
    fields: dict[str, Any] = {
        "github_pr_number": gh_pr["number"],
        "title": gh_pr.get("title") or "",
        "description": gh_pr.get("body") or "",
        "github_url": gh_pr.get("html_url") or "",
        "status": derive_status(gh_pr),
        "gh_created_at": _parse_timestamp(gh_pr.get("created_at")) or now,
        "gh_updated_at": _parse_timestamp(gh_pr.get("updated_at")) or now,
        "merged_at": _parse_timestamp(gh_pr.get("merged_at")),
        "closed_at": _parse_timestamp(gh_pr.get("closed_at")),
        "last_sync_at": now,
    }
    for name in DIFF_FIELDS:
        fields[name] = gh_pr.get(name) or 0
    return fields


class ProjectSyncService:
    """Syncs registered projects' pull requests from GitHub.

    The GitHub client is injected; Redis is optional and only used for the
    per-project lock and badge notifications.
    """

    def __init__(
        self,
        db: AsyncSession,
        github: GitHubClient,
        redis: object = None,
        lock_ttl_seconds: int | None = None,
    ) -> None:
        self.db = db
        self.github = github
        self.redis = redis
        self.lock_ttl_seconds = lock_ttl_seconds or get_settings().sync_lock_ttl_seconds

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    async def _acquire_lock(self, project_id: int) -> bool:
        if self.redis is None:
            return True
        try:
            acquired = await self.redis.set(  # type: ignore[union-attr]
                SYNC_LOCK_KEY.format(project_id=project_id),
                datetime.now(timezone.utc).isoformat(),
                nx=True,
                ex=self.lock_ttl_seconds,
            )
        except Exception:
            logger.warning("Sync lock unavailable for project %s; continuing unlocked",
                           project_id, exc_info=True)
            return True
        return bool(acquired)

    async def _release_lock(self, project_id: int) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.delete(SYNC_LOCK_KEY.format(project_id=project_id))  # type: ignore[union-attr]
        except Exception:
            logger.warning("Failed to release sync lock for project %s", project_id, exc_info=True)

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync_project(self, project: Project) -> SyncResult:
        """Sync one project. Never raises for per-PR or GitHub failures."""
        project_id = project.id
        name = project.name
        owner, repo = project.github_owner, project.github_repo
        result = SyncResult(project=name, project_id=project_id)

        if not await self._acquire_lock(project_id):
            logger.warning("Sync already in progress for project %s", name)
            result.success = False
            result.error = SYNC_IN_PROGRESS
            return result

        try:
            logger.info("Starting PR sync for project: %s (%s/%s)", name, owner, repo)
            try:
                gh_prs = await self.github.list_pull_requests(owner, repo, state="all")
            except ExternalServiceError as exc:
                logger.error("Failed to list PRs for project %s: %s", name, exc)
                result.success = False
                result.error = str(exc)
                return result

            for gh_pr in gh_prs:
                number = gh_pr.get("number")
                try:
                    outcome = await self._sync_pull_request(project_id, owner, repo, gh_pr)
                    await self.db.commit()
                except Exception as exc:
                    await self.db.rollback()
                    logger.exception("Error syncing PR #%s for project %s", number, name)
                    result.errors.append({"pr": number, "error": str(exc)})
                    continue

                if outcome == "skipped":
                    result.skipped_count += 1
                    continue
                result.synced_count += 1
                if outcome == "created":
                    result.new_count += 1

            project = await self.db.get(Project, project_id)
            await refresh_project_stats(self.db, project)
            project.last_sync_at = datetime.now(timezone.utc)
            await assign_ranks(self.db)
            await self.db.commit()
            result.last_sync_at = project.last_sync_at

            logger.info(
                "PR sync completed for %s: %d synced, %d new, %d skipped, %d errors",
                name, result.synced_count, result.new_count,
                result.skipped_count, len(result.errors),
            )
            return result
        finally:
            await self._release_lock(project_id)

    async def _sync_pull_request(
        self,
        project_id: int,
        owner: str,
        repo: str,
        gh_pr: dict[str, Any],
    ) -> str:
        """Reconcile one GitHub PR. Returns ``created``, ``updated`` or ``skipped``."""
        login = (gh_pr.get("user") or {}).get("login")
        user = None
        if login:
            user_result = await self.db.execute(select(User).where(User.github_username == login))
            user = user_result.scalar_one_or_none()
        if user is None:
            logger.warning("User not found for GitHub username: %s", login)
            return "skipped"

        detail = gh_pr
        try:
            detail = await self.github.get_pull_request(owner, repo, gh_pr["number"])
        except GitHubAPIError as exc:
            logger.warning("Falling back to list payload for PR #%s: %s", gh_pr["number"], exc)

        now = datetime.now(timezone.utc)
        existing = await self.db.execute(
            select(PullRequest).where(
                PullRequest.github_pr_id == gh_pr["id"],
                PullRequest.project_id == project_id,
            )
        )
        pr = existing.scalar_one_or_none()

        outcome = "updated"
        if pr is None:
            pr = PullRequest(
                github_pr_id=gh_pr["id"],
                user_id=user.id,
                project_id=project_id,
                submission_type="auto_sync",
            )
            self.db.add(pr)
            outcome = "created"

        for key, value in pr_fields(detail, now).items():
            setattr(pr, key, value)
        apply_points(pr, now)
        await self.db.flush()

        await recompute_user(self.db, user, self.redis)
        return outcome

    async def sync_all_projects(self) -> list[SyncResult]:
        """Sync every active, approved, sync-enabled project, continuing past failures."""
        id_result = await self.db.execute(
            select(Project.id, Project.name)
            .where(
                Project.is_active.is_(True),
                Project.is_approved.is_(True),
                Project.sync_enabled.is_(True),
            )
            .order_by(Project.id)
        )
        targets = list(id_result.all())
        logger.info("Starting sync for %d projects", len(targets))

        results: list[SyncResult] = []
        for project_id, name in targets:
            try:
                project = await self.db.get(Project, project_id)
                results.append(await self.sync_project(project))
            except Exception as exc:
                await self.db.rollback()
                logger.exception("Failed to sync project %s", name)
                results.append(SyncResult(project=name, project_id=project_id,
                                          success=False, error=str(exc)))

        logger.info("All projects sync completed")
        return results
