"""Project registry business logic."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, distinct, func, or_, select

from wocboard.db.models import DIFFICULTIES, Project, PullRequest, User
from wocboard.errors import ConflictError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from wocboard.github.client import GitHubClient

logger = logging.getLogger(__name__)

GITHUB_REPO_URL = re.compile(r"^https://github\.com/([\w\-.]+)/([\w\-.]+?)(?:\.git)?/?$")

UPDATABLE_FIELDS = ("name", "description", "difficulty", "tags", "tech_stack", "mentor_id",
                    "is_active", "is_approved", "sync_enabled")


def parse_github_url(url: str) -> tuple[str, str]:
    """Split ``https://github.com/<owner>/<repo>`` into (owner, repo)."""
    match = GITHUB_REPO_URL.match(url.strip())
    if match is None:
        msg = "Invalid GitHub repository URL"
        raise ValidationError(msg, field="github_url")
    return match.group(1), match.group(2)


async def get_project(db: AsyncSession, project_id: int) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        msg = "Project not found"
        raise NotFoundError(msg)
    return project


async def list_projects(
    db: AsyncSession,
    status: str = "approved",
    difficulty: str | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int = 12,
) -> tuple[list[Project], int]:
    """Active projects filtered by approval status (approved / pending / all)."""
    conditions: list[Any] = [Project.is_active.is_(True)]
    if status == "approved":
        conditions.append(Project.is_approved.is_(True))
    elif status == "pending":
        conditions.append(Project.is_approved.is_(False))
    if difficulty:
        conditions.append(Project.difficulty == difficulty)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Project.name.ilike(pattern), Project.description.ilike(pattern)))

    total_result = await db.execute(select(func.count(Project.id)).where(*conditions))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Project)
        .where(*conditions)
        .order_by(Project.created_at.desc(), Project.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def create_project(
    db: AsyncSession,
    github: GitHubClient,
    creator: User,
    github_url: str,
    name: str | None = None,
    description: str | None = None,
    difficulty: str | None = None,
    tags: list[str] | None = None,
    tech_stack: list[str] | None = None,
    mentor_id: int | None = None,
) -> Project:
    """Register a repository after checking it is unique and reachable on GitHub.

    Raises:
        ValidationError: Malformed URL, unknown difficulty or inaccessible repository.
        ConflictError: The repository is already registered.
    """
    owner, repo = parse_github_url(github_url)

    if difficulty is not None and difficulty not in DIFFICULTIES:
        msg = f"Difficulty must be one of {', '.join(DIFFICULTIES)}"
        raise ValidationError(msg, field="difficulty")

    existing = await db.execute(
        select(Project.id).where(Project.github_owner == owner, Project.github_repo == repo)
    )
    if existing.scalar_one_or_none() is not None:
        msg = "This repository is already registered as a project"
        raise ConflictError(msg)

    validation = await github.validate_repository(owner, repo)
    if not validation["valid"]:
        msg = f"Cannot access repository: {validation['error']}"
        raise ValidationError(msg, field="github_url")
    repo_data = validation["data"]

    language = repo_data.get("language")
    project = Project(
        name=name or repo_data.get("name") or repo,
        description=description or repo_data.get("description") or "",
        github_url=github_url,
        github_owner=owner,
        github_repo=repo,
        difficulty=difficulty or "Intermediate",
        tags=tags or [],
        tech_stack=tech_stack or ([language] if language else []),
        mentor_id=mentor_id or creator.id,
        stars=repo_data.get("stargazers_count") or 0,
        forks=repo_data.get("forks_count") or 0,
        is_approved=creator.role == "Admin",
    )
    db.add(project)
    await db.flush()
    await db.refresh(project, attribute_names=["mentor"])

    logger.info("Project created: %s by %s", project.name, creator.github_username)
    return project


async def update_project(db: AsyncSession, project: Project, changes: dict[str, Any]) -> Project:
    """Apply a partial update; unknown keys are ignored."""
    if changes.get("difficulty") is not None and changes["difficulty"] not in DIFFICULTIES:
        msg = f"Difficulty must be one of {', '.join(DIFFICULTIES)}"
        raise ValidationError(msg, field="difficulty")
    if changes.get("mentor_id") is not None and await db.get(User, changes["mentor_id"]) is None:
        msg = "Mentor not found"
        raise NotFoundError(msg)

    for field in UPDATABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(project, field, changes[field])

    await db.flush()
    if changes.get("mentor_id") is not None:
        await db.refresh(project, attribute_names=["mentor"])
    return project


async def refresh_project_stats(db: AsyncSession, project: Project) -> Project:
    """Recount PRs, merged PRs and distinct contributors for a project."""
    result = await db.execute(
        select(
            func.count(PullRequest.id),
            func.coalesce(func.sum(case((PullRequest.status == "merged", 1), else_=0)), 0),
            func.count(distinct(PullRequest.user_id)),
        ).where(PullRequest.project_id == project.id)
    )
    total, merged, contributors = result.one()
    project.total_prs = int(total)
    project.merged_prs = int(merged)
    project.contributors = int(contributors)
    await db.flush()
    return project
