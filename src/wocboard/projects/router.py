"""Project router: all /api/v1/projects/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.auth.dependencies import require_admin, require_mentor
from wocboard.database import get_session
from wocboard.db.models import Project, User
from wocboard.dependencies import get_github_client, get_optional_redis
from wocboard.github.client import GitHubClient
from wocboard.github.sync_service import SYNC_IN_PROGRESS, ProjectSyncService, SyncResult
from wocboard.projects.schemas import (
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdateRequest,
    SyncResultResponse,
)
from wocboard.projects.service import create_project, get_project, list_projects, update_project

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])


def ensure_can_manage(project: Project, user: User) -> None:
    """Mentors may only act on projects they mentor; admins on any."""
    if user.role != "Admin" and project.mentor_id != user.id:
        raise HTTPException(status_code=403, detail="You can only manage your own projects")


def sync_response(result: SyncResult, response: Response) -> SyncResultResponse:
    """Render a sync result; failed syncs keep their body but not a 200."""
    if not result.success:
        response.status_code = 409 if result.error == SYNC_IN_PROGRESS else 502
    return SyncResultResponse(**result.to_dict())


@router.get("", response_model=ProjectListResponse)
async def list_projects_endpoint(
    status: str = Query("approved", pattern="^(approved|pending|all)$"),
    difficulty: str | None = Query(None),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    per_page: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> ProjectListResponse:
    projects, total = await list_projects(
        db, status=status, difficulty=difficulty, search=search, page=page, per_page=per_page,
    )
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project_endpoint(
    project_id: int,
    db: AsyncSession = Depends(get_session),
) -> ProjectResponse:
    return ProjectResponse.model_validate(await get_project(db, project_id))


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project_endpoint(
    body: ProjectCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    github: GitHubClient = Depends(get_github_client),
) -> ProjectResponse:
    """Register a GitHub repository (validated against the GitHub API)."""
    project = await create_project(db, github, admin, **body.model_dump())
    await db.commit()
    logger.info("project_created", project_id=project.id, repo=f"{project.github_owner}/{project.github_repo}")
    return ProjectResponse.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project_endpoint(
    project_id: int,
    body: ProjectUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ProjectResponse:
    project = await get_project(db, project_id)
    project = await update_project(db, project, body.model_dump(exclude_unset=True))
    await db.commit()
    logger.info("project_updated", project_id=project.id, actor_id=admin.id)
    return ProjectResponse.model_validate(project)


@router.post("/{project_id}/sync", response_model=SyncResultResponse)
async def sync_project_endpoint(
    project_id: int,
    response: Response,
    user: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
    github: GitHubClient = Depends(get_github_client),
    redis: object = Depends(get_optional_redis),
) -> SyncResultResponse:
    """Sync one project's PRs from GitHub now."""
    project = await get_project(db, project_id)
    ensure_can_manage(project, user)
    actor_id = user.id
    result = await ProjectSyncService(db, github, redis).sync_project(project)
    logger.info("project_synced", project_id=project_id, success=result.success, actor_id=actor_id)
    return sync_response(result, response)
