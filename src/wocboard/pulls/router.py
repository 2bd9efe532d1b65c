"""Pull request router: all /api/v1/pull-requests/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.auth.dependencies import require_mentor
from wocboard.database import get_session
from wocboard.db.models import PR_STATUSES, User
from wocboard.dependencies import get_github_client, get_optional_redis
from wocboard.errors import ValidationError
from wocboard.github.client import GitHubClient
from wocboard.github.sync_service import ProjectSyncService
from wocboard.projects.router import ensure_can_manage, sync_response
from wocboard.projects.schemas import SyncResultResponse
from wocboard.projects.service import get_project
from wocboard.pulls.schemas import PullRequestListResponse, PullRequestResponse, ValidateRequest
from wocboard.pulls.service import (
    get_pull_request,
    list_pull_requests,
    recent_pull_requests,
    validate_pull_request,
)
from wocboard.users.service import get_user

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/pull-requests", tags=["Pull Requests"])


async def _page(
    db: AsyncSession,
    page: int,
    per_page: int,
    status: str | None = None,
    user_id: int | None = None,
    project_id: int | None = None,
) -> PullRequestListResponse:
    if status is not None and status not in PR_STATUSES:
        msg = f"Status must be one of {', '.join(PR_STATUSES)}"
        raise ValidationError(msg, field="status")
    prs, total = await list_pull_requests(
        db, status=status, user_id=user_id, project_id=project_id, page=page, per_page=per_page,
    )
    return PullRequestListResponse(
        pull_requests=[PullRequestResponse.model_validate(pr) for pr in prs],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("", response_model=PullRequestListResponse)
async def list_endpoint(
    status: str | None = Query(None),
    user_id: int | None = Query(None),
    project_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> PullRequestListResponse:
    return await _page(db, page, per_page, status=status, user_id=user_id, project_id=project_id)


@router.get("/recent", response_model=list[PullRequestResponse])
async def recent_endpoint(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_session),
) -> list[PullRequestResponse]:
    return [PullRequestResponse.model_validate(pr) for pr in await recent_pull_requests(db, limit)]


@router.get("/user/{user_id}", response_model=PullRequestListResponse)
async def user_prs_endpoint(
    user_id: int,
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> PullRequestListResponse:
    await get_user(db, user_id)
    return await _page(db, page, per_page, status=status, user_id=user_id)


@router.get("/project/{project_id}", response_model=PullRequestListResponse)
async def project_prs_endpoint(
    project_id: int,
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> PullRequestListResponse:
    await get_project(db, project_id)
    return await _page(db, page, per_page, status=status, project_id=project_id)


@router.get("/{pr_id}", response_model=PullRequestResponse)
async def get_endpoint(
    pr_id: int,
    db: AsyncSession = Depends(get_session),
) -> PullRequestResponse:
    return PullRequestResponse.model_validate(await get_pull_request(db, pr_id))


@router.post("/sync/{project_id}", response_model=SyncResultResponse)
async def sync_endpoint(
    project_id: int,
    response: Response,
    user: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
    github: GitHubClient = Depends(get_github_client),
    redis: object = Depends(get_optional_redis),
) -> SyncResultResponse:
    project = await get_project(db, project_id)
    ensure_can_manage(project, user)
    result = await ProjectSyncService(db, github, redis).sync_project(project)
    return sync_response(result, response)


@router.put("/{pr_id}/validate", response_model=PullRequestResponse)
async def validate_endpoint(
    pr_id: int,
    body: ValidateRequest,
    validator: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> PullRequestResponse:
    """Mentor/admin review of a PR; rescoring flows through to the leaderboard."""
    pr = await get_pull_request(db, pr_id)
    pr = await validate_pull_request(db, pr, validator, body.validation_status, body.notes, redis)
    await db.commit()
    logger.info("pr_validated", pr_id=pr.id, outcome=body.validation_status, points=pr.points)
    return PullRequestResponse.model_validate(pr)
