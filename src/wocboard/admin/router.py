"""Admin router: all /api/v1/admin/* endpoints. Every route requires the Admin role."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.admin.schemas import (
    OverviewResponse,
    PointsAdjustRequest,
    PointsAdjustResponse,
    RecalculateRequest,
    SyncAllResponse,
    UserStatusRequest,
    UserStatusResponse,
)
from wocboard.admin.service import get_overview
from wocboard.auth.dependencies import require_admin
from wocboard.database import get_session
from wocboard.db.models import USER_ROLES, User
from wocboard.dependencies import get_github_client, get_optional_redis
from wocboard.errors import ValidationError
from wocboard.gamification.ledger_service import adjust_points, get_ledger_history
from wocboard.gamification.pipeline import recalculate_leaderboard
from wocboard.gamification.ranking import assign_ranks
from wocboard.gamification.schemas import LedgerEntry, LedgerHistoryResponse, RecalculationResponse
from wocboard.github.client import GitHubClient
from wocboard.github.sync_service import ProjectSyncService
from wocboard.projects.schemas import SyncResultResponse
from wocboard.pulls.schemas import (
    AdminStatusRequest,
    AdminStatusResponse,
    NoteRequest,
    NoteResponse,
    PointsOverrideRequest,
    PointsOverrideResponse,
)
from wocboard.pulls.service import add_note, get_pull_request, override_points, set_admin_status
from wocboard.users.service import get_user, set_active

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.get("/overview", response_model=OverviewResponse)
async def overview(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> OverviewResponse:
    return OverviewResponse(**await get_overview(db))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.patch("/users/{user_id}/status", response_model=UserStatusResponse)
async def update_user_status(
    user_id: int,
    body: UserStatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserStatusResponse:
    """Activate or deactivate an account."""
    if user_id == admin.id and not body.is_active:
        raise ValidationError("You cannot deactivate your own account", field="is_active")
    user = await get_user(db, user_id)
    user = await set_active(db, user, body.is_active, admin, body.reason)
    await db.commit()
    return UserStatusResponse(id=user.id, github_username=user.github_username, is_active=user.is_active)


@router.patch("/users/{user_id}/points", response_model=PointsAdjustResponse)
async def adjust_user_points(
    user_id: int,
    body: PointsAdjustRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> PointsAdjustResponse:
    """Apply a signed bonus adjustment, recorded in the point ledger."""
    user, old_points = await adjust_points(db, user_id, body.points, body.reason, admin)
    await assign_ranks(db)
    await db.commit()
    return PointsAdjustResponse(
        id=user.id,
        github_username=user.github_username,
        old_points=old_points,
        new_points=user.points,
        change=user.points - old_points,
    )


@router.get("/users/{user_id}/points", response_model=LedgerHistoryResponse)
async def user_points_history(
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> LedgerHistoryResponse:
    user = await get_user(db, user_id)
    entries, total = await get_ledger_history(db, user.id, page=page, per_page=per_page)
    return LedgerHistoryResponse(
        user_id=user.id,
        points=user.points,
        bonus_points=user.bonus_points,
        entries=[LedgerEntry.model_validate(e) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


# ---------------------------------------------------------------------------
# Pull requests
# ---------------------------------------------------------------------------


@router.patch("/prs/{pr_id}/status", response_model=AdminStatusResponse)
async def update_pr_status(
    pr_id: int,
    body: AdminStatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> AdminStatusResponse:
    pr = await get_pull_request(db, pr_id)
    pr, old_status = await set_admin_status(
        db, pr, admin, body.status, reason=body.reason, admin_note=body.admin_note, redis=redis,
    )
    await db.commit()
    return AdminStatusResponse(
        id=pr.id,
        github_pr_number=pr.github_pr_number,
        old_status=old_status,
        status=pr.status,
        points=pr.points,
    )


@router.patch("/prs/{pr_id}/points", response_model=PointsOverrideResponse)
async def override_pr_points(
    pr_id: int,
    body: PointsOverrideRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> PointsOverrideResponse:
    """Pin a PR's points; the author's totals and ranks follow."""
    pr = await get_pull_request(db, pr_id)
    pr, old_points = await override_points(db, pr, admin, body.points, body.reason, redis=redis)
    await db.commit()
    return PointsOverrideResponse(
        id=pr.id,
        github_pr_number=pr.github_pr_number,
        old_points=old_points,
        new_points=pr.points,
        change=pr.points - old_points,
    )


@router.patch("/prs/{pr_id}/note", response_model=NoteResponse)
async def update_pr_note(
    pr_id: int,
    body: NoteRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> NoteResponse:
    pr = await get_pull_request(db, pr_id)
    pr = await add_note(db, pr, admin, body.note)
    await db.commit()
    return NoteResponse(id=pr.id, github_pr_number=pr.github_pr_number, admin_note=pr.validation_notes)


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


@router.post("/points/recalculate", response_model=RecalculationResponse)
async def recalculate_points(
    body: RecalculateRequest | None = None,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> RecalculationResponse:
    """Rebuild PR points, user totals, badges and ranks from stored data."""
    body = body or RecalculateRequest()
    if body.role is not None and body.role not in USER_ROLES:
        raise ValidationError(f"Role must be one of {', '.join(USER_ROLES)}", field="role")
    actor_id = admin.id
    summary = await recalculate_leaderboard(
        db, redis, role=body.role, recalculate_pr_points=body.recalculate_pr_points,
    )
    await db.commit()
    logger.info("leaderboard_recalculated", actor_id=actor_id, **summary.to_dict())
    return RecalculationResponse(**summary.to_dict())


@router.post("/sync", response_model=SyncAllResponse)
async def sync_all(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    github: GitHubClient = Depends(get_github_client),
    redis: object = Depends(get_optional_redis),
) -> SyncAllResponse:
    """Sync every eligible project now. Per-project failures are reported, not raised."""
    actor_id = admin.id
    results = await ProjectSyncService(db, github, redis).sync_all_projects()
    failed = sum(1 for r in results if not r.success)
    logger.info("all_projects_synced", actor_id=actor_id, total=len(results), failed=failed)
    return SyncAllResponse(
        results=[SyncResultResponse(**r.to_dict()) for r in results],
        total=len(results),
        failed=failed,
    )
