"""User router: all /api/v1/users/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.auth.dependencies import get_current_user, require_admin
from wocboard.database import get_session
from wocboard.db.models import User
from wocboard.gamification.badge_service import get_user_badges
from wocboard.gamification.schemas import BadgeResponse, EarnedBadgeResponse
from wocboard.users.schemas import (
    LeaderboardEntry,
    LeaderboardResponse,
    ProfileUpdateRequest,
    PublicUserResponse,
    RoleUpdateRequest,
    UserListResponse,
    UserResponse,
    UserStats,
)
from wocboard.users.service import (
    get_active_user_by_username,
    get_leaderboard,
    get_user,
    list_users,
    set_role,
    update_profile,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _stats(user: User) -> UserStats:
    return UserStats(
        total_prs=user.total_prs,
        merged_prs=user.merged_prs,
        pr_points=user.pr_points,
        bonus_points=user.bonus_points,
        points=user.points,
        rank=user.rank,
    )


async def _earned_badges(db: AsyncSession, user: User) -> list[EarnedBadgeResponse]:
    return [
        EarnedBadgeResponse(
            badge=BadgeResponse.model_validate(ub.badge),
            awarded_at=ub.awarded_at,
            reason=ub.reason,
        )
        for ub in await get_user_badges(db, user.id)
    ]


def _public_fields(user: User) -> dict:
    return {
        "id": user.id,
        "github_username": user.github_username,
        "full_name": user.full_name,
        "avatar_url": user.avatar_url,
        "bio": user.bio,
        "college": user.college,
        "year_of_study": user.year_of_study,
        "linkedin_url": user.linkedin_url,
        "role": user.role,
        "stats": _stats(user),
        "created_at": user.created_at,
    }


async def public_user_response(
    db: AsyncSession, user: User, with_badges: bool = True,
) -> PublicUserResponse:
    badges = await _earned_badges(db, user) if with_badges else []
    return PublicUserResponse(**_public_fields(user), badges=badges)


async def user_response(db: AsyncSession, user: User) -> UserResponse:
    """Full profile, including private fields. For the user themselves or admins."""
    return UserResponse(
        **_public_fields(user),
        badges=await _earned_badges(db, user),
        email=user.email,
        github_id=user.github_id,
        is_active=user.is_active,
        id_generated_count=user.id_generated_count,
        last_login=user.last_login,
    )


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@router.get("", response_model=UserListResponse)
async def list_users_endpoint(
    role: str | None = Query(None),
    search: str | None = Query(None, max_length=100),
    sort_by: str = Query("points"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> UserListResponse:
    """Active users, sorted by points unless asked otherwise."""
    users, total = await list_users(db, role=role, search=search, sort_by=sort_by,
                                    page=page, per_page=per_page)
    return UserListResponse(
        users=[await public_user_response(db, u, with_badges=False) for u in users],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    role: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    rows, total = await get_leaderboard(db, page=page, per_page=per_page, role=role)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntry(
                rank=position,
                id=u.id,
                github_username=u.github_username,
                full_name=u.full_name,
                avatar_url=u.avatar_url,
                college=u.college,
                role=u.role,
                points=u.points,
                total_prs=u.total_prs,
                merged_prs=u.merged_prs,
            )
            for position, u in rows
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Get own full profile."""
    return await user_response(db, user)


@router.get("/username/{username}", response_model=PublicUserResponse)
async def get_by_username(
    username: str,
    db: AsyncSession = Depends(get_session),
) -> PublicUserResponse:
    user = await get_active_user_by_username(db, username)
    return await public_user_response(db, user)


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_by_id(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> PublicUserResponse:
    user = await get_user(db, user_id)
    return await public_user_response(db, user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: ProfileUpdateRequest,
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update a profile (own profile, or any profile for admins)."""
    if current.id != user_id and current.role != "Admin":
        raise HTTPException(status_code=403, detail="You can only update your own profile")

    user = await get_user(db, user_id)
    user = await update_profile(db, user, body.model_dump(exclude_unset=True))
    await db.commit()
    logger.info("profile_updated", user_id=user.id, actor_id=current.id)
    return await user_response(db, user)


@router.put("/{user_id}/role", response_model=UserResponse)
async def update_role(
    user_id: int,
    body: RoleUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    user = await get_user(db, user_id)
    user = await set_role(db, user, body.role, admin)
    await db.commit()
    return await user_response(db, user)
