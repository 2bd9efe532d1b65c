"""Badge API endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.auth.dependencies import require_admin
from wocboard.database import get_session
from wocboard.db.models import User
from wocboard.dependencies import get_optional_redis
from wocboard.gamification.badge_engine import BadgeEngine
from wocboard.gamification.badge_service import (
    award_badge,
    create_badge,
    has_badge,
    list_badges,
    require_badge,
    update_badge,
)
from wocboard.gamification.ranking import assign_ranks
from wocboard.gamification.schemas import (
    AllBadgesResponse,
    AwardBadgeRequest,
    AwardBadgeResponse,
    BadgeCheckResponse,
    BadgeCreateRequest,
    BadgeResponse,
    BadgeUpdateRequest,
    InitializeBadgesResponse,
)
from wocboard.gamification.seed import BADGE_SEED_DATA, seed_badges
from wocboard.users.service import get_user

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/badges", tags=["Badges"])


# ── Public endpoints ──


@router.get("", response_model=AllBadgesResponse)
async def list_badges_endpoint(
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_session),
) -> AllBadgesResponse:
    badges = await list_badges(db, include_inactive=include_inactive)
    return AllBadgesResponse(badges=[BadgeResponse.model_validate(b) for b in badges])


@router.get("/{badge_id}", response_model=BadgeResponse)
async def get_badge_endpoint(
    badge_id: int,
    db: AsyncSession = Depends(get_session),
) -> BadgeResponse:
    return BadgeResponse.model_validate(await require_badge(db, badge_id))


@router.get("/{badge_id}/check/{user_id}", response_model=BadgeCheckResponse)
async def check_badge_endpoint(
    badge_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> BadgeCheckResponse:
    """Whether a user holds, or would now qualify for, a badge. Awards nothing."""
    badge = await require_badge(db, badge_id)
    user = await get_user(db, user_id)
    held = await has_badge(db, user.id, badge.id)
    qualifies = False if held else await BadgeEngine(db).qualifies(user, badge)
    return BadgeCheckResponse(badge_id=badge.id, user_id=user.id, has_badge=held, qualifies=qualifies)


# ── Admin endpoints ──


@router.post("/initialize", response_model=InitializeBadgesResponse)
async def initialize_badges_endpoint(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> InitializeBadgesResponse:
    """Create (or refresh) the default badge set."""
    created = await seed_badges(db)
    await db.commit()
    logger.info("badges_initialized", created=created, actor_id=admin.id)
    return InitializeBadgesResponse(created=created, total=len(BADGE_SEED_DATA))


@router.post("", response_model=BadgeResponse, status_code=201)
async def create_badge_endpoint(
    body: BadgeCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> BadgeResponse:
    badge = await create_badge(db, body.model_dump())
    await db.commit()
    logger.info("badge_created", badge_id=badge.id, actor_id=admin.id)
    return BadgeResponse.model_validate(badge)


@router.put("/{badge_id}", response_model=BadgeResponse)
async def update_badge_endpoint(
    badge_id: int,
    body: BadgeUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> BadgeResponse:
    badge = await require_badge(db, badge_id)
    badge = await update_badge(db, badge, body.model_dump(exclude_unset=True))
    await db.commit()
    logger.info("badge_updated", badge_id=badge.id, actor_id=admin.id)
    return BadgeResponse.model_validate(badge)


@router.post("/{badge_id}/award", response_model=AwardBadgeResponse)
async def award_badge_endpoint(
    badge_id: int,
    body: AwardBadgeRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> AwardBadgeResponse:
    """Manually award any badge (including special ones). Already-held badges are a no-op."""
    badge = await require_badge(db, badge_id)
    user = await get_user(db, body.user_id)
    awarded = await award_badge(db, redis, user, badge, awarded_by=admin,
                                reason=body.reason or "Awarded by admin")
    if awarded:
        await assign_ranks(db)
    await db.commit()
    logger.info("badge_awarded", badge_id=badge.id, user_id=user.id, awarded=awarded, actor_id=admin.id)
    return AwardBadgeResponse(awarded=awarded, badge_id=badge.id, user_id=user.id, user_points=user.points)
