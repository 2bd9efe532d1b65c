"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.auth.dependencies import get_current_user, get_identity_provider
from wocboard.auth.identity import SupabaseIdentityProvider
from wocboard.auth.jwt import create_access_token
from wocboard.auth.schemas import GitHubCallbackRequest, TokenResponse
from wocboard.auth.service import find_or_create_user
from wocboard.config import get_settings
from wocboard.database import get_session
from wocboard.db.models import User
from wocboard.dependencies import get_optional_redis
from wocboard.users.router import user_response
from wocboard.users.schemas import UserResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

_REDIRECTS = {"Admin": "/admin", "Mentor": "/mentor/dashboard"}

_MENTOR_REQUEST_NOTE = (
    "Account created as Contributor. Contact an admin if you should have Mentor/Admin access."
)


@router.post("/github/callback", response_model=TokenResponse)
async def github_callback(
    body: GitHubCallbackRequest,
    db: AsyncSession = Depends(get_session),
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
    redis: object = Depends(get_optional_redis),
) -> TokenResponse:
    """Exchange a Supabase GitHub session for a wocboard session token."""
    logger.info("login_attempt", intended_role=body.intended_role)
    identity = await provider.get_identity(body.access_token)

    user, created = await find_or_create_user(db, identity, redis)

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    if not created and body.intended_role == "mentor" and user.role == "Contributor":
        logger.warning("mentor_login_denied", github_username=user.github_username)
        raise HTTPException(
            status_code=403,
            detail="You are not authorized as a Mentor/Admin. Use the contributor login instead.",
        )

    await db.commit()

    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(user.id, user.role),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=await user_response(db, user),
        created=created,
        redirect_url=_REDIRECTS.get(user.role, "/dashboard"),
        note=_MENTOR_REQUEST_NOTE if created and body.intended_role == "mentor" else None,
    )


@router.get("/me", response_model=UserResponse)
async def me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    return await user_response(db, user)
