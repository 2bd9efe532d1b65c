"""ID-card endpoints: issuing a card key and the public verification lookup."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.auth.dependencies import get_current_user
from wocboard.config import get_settings
from wocboard.database import get_session
from wocboard.db.models import User
from wocboard.idcard.schemas import IdCardRequest, IdCardResponse, VerifyResponse
from wocboard.idcard.service import issue_id_card, verify_auth_key

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["ID Cards"])


@router.post("/id-cards", response_model=IdCardResponse, status_code=201)
async def create_id_card(
    body: IdCardRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> IdCardResponse:
    user = await issue_id_card(db, user, body.linkedin_id)
    await db.commit()
    max_generations = get_settings().id_card_max_generations
    logger.info("id_card_issued", user_id=user.id, generations_used=user.id_generated_count)
    return IdCardResponse(
        auth_key=user.auth_key,
        full_name=user.full_name,
        github_username=user.github_username,
        role=user.role,
        email=user.email,
        linkedin_url=user.linkedin_url,
        generations_used=user.id_generated_count,
        generations_remaining=max(0, max_generations - user.id_generated_count),
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify(
    id: str = Query(..., min_length=1, max_length=32),  # noqa: A002
    db: AsyncSession = Depends(get_session),
) -> VerifyResponse:
    """Public lookup behind the QR code printed on a card."""
    user = await verify_auth_key(db, id)
    return VerifyResponse(
        name=user.full_name,
        role=user.role,
        github=user.github_username,
        linkedin=user.linkedin_url,
    )
