"""ID-card issuance and auth key verification.

Card rendering happens client-side; the server owns the auth key that the
card's QR code points at and the per-user generation quota.
"""

from __future__ import annotations

import logging
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.config import get_settings
from wocboard.db.models import User
from wocboard.errors import ConflictError, LimitExceededError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

LINKEDIN_PROFILE_URL = "https://linkedin.com/in/{handle}"
MAX_KEY_ATTEMPTS = 20


def generate_auth_key(prefix: str | None = None) -> str:
    """``<prefix>NNNN`` with a random four-digit suffix (1000-9999)."""
    if prefix is None:
        prefix = get_settings().auth_key_prefix
    return f"{prefix}{1000 + secrets.randbelow(9000)}"


def linkedin_url(linkedin_id: str) -> str:
    linkedin_id = linkedin_id.strip()
    if linkedin_id.startswith("http"):
        return linkedin_id
    return LINKEDIN_PROFILE_URL.format(handle=linkedin_id.strip("/"))


async def _unique_auth_key(db: AsyncSession) -> str:
    for _ in range(MAX_KEY_ATTEMPTS):
        key = generate_auth_key()
        taken = await db.execute(select(User.id).where(User.auth_key == key))
        if taken.scalar_one_or_none() is None:
            return key
    msg = "Could not allocate a unique auth key"
    raise ConflictError(msg)


async def issue_id_card(db: AsyncSession, user: User, linkedin_id: str) -> User:
    """Allocate (once) the user's auth key and count one card generation.

    Raises LimitExceededError once the user has used all their generations.
    """
    if not linkedin_id or not linkedin_id.strip():
        msg = "LinkedIn ID is required"
        raise ValidationError(msg, field="linkedin_id")

    max_generations = get_settings().id_card_max_generations
    if user.id_generated_count >= max_generations:
        msg = f"Generation limit reached. You can only generate {max_generations} ID cards."
        raise LimitExceededError(msg)

    if not user.auth_key:
        user.auth_key = await _unique_auth_key(db)
    user.linkedin_url = linkedin_url(linkedin_id)
    user.id_generated_count += 1
    await db.flush()

    logger.info("ID card %d/%d issued for %s (key %s)",
                user.id_generated_count, max_generations, user.github_username, user.auth_key)
    return user


async def verify_auth_key(db: AsyncSession, key: str) -> User:
    if not key:
        msg = "Missing id parameter"
        raise ValidationError(msg, field="id")
    result = await db.execute(select(User).where(User.auth_key == key))
    user = result.scalar_one_or_none()
    if user is None:
        msg = "Invalid ID"
        raise NotFoundError(msg)
    return user
