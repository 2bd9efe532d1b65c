"""
Authentication business logic.

Maps a resolved GitHub identity onto a local user account.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from wocboard.db.models import User
from wocboard.errors import ConflictError
from wocboard.gamification.badge_engine import BadgeEngine

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from wocboard.auth.identity import Identity

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_github_id(db: AsyncSession, github_id: str) -> User | None:
    result = await db.execute(select(User).where(User.github_id == github_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Fetch a user by GitHub username (case-insensitive)."""
    result = await db.execute(
        select(User).where(func.lower(User.github_username) == username.lower())
    )
    return result.scalar_one_or_none()


async def _check_collisions(db: AsyncSession, identity: Identity, exclude_id: int | None) -> None:
    query = select(User).where(
        or_(User.github_username == identity.username, User.email == identity.email)
    )
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    clash = (await db.execute(query)).scalars().first()
    if clash is None:
        return
    field = "github_username" if clash.github_username == identity.username else "email"
    msg = f"Another account already uses this {field}"
    raise ConflictError(msg)


# ---------------------------------------------------------------------------
# GitHub login: find or create
# ---------------------------------------------------------------------------


async def find_or_create_user(
    db: AsyncSession,
    identity: Identity,
    redis: object = None,
) -> tuple[User, bool]:
    """
    Match the identity to a user by GitHub id, refreshing profile fields,
    or create a new Contributor and evaluate starting badges.

    Returns:
        Tuple of (user, created).

    Raises:
        ConflictError: Username or email already belongs to another account.
    """
    now = datetime.now(timezone.utc)
    user = await get_user_by_github_id(db, identity.provider_id)
    created = user is None

    await _check_collisions(db, identity, exclude_id=None if user is None else user.id)

    if user is None:
        user = User(
            github_id=identity.provider_id,
            github_username=identity.username,
            email=identity.email,
            full_name=identity.full_name,
            avatar_url=identity.avatar_url,
            role="Contributor",
            last_login=now,
        )
        db.add(user)
    else:
        user.github_username = identity.username
        user.email = identity.email
        user.full_name = identity.full_name
        user.avatar_url = identity.avatar_url
        user.last_login = now

    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        msg = "Account conflicts with an existing user"
        raise ConflictError(msg) from e

    if created:
        await BadgeEngine(db, redis).evaluate(user)
        logger.info("user_created", user_id=user.id, github_username=user.github_username)
    else:
        logger.info("user_login", user_id=user.id, github_username=user.github_username)
    return user, created
