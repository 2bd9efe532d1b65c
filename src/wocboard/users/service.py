"""User management business logic."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select

from wocboard.db.models import USER_ROLES, User
from wocboard.errors import NotFoundError, ValidationError
from wocboard.gamification.ranking import assign_ranks

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "bio", "college", "year_of_study", "linkedin_url")

SORT_OPTIONS: dict[str, Any] = {
    "points": (User.points.desc(), User.total_prs.desc(), User.id.asc()),
    "name": (User.full_name.asc(), User.id.asc()),
    "joined": (User.created_at.desc(), User.id.desc()),
    "prs": (User.total_prs.desc(), User.id.asc()),
}


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        msg = "User not found"
        raise NotFoundError(msg)
    return user


async def get_active_user_by_username(db: AsyncSession, username: str) -> User:
    result = await db.execute(
        select(User).where(User.github_username == username, User.is_active.is_(True))
    )
    user = result.scalar_one_or_none()
    if user is None:
        msg = "User not found"
        raise NotFoundError(msg)
    return user


async def list_users(
    db: AsyncSession,
    role: str | None = None,
    search: str | None = None,
    sort_by: str = "points",
    page: int = 1,
    per_page: int = 10,
) -> tuple[list[User], int]:
    """Active users, optionally filtered by role and a name/username/email search."""
    conditions: list[Any] = [User.is_active.is_(True)]
    if role:
        conditions.append(User.role == role)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            User.full_name.ilike(pattern),
            User.github_username.ilike(pattern),
            User.email.ilike(pattern),
        ))

    total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(*SORT_OPTIONS.get(sort_by, SORT_OPTIONS["points"]))
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def get_leaderboard(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 50,
    role: str | None = None,
) -> tuple[list[tuple[int, User]], int]:
    """Active users in leaderboard order. Returns ([(position, user)], total)."""
    conditions: list[Any] = [User.is_active.is_(True)]
    if role:
        conditions.append(User.role == role)

    total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar_one()
    offset = (page - 1) * per_page
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(User.points.desc(), User.total_prs.desc(), User.id.asc())
        .offset(offset)
        .limit(per_page)
    )
    users = result.scalars().all()
    return [(offset + i + 1, u) for i, u in enumerate(users)], total


async def update_profile(db: AsyncSession, user: User, changes: dict[str, Any]) -> User:
    """Update editable profile fields; keys outside the profile are ignored."""
    for field in PROFILE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(user, field, changes[field])
    await db.flush()
    return user


async def set_role(db: AsyncSession, user: User, role: str, actor: User) -> User:
    if role not in USER_ROLES:
        msg = f"Invalid role. Must be {', '.join(USER_ROLES)}"
        raise ValidationError(msg, field="role")
    old_role = user.role
    user.role = role
    await db.flush()
    logger.info("Admin %s changed role of %s from %s to %s",
                actor.github_username, user.github_username, old_role, role)
    return user


async def set_active(
    db: AsyncSession,
    user: User,
    is_active: bool,
    actor: User,
    reason: str | None = None,
) -> User:
    """Activate or deactivate a user; ranks are reassigned without them."""
    user.is_active = is_active
    await db.flush()
    await assign_ranks(db)
    logger.info(
        "Admin %s %s user %s. Reason: %s",
        actor.github_username, "activated" if is_active else "deactivated",
        user.github_username, reason or "N/A",
    )
    return user
