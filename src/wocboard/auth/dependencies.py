"""FastAPI authentication dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.auth.identity import SupabaseIdentityProvider
from wocboard.auth.jwt import verify_token
from wocboard.auth.service import get_user_by_id
from wocboard.database import get_session
from wocboard.db.models import User

_bearer = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify JWT, return User model.

    Raises 401/403 on failure.
    """
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, int(payload["sub"]))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return user


def require_roles(*roles: str) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the current user must hold one of ``roles``."""

    async def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _checker


require_admin = require_roles("Admin")
require_mentor = require_roles("Mentor", "Admin")


def get_identity_provider() -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider.from_settings()
