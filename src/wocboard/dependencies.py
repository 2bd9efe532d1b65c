"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from wocboard.database import get_session as _get_session
from wocboard.github.client import GitHubClient
from wocboard.redis_client import get_redis_or_none

get_db = _get_session


def get_optional_redis() -> object | None:
    """Redis client as a FastAPI dependency (None when unavailable)."""
    return get_redis_or_none()


async def get_github_client() -> AsyncGenerator[GitHubClient, None]:
    """Per-request GitHub client built from settings."""
    async with GitHubClient.from_settings() as client:
        yield client
