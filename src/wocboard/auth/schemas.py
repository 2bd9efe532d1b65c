"""Pydantic request/response models for authentication endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from wocboard.users.schemas import UserResponse


class GitHubCallbackRequest(BaseModel):
    """Supabase session handed over by the frontend after GitHub OAuth."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = None
    intended_role: Literal["contributor", "mentor"] = "contributor"


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
    created: bool = False
    redirect_url: str = "/dashboard"
    note: str | None = None
