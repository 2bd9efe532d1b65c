"""Pydantic models for user endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from wocboard.gamification.schemas import EarnedBadgeResponse

Role = Literal["Contributor", "Mentor", "Admin"]


class UserSummary(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    github_username: str
    full_name: str
    avatar_url: str


class UserStats(BaseModel):
    total_prs: int
    merged_prs: int
    pr_points: int
    bonus_points: int
    points: int
    rank: int


class PublicUserResponse(BaseModel):
    id: int
    github_username: str
    full_name: str
    avatar_url: str
    bio: str
    college: str
    year_of_study: int | None = None
    linkedin_url: str | None = None
    role: str
    stats: UserStats
    badges: list[EarnedBadgeResponse] = []
    created_at: datetime


class UserResponse(PublicUserResponse):
    email: str
    github_id: str
    is_active: bool
    id_generated_count: int
    last_login: datetime | None = None


class UserListResponse(BaseModel):
    users: list[PublicUserResponse]
    total: int
    page: int
    per_page: int


class LeaderboardEntry(BaseModel):
    rank: int
    id: int
    github_username: str
    full_name: str
    avatar_url: str
    college: str
    role: str
    points: int
    total_prs: int
    merged_prs: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    total: int
    page: int
    per_page: int


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=128)
    bio: str | None = Field(None, max_length=500)
    college: str | None = Field(None, max_length=128)
    year_of_study: int | None = Field(None, ge=1, le=6)
    linkedin_url: str | None = Field(None, max_length=256)


class RoleUpdateRequest(BaseModel):
    role: Role
