"""Pydantic models for project endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from wocboard.users.schemas import UserSummary

Difficulty = Literal["Beginner", "Intermediate", "Advanced"]


class ProjectResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    description: str
    github_url: str
    github_owner: str
    github_repo: str
    difficulty: str
    tags: list[str] = []
    tech_stack: list[str] = []
    mentor: UserSummary | None = None
    total_prs: int
    merged_prs: int
    contributors: int
    stars: int
    forks: int
    is_active: bool
    is_approved: bool
    sync_enabled: bool
    last_sync_at: datetime | None = None
    created_at: datetime


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int
    page: int
    per_page: int


class ProjectCreateRequest(BaseModel):
    github_url: str = Field(..., min_length=1, max_length=256)
    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = Field(None, max_length=1000)
    difficulty: Difficulty | None = None
    tags: list[str] | None = None
    tech_stack: list[str] | None = None
    mentor_id: int | None = None


class ProjectUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = Field(None, max_length=1000)
    difficulty: Difficulty | None = None
    tags: list[str] | None = None
    tech_stack: list[str] | None = None
    mentor_id: int | None = None
    is_active: bool | None = None
    is_approved: bool | None = None
    sync_enabled: bool | None = None


class SyncResultResponse(BaseModel):
    project: str
    project_id: int
    success: bool
    synced_count: int = 0
    new_count: int = 0
    skipped_count: int = 0
    errors: list[dict] = []
    last_sync_at: datetime | None = None
    error: str | None = None
