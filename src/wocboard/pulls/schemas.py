"""Pydantic models for pull request endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from wocboard.users.schemas import UserSummary


class ProjectSummary(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    github_url: str


class PullRequestResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    github_pr_id: int
    github_pr_number: int
    title: str
    description: str
    github_url: str
    status: str
    user: UserSummary
    project: ProjectSummary
    is_validated: bool
    validation_status: str | None = None
    validation_notes: str | None = None
    validated_by_id: int | None = None
    validated_at: datetime | None = None
    additions: int
    deletions: int
    changed_files: int
    commits: int
    points: int
    points_override: int | None = None
    gh_created_at: datetime
    gh_updated_at: datetime
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    submission_type: str
    last_sync_at: datetime | None = None


class PullRequestListResponse(BaseModel):
    pull_requests: list[PullRequestResponse]
    total: int
    page: int
    per_page: int


class ValidateRequest(BaseModel):
    validation_status: Literal["approved", "rejected", "needs_changes"]
    notes: str | None = Field(None, max_length=500)


# --- Admin PR controls ---


class AdminStatusRequest(BaseModel):
    status: Literal["Pending", "Merged", "Rejected"]
    reason: str | None = Field(None, max_length=256)
    admin_note: str | None = Field(None, max_length=500)


class AdminStatusResponse(BaseModel):
    id: int
    github_pr_number: int
    old_status: str
    status: str
    points: int


class PointsOverrideRequest(BaseModel):
    points: int = Field(..., ge=0)
    reason: str = Field(..., min_length=1, max_length=256)


class PointsOverrideResponse(BaseModel):
    id: int
    github_pr_number: int
    old_points: int
    new_points: int
    change: int


class NoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=500)


class NoteResponse(BaseModel):
    id: int
    github_pr_number: int
    admin_note: str
