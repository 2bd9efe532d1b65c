"""Pydantic models for admin endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from wocboard.projects.schemas import SyncResultResponse


class OverviewStats(BaseModel):
    total_users: int
    active_contributors: int
    total_projects: int
    active_projects: int
    total_prs: int
    merged_prs: int
    pending_prs: int
    total_points_distributed: int
    badges_issued: int


class TopContributor(BaseModel):
    id: int
    github_username: str
    full_name: str
    avatar_url: str
    points: int


class OverviewAlerts(BaseModel):
    pending_prs: int
    inactive_projects: int


class OverviewResponse(BaseModel):
    stats: OverviewStats
    top_contributors: list[TopContributor]
    alerts: OverviewAlerts


class UserStatusRequest(BaseModel):
    is_active: bool
    reason: str | None = Field(None, max_length=256)


class UserStatusResponse(BaseModel):
    id: int
    github_username: str
    is_active: bool


class PointsAdjustRequest(BaseModel):
    points: int
    reason: str = Field(..., min_length=1, max_length=256)


class PointsAdjustResponse(BaseModel):
    id: int
    github_username: str
    old_points: int
    new_points: int
    change: int


class RecalculateRequest(BaseModel):
    role: str | None = None
    recalculate_pr_points: bool = True


class SyncAllResponse(BaseModel):
    results: list[SyncResultResponse]
    total: int
    failed: int
