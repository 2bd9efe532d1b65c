"""Pydantic models for badge and points endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CriteriaType = Literal["pr_count", "merged_prs", "points", "streak", "special"]
Rarity = Literal["Common", "Rare", "Epic", "Legendary"]


# --- Badge ---


class BadgeResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    description: str
    icon: str
    color: str
    criteria_type: str
    criteria_threshold: int | None = None
    criteria_description: str
    rarity: str
    points_reward: int
    is_active: bool
    is_auto_awarded: bool
    total_awarded: int = 0
    last_awarded_at: datetime | None = None


class AllBadgesResponse(BaseModel):
    badges: list[BadgeResponse]


class BadgeCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str = Field(..., min_length=1, max_length=500)
    icon: str = Field("\U0001f3c6", max_length=32)
    color: str = Field("#FFD700", pattern=r"^#[0-9A-Fa-f]{6}$")
    criteria_type: CriteriaType
    criteria_threshold: int | None = Field(None, ge=0)
    criteria_description: str = Field(..., min_length=1, max_length=256)
    rarity: Rarity = "Common"
    points_reward: int = Field(0, ge=0)
    is_active: bool = True
    is_auto_awarded: bool = True


class BadgeUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = Field(None, min_length=1, max_length=500)
    icon: str | None = Field(None, max_length=32)
    color: str | None = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    criteria_type: CriteriaType | None = None
    criteria_threshold: int | None = Field(None, ge=0)
    criteria_description: str | None = Field(None, min_length=1, max_length=256)
    rarity: Rarity | None = None
    points_reward: int | None = Field(None, ge=0)
    is_active: bool | None = None
    is_auto_awarded: bool | None = None


class AwardBadgeRequest(BaseModel):
    user_id: int
    reason: str | None = Field(None, max_length=256)


class AwardBadgeResponse(BaseModel):
    awarded: bool
    badge_id: int
    user_id: int
    user_points: int


class BadgeCheckResponse(BaseModel):
    badge_id: int
    user_id: int
    has_badge: bool
    qualifies: bool


class InitializeBadgesResponse(BaseModel):
    created: int
    total: int


class EarnedBadgeResponse(BaseModel):
    badge: BadgeResponse
    awarded_at: datetime
    reason: str | None = None


# --- Bonus ledger ---


class LedgerEntry(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    amount: int
    source: str
    source_id: str | None = None
    reason: str | None = None
    actor_id: int | None = None
    created_at: datetime


class LedgerHistoryResponse(BaseModel):
    user_id: int
    points: int
    bonus_points: int
    entries: list[LedgerEntry]
    total: int
    page: int
    per_page: int


# --- Recalculation ---


class RecalculationResponse(BaseModel):
    prs_scanned: int
    prs_changed: int
    users_recomputed: int
    users_changed: int
    ranked: int
