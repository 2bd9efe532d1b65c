"""Pydantic models for ID-card endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class IdCardRequest(BaseModel):
    linkedin_id: str = Field(..., min_length=1, max_length=200)


class IdCardResponse(BaseModel):
    auth_key: str
    full_name: str
    github_username: str
    role: str
    email: str
    linkedin_url: str | None = None
    generations_used: int
    generations_remaining: int


class VerifyResponse(BaseModel):
    valid: bool = True
    name: str
    role: str
    github: str
    linkedin: str | None = None
