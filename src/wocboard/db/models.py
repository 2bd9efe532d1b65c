"""ORM models for users, projects, pull requests, badges and the bonus ledger.

Stats live in denormalized columns on ``users`` and ``projects`` and are
rewritten by the recomputation pipeline (``wocboard.gamification``).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wocboard.db.base import Base

JSONList = JSON().with_variant(JSONB(), "postgresql")

USER_ROLES = ("Contributor", "Mentor", "Admin")
PR_STATUSES = ("open", "closed", "merged", "draft")
VALIDATION_OUTCOMES = ("approved", "rejected", "needs_changes")
BADGE_CRITERIA = ("pr_count", "merged_prs", "points", "streak", "special")
BADGE_RARITIES = ("Common", "Rare", "Epic", "Legendary")
DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Contributor, mentor or admin, identified by their GitHub account."""

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_points", "points"),
        Index("ix_users_role", "role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    github_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    github_username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    avatar_url: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")

    # --- Profile ---
    full_name: Mapped[str] = mapped_column(String(128), nullable=False)
    bio: Mapped[str] = mapped_column(String(500), nullable=False, default="", server_default="")
    college: Mapped[str] = mapped_column(String(128), nullable=False, default="", server_default="")
    year_of_study: Mapped[int | None] = mapped_column(Integer, nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(256), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="Contributor", server_default="Contributor")

    # --- Stats (denormalized, rewritten by the pipeline) ---
    total_prs: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    merged_prs: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    pr_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    bonus_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # --- Account ---
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    id_generated_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    auth_key: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class Project(Base):
    """A registered GitHub repository contributors can open PRs against."""

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("github_owner", "github_repo", name="projects_github_owner_github_repo_key"),
        Index("ix_projects_active_approved", "is_active", "is_approved"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    github_url: Mapped[str] = mapped_column(String(256), nullable=False)
    github_owner: Mapped[str] = mapped_column(String(100), nullable=False)
    github_repo: Mapped[str] = mapped_column(String(100), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    tech_stack: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    mentor_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # --- Stats ---
    total_prs: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    merged_prs: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    contributors: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    forks: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # --- Status ---
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    sync_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    mentor: Mapped[User | None] = relationship("User", lazy="joined")

    @property
    def full_github_url(self) -> str:
        return f"https://github.com/{self.github_owner}/{self.github_repo}"


# ---------------------------------------------------------------------------
# Pull Requests
# ---------------------------------------------------------------------------


class PullRequest(Base):
    """One GitHub pull request, unique per (github_pr_id, project)."""

    __tablename__ = "pull_requests"
    __table_args__ = (
        UniqueConstraint("github_pr_id", "project_id", name="pull_requests_github_pr_id_project_id_key"),
        Index("ix_pull_requests_user_status", "user_id", "status"),
        Index("ix_pull_requests_project_status", "project_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    github_pr_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    github_pr_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    github_url: Mapped[str] = mapped_column(String(512), nullable=False)

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False)

    # --- Mentor / admin validation ---
    is_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    validated_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    validation_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    validation_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # --- Diff metrics ---
    additions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    deletions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    changed_files: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    commits: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # --- Scoring ---
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    points_override: Mapped[int | None] = mapped_column(Integer, nullable=True)
    points_calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # --- GitHub timestamps ---
    gh_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    gh_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    merged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    submission_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default="auto_sync", server_default="auto_sync"
    )
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    user: Mapped[User] = relationship("User", foreign_keys=[user_id], lazy="joined")
    project: Mapped[Project] = relationship("Project", lazy="joined")


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class Badge(Base):
    """Achievement with a threshold criterion and a bonus-point reward."""

    __tablename__ = "badges"
    __table_args__ = (
        Index("ix_badges_criteria_type", "criteria_type"),
        Index("ix_badges_active_auto", "is_active", "is_auto_awarded"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    icon: Mapped[str] = mapped_column(String(32), nullable=False, default="\U0001f3c6")
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#FFD700", server_default="#FFD700")

    criteria_type: Mapped[str] = mapped_column(String(16), nullable=False)
    criteria_threshold: Mapped[int | None] = mapped_column(Integer, nullable=True)
    criteria_description: Mapped[str] = mapped_column(String(256), nullable=False)

    rarity: Mapped[str] = mapped_column(String(16), nullable=False, default="Common", server_default="Common")
    points_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    is_auto_awarded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    total_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_awarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[int] = mapped_column(Integer, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    awarded_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reason: Mapped[str | None] = mapped_column(String(256), nullable=True)

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")


# ---------------------------------------------------------------------------
# Bonus point ledger
# ---------------------------------------------------------------------------


class PointAdjustment(Base):
    """Append-only bonus point transaction with idempotency key."""

    __tablename__ = "point_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reason: Mapped[str | None] = mapped_column(String(256), nullable=True)
    actor_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    idempotency_key: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
