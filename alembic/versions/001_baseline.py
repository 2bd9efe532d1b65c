"""Baseline schema.

Creates users, projects, pull_requests, badges, user_badges and
point_adjustments.

Revision ID: 001_baseline
Revises:
Create Date: 2026-01-05
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            github_id VARCHAR(64) UNIQUE NOT NULL,
            github_username VARCHAR(64) UNIQUE NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            avatar_url TEXT NOT NULL DEFAULT '',
            full_name VARCHAR(128) NOT NULL,
            bio VARCHAR(500) NOT NULL DEFAULT '',
            college VARCHAR(128) NOT NULL DEFAULT '',
            year_of_study INTEGER,
            linkedin_url VARCHAR(256),
            role VARCHAR(16) NOT NULL DEFAULT 'Contributor',
            total_prs INTEGER NOT NULL DEFAULT 0,
            merged_prs INTEGER NOT NULL DEFAULT 0,
            pr_points INTEGER NOT NULL DEFAULT 0,
            bonus_points INTEGER NOT NULL DEFAULT 0,
            points INTEGER NOT NULL DEFAULT 0,
            rank INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            id_generated_count INTEGER NOT NULL DEFAULT 0,
            auth_key VARCHAR(32) UNIQUE,
            last_login TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_points ON users(points)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_role ON users(role)")

    # --- Projects ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS projects (
            id SERIAL PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description VARCHAR(1000) NOT NULL,
            github_url VARCHAR(256) NOT NULL,
            github_owner VARCHAR(100) NOT NULL,
            github_repo VARCHAR(100) NOT NULL,
            difficulty VARCHAR(16) NOT NULL,
            tags JSONB NOT NULL DEFAULT '[]',
            tech_stack JSONB NOT NULL DEFAULT '[]',
            mentor_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            total_prs INTEGER NOT NULL DEFAULT 0,
            merged_prs INTEGER NOT NULL DEFAULT 0,
            contributors INTEGER NOT NULL DEFAULT 0,
            stars INTEGER NOT NULL DEFAULT 0,
            forks INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            is_approved BOOLEAN NOT NULL DEFAULT false,
            sync_enabled BOOLEAN NOT NULL DEFAULT true,
            last_sync_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(github_owner, github_repo)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_projects_active_approved
        ON projects(is_active, is_approved)
    """)

    # --- Pull Requests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS pull_requests (
            id SERIAL PRIMARY KEY,
            github_pr_id BIGINT NOT NULL,
            github_pr_number INTEGER NOT NULL,
            title VARCHAR(512) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            github_url VARCHAR(512) NOT NULL,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL,
            is_validated BOOLEAN NOT NULL DEFAULT false,
            validated_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            validated_at TIMESTAMPTZ,
            validation_status VARCHAR(16),
            validation_notes VARCHAR(500),
            additions INTEGER NOT NULL DEFAULT 0,
            deletions INTEGER NOT NULL DEFAULT 0,
            changed_files INTEGER NOT NULL DEFAULT 0,
            commits INTEGER NOT NULL DEFAULT 0,
            points INTEGER NOT NULL DEFAULT 0,
            points_override INTEGER,
            points_calculated_at TIMESTAMPTZ,
            gh_created_at TIMESTAMPTZ NOT NULL,
            gh_updated_at TIMESTAMPTZ NOT NULL,
            merged_at TIMESTAMPTZ,
            closed_at TIMESTAMPTZ,
            submission_type VARCHAR(16) NOT NULL DEFAULT 'auto_sync',
            last_sync_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(github_pr_id, project_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_pull_requests_user_status
        ON pull_requests(user_id, status)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_pull_requests_project_status
        ON pull_requests(project_id, status)
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id SERIAL PRIMARY KEY,
            name VARCHAR(128) UNIQUE NOT NULL,
            description VARCHAR(500) NOT NULL,
            icon VARCHAR(32) NOT NULL,
            color VARCHAR(7) NOT NULL DEFAULT '#FFD700',
            criteria_type VARCHAR(16) NOT NULL,
            criteria_threshold INTEGER,
            criteria_description VARCHAR(256) NOT NULL,
            rarity VARCHAR(16) NOT NULL DEFAULT 'Common',
            points_reward INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            is_auto_awarded BOOLEAN NOT NULL DEFAULT true,
            total_awarded INTEGER NOT NULL DEFAULT 0,
            last_awarded_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_badges_criteria_type ON badges(criteria_type)")
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_badges_active_auto
        ON badges(is_active, is_auto_awarded)
    """)

    # --- User Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            awarded_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            reason VARCHAR(256),
            UNIQUE(user_id, badge_id)
        )
    """)

    # --- Bonus point ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS point_adjustments (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(16) NOT NULL,
            source_id VARCHAR(128),
            reason VARCHAR(256),
            actor_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            idempotency_key VARCHAR(256) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_point_adjustments_user
        ON point_adjustments(user_id, created_at DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS point_adjustments CASCADE")
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badges CASCADE")
    op.execute("DROP TABLE IF EXISTS pull_requests CASCADE")
    op.execute("DROP TABLE IF EXISTS projects CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
