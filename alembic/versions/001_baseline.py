"""Baseline: users, notifications, achievement progress.

Revision ID: 001_baseline
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users (engine-owned columns only) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(64) PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            profile_url TEXT,
            joined_at TIMESTAMPTZ,
            last_login_at TIMESTAMPTZ,
            daily_streak INTEGER NOT NULL DEFAULT 0
        )
    """)

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type VARCHAR(16) NOT NULL,
            actor_id VARCHAR(64) REFERENCES users(id) ON DELETE SET NULL,
            target_id VARCHAR(128),
            message TEXT NOT NULL,
            read BOOLEAN NOT NULL DEFAULT false,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_notifications_user_created
        ON notifications(user_id, created_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_notifications_user_unread
        ON notifications(user_id) WHERE read = false
    """)

    # --- Achievement progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievement_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id VARCHAR(64) NOT NULL,
            metric VARCHAR(32) NOT NULL,
            threshold DOUBLE PRECISION NOT NULL,
            current DOUBLE PRECISION NOT NULL DEFAULT 0,
            progress DOUBLE PRECISION NOT NULL DEFAULT 0,
            unlocked_at TIMESTAMPTZ,
            metrics JSONB NOT NULL DEFAULT '{}'::jsonb,
            last_updated TIMESTAMPTZ,
            created_at TIMESTAMPTZ,
            CONSTRAINT uq_achievement_progress_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_achievement_progress_user_id
        ON achievement_progress(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS achievement_progress")
    op.execute("DROP TABLE IF EXISTS notifications")
    op.execute("DROP TABLE IF EXISTS users")
