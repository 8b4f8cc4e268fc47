"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(512), nullable=False),
        sa.Column("generations_remaining", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("generations_remaining >= 0", name="ck_users_generations_nonnegative"),
    )

    # Per-user settings and encrypted API keys
    op.create_table(
        "user_settings",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("default_ai_model", sa.String(50), nullable=False, server_default="openai"),
        sa.Column("openai_api_key_encrypted", sa.Text(), nullable=True),
        sa.Column("google_api_key_encrypted", sa.Text(), nullable=True),
        sa.Column("groq_api_key_encrypted", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_user_settings_user_id", "user_settings", ["user_id"], unique=True)

    # Animations table
    op.create_table(
        "animations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("ai_model", sa.String(50), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("script", sa.Text(), nullable=True),
        sa.Column("manim_code", sa.Text(), nullable=True),
        sa.Column("video_url", sa.String(2048), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("duration BETWEEN 5 AND 60", name="ck_animations_duration_range"),
    )
    op.create_index("ix_animations_user_id", "animations", ["user_id"])
    op.create_index("ix_animations_status", "animations", ["status"])
    op.create_index("ix_animations_created_at", "animations", ["created_at"])

    # Generation tasks table (one row per stage per animation)
    op.create_table(
        "generation_tasks",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("animation_id", sa.UUID(), nullable=False),
        sa.Column("task_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=True),
        sa.Column("metadata_", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["animation_id"], ["animations.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("animation_id", "task_type", name="uq_generation_task_type"),
        sa.CheckConstraint(
            "progress IS NULL OR (progress >= 0 AND progress <= 100)",
            name="ck_generation_tasks_progress_range",
        ),
    )
    op.create_index("ix_generation_tasks_animation_id", "generation_tasks", ["animation_id"])
    op.create_index("ix_generation_tasks_status", "generation_tasks", ["status"])


def downgrade() -> None:
    op.drop_table("generation_tasks")
    op.drop_table("animations")
    op.drop_table("user_settings")
    op.drop_table("users")
