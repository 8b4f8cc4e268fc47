"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in development and tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserModel(Base):
    """User account ORM model."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    generations_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    animations: Mapped[list["AnimationModel"]] = relationship(
        "AnimationModel", back_populates="owner", cascade="all, delete-orphan"
    )
    settings: Mapped["UserSettingsModel | None"] = relationship(
        "UserSettingsModel", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("generations_remaining >= 0", name="ck_users_generations_nonnegative"),
    )


class UserSettingsModel(Base):
    """Per-user generation preferences and encrypted API keys."""

    __tablename__ = "user_settings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True
    )
    default_ai_model: Mapped[str] = mapped_column(String(50), nullable=False, default="openai")
    openai_api_key_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    google_api_key_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    groq_api_key_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    user: Mapped["UserModel"] = relationship("UserModel", back_populates="settings")


class AnimationModel(Base):
    """Animation project (one prompt, one video) ORM model."""

    __tablename__ = "animations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    ai_model: Mapped[str] = mapped_column(String(50), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="pending", index=True)
    script: Mapped[str | None] = mapped_column(Text, nullable=True)
    manim_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    owner: Mapped["UserModel"] = relationship("UserModel", back_populates="animations")
    tasks: Mapped[list["GenerationTaskModel"]] = relationship(
        "GenerationTaskModel", back_populates="animation", cascade="all, delete-orphan"
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("duration BETWEEN 5 AND 60", name="ck_animations_duration_range"),
    )


class GenerationTaskModel(Base):
    """Tracking row for one pipeline stage of one animation."""

    __tablename__ = "generation_tasks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    animation_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("animations.id", ondelete="CASCADE"), index=True
    )
    task_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="pending", index=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    progress: Mapped[int | None] = mapped_column(Integer, nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata_", JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Constraints
    __table_args__ = (
        UniqueConstraint("animation_id", "task_type", name="uq_generation_task_type"),
        CheckConstraint(
            "progress IS NULL OR (progress >= 0 AND progress <= 100)",
            name="ck_generation_tasks_progress_range",
        ),
    )

    animation: Mapped["AnimationModel"] = relationship("AnimationModel", back_populates="tasks")
