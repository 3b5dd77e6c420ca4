"""Profile ORM — the per-user row holding role and onboarding progress.

Invariants:
    - user_id is the auth backend's principal id (primary key, one row per user)
    - role/account_role are free-form strings in storage; only
      core/normalize_profile.py turns them into a Role
    - onboarding_completed_at is the authoritative completion marker when present;
      onboarding_complete is the older boolean kept for compatibility

Design Decisions:
    - String(36) user_id over a UUID column type: ids arrive as strings from the
      auth backend and compare identically on Postgres and SQLite
    - Progress counters denormalized onto the row: one aggregate lookup per request
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from route_guard.db.base import Base


class Profile(Base):
    """User profile — read-only from the guard's point of view."""
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    role: Mapped[str | None] = mapped_column(String(32), nullable=True, default="user")
    account_role: Mapped[str | None] = mapped_column(String(32), nullable=True)
    onboarding_step: Mapped[str | None] = mapped_column(
        String(32), nullable=True, default="interests",
    )
    onboarding_complete: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    onboarding_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    interests_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subcategories_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dealbreakers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
