"""Add profiles.onboarding_completed_at — authoritative completion marker.

Revision ID: 002_onboarding_completed_at
Revises: 001_initial
Create Date: 2026-03-09

Readers must tolerate the column being absent while this propagates
(ProfileStatusProvider falls back to the reduced column set).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_onboarding_completed_at"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "profiles",
        sa.Column("onboarding_completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.execute(
        "UPDATE profiles SET onboarding_completed_at = created_at "
        "WHERE onboarding_complete"
    )


def downgrade() -> None:
    op.drop_column("profiles", "onboarding_completed_at")
