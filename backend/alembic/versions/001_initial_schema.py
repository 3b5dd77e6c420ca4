"""Initial schema — profiles.

Revision ID: 001_initial
Revises: None
Create Date: 2026-03-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("role", sa.String(32), nullable=True, server_default="user"),
        sa.Column("account_role", sa.String(32), nullable=True),
        sa.Column("onboarding_step", sa.String(32), nullable=True, server_default="interests"),
        sa.Column("onboarding_complete", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("interests_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("subcategories_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("dealbreakers_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("profiles")
