"""Add weekly reflections, coaching memory and point award keys

Revision ID: 8b2e4f6a1c93
Revises: 3f9c1a7d2e01
Create Date: 2026-10-19 10:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "8b2e4f6a1c93"
down_revision: Union[str, None] = "3f9c1a7d2e01"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _user_fk() -> sa.Column:
    return sa.Column(
        "user_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Upgrade database schema."""

    # ------------------------------------------------------------------
    # 1. One payout per rewarded thing
    #    Existing rows keep a NULL key; NULLs never collide.
    # ------------------------------------------------------------------
    op.add_column("point_transactions", sa.Column("award_key", sa.String(200), nullable=True))
    op.create_index(
        "uq_point_tx_user_award_key",
        "point_transactions",
        ["user_id", "award_key"],
        unique=True,
    )

    # ------------------------------------------------------------------
    # 2. Weekly reflections
    # ------------------------------------------------------------------
    op.create_table(
        "reflections",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("content", postgresql.JSONB(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "week_start", name="uq_reflection_user_week"),
    )

    # ------------------------------------------------------------------
    # 3. Coaching memory
    # ------------------------------------------------------------------
    op.create_table(
        "user_memory",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_fk(),
        sa.Column("entry_type", sa.String(50), nullable=False),
        sa.Column("content", postgresql.JSONB(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_user_memory_user_type", "user_memory", ["user_id", "entry_type"])
    op.create_index("idx_user_memory_user_created", "user_memory", ["user_id", "created_at"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("user_memory")
    op.drop_table("reflections")
    op.drop_index("uq_point_tx_user_award_key", table_name="point_transactions")
    op.drop_column("point_transactions", "award_key")
