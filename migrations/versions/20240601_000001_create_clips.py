from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20240601_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "clips",
        sa.Column("playback_id", sa.String(length=200), primary_key=True),
        sa.Column("uploaded_by", sa.String(length=35), nullable=False),
        sa.Column("title", sa.String(length=60), nullable=False),
        sa.Column("description", sa.String(length=120), nullable=False),
        sa.Column("game", sa.String(length=60), nullable=False),
        sa.Column("tags", sa.String(length=100), nullable=False),
        sa.Column("players", sa.String(length=255), nullable=False),
        sa.Column("date_uploaded", sa.DateTime(timezone=True), nullable=False),
        sa.Column("asset_id", sa.String(length=200), nullable=False),
        sa.UniqueConstraint("asset_id", name="uq_clips_asset_id"),
    )


def downgrade() -> None:
    op.drop_table("clips")
