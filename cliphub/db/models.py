from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cliphub.core.db import Base


# Column widths for the clips table; enforced by the repository for every backend.
CLIP_FIELD_LIMITS: dict[str, int] = {
    "playback_id": 200,
    "asset_id": 200,
    "uploaded_by": 35,
    "title": 60,
    "description": 120,
    "game": 60,
    "tags": 100,
    "players": 255,
}


class ClipRecord(Base):
    __tablename__ = "clips"
    __table_args__ = (UniqueConstraint("asset_id", name="uq_clips_asset_id"),)

    playback_id: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["playback_id"]), primary_key=True)
    uploaded_by: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["uploaded_by"]), nullable=False)
    title: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["title"]), nullable=False)
    description: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["description"]), nullable=False)
    game: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["game"]), nullable=False)
    tags: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["tags"]), nullable=False)
    players: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["players"]), nullable=False)
    date_uploaded: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    asset_id: Mapped[str] = mapped_column(String(CLIP_FIELD_LIMITS["asset_id"]), nullable=False)


__all__ = ["ClipRecord", "CLIP_FIELD_LIMITS"]
