from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cliphub.core.errors import ClipConflictError, ClipNotFoundError, ClipValidationError
from cliphub.core.logging import get_logger
from cliphub.domain import Clip

from .models import CLIP_FIELD_LIMITS, ClipRecord


class ClipRepository(ABC):
    """Durable storage for clips, keyed by playback id."""

    @abstractmethod
    async def create(self, clip: Clip) -> Clip: ...

    @abstractmethod
    async def get_by_playback_id(self, playback_id: str) -> Clip: ...

    @abstractmethod
    async def list_all(self) -> Sequence[Clip]: ...

    @abstractmethod
    async def delete(self, playback_id: str) -> None: ...

    @abstractmethod
    async def update_playback_id(self, upload_id: str, new_playback_id: str) -> int:
        """Resolve the clip registered under ``upload_id``; returns the number of rows changed."""


def validate_clip(clip: Clip) -> None:
    for name in ("playback_id", "asset_id"):
        if not getattr(clip, name):
            raise ClipValidationError(f"{name} must not be empty")
    for name, limit in CLIP_FIELD_LIMITS.items():
        value = getattr(clip, name)
        if len(value) > limit:
            raise ClipValidationError(f"{name} exceeds {limit} characters")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_domain(record: ClipRecord) -> Clip:
    return Clip(
        playback_id=record.playback_id,
        asset_id=record.asset_id,
        uploaded_by=record.uploaded_by,
        title=record.title,
        description=record.description,
        game=record.game,
        tags=record.tags,
        players=record.players,
        date_uploaded=_as_utc(record.date_uploaded),
    )


class SqlAlchemyClipRepository(ClipRepository):
    """Relational clip store backed by an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = get_logger(component="clip_repository")

    async def create(self, clip: Clip) -> Clip:
        validate_clip(clip)

        stmt = select(ClipRecord.playback_id, ClipRecord.asset_id).where(
            or_(ClipRecord.playback_id == clip.playback_id, ClipRecord.asset_id == clip.asset_id)
        )
        existing = (await self.session.execute(stmt)).first()
        if existing is not None:
            field = "playback_id" if existing.playback_id == clip.playback_id else "asset_id"
            raise ClipConflictError(f"clip with {field} `{getattr(clip, field)}` already exists")

        record = ClipRecord(
            playback_id=clip.playback_id,
            asset_id=clip.asset_id,
            uploaded_by=clip.uploaded_by,
            title=clip.title,
            description=clip.description,
            game=clip.game,
            tags=clip.tags,
            players=clip.players,
            date_uploaded=_as_utc(clip.date_uploaded),
        )
        self.session.add(record)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent insert of the same ids.
            await self.session.rollback()
            raise ClipConflictError(f"clip with playback_id `{clip.playback_id}` conflicts with an existing clip") from exc
        created = _to_domain(record)
        self.session.expunge_all()
        self.logger.info("clip_row_created", playback_id=clip.playback_id, asset_id=clip.asset_id)
        return created

    async def get_by_playback_id(self, playback_id: str) -> Clip:
        stmt = select(ClipRecord).where(ClipRecord.playback_id == playback_id)
        record = (await self.session.execute(stmt)).scalar_one_or_none()
        if record is None:
            raise ClipNotFoundError(playback_id)
        return _to_domain(record)

    async def list_all(self) -> Sequence[Clip]:
        stmt = select(ClipRecord).order_by(ClipRecord.date_uploaded.desc())
        records = (await self.session.execute(stmt)).scalars().all()
        return [_to_domain(record) for record in records]

    async def delete(self, playback_id: str) -> None:
        stmt = delete(ClipRecord).where(ClipRecord.playback_id == playback_id)
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        await self.session.commit()
        self.session.expunge_all()
        if result.rowcount == 0:
            raise ClipNotFoundError(playback_id)
        self.logger.info("clip_row_deleted", playback_id=playback_id)

    async def update_playback_id(self, upload_id: str, new_playback_id: str) -> int:
        if len(new_playback_id) > CLIP_FIELD_LIMITS["playback_id"]:
            raise ClipValidationError(f"playback_id exceeds {CLIP_FIELD_LIMITS['playback_id']} characters")
        stmt = (
            update(ClipRecord)
            .where(ClipRecord.asset_id == upload_id)
            .values(playback_id=new_playback_id)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ClipConflictError(f"playback id `{new_playback_id}` is already assigned to another clip") from exc
        self.session.expunge_all()
        return result.rowcount


__all__ = ["ClipRepository", "SqlAlchemyClipRepository", "validate_clip"]
