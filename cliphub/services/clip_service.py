from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Sequence

from fastapi import UploadFile

from cliphub.core.config import Settings
from cliphub.core.errors import ClipNotFoundError, InvalidSubmissionError
from cliphub.core.logging import get_logger
from cliphub.core.provider import AssetProvider
from cliphub.core.storage import Storage, staging_key
from cliphub.db.repository import ClipRepository, validate_clip
from cliphub.domain import Clip, ClipSubmission


UPLOAD_CHUNK_SIZE = 1024 * 1024


async def _iter_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


class ClipService:
    """Clip submission pipeline: stage the upload, hand it to the provider, record the clip.

    Provider and repository writes are not wrapped in a shared transaction. If the
    repository rejects a clip after the provider accepted it, the asset stays at the
    provider without a local row; likewise a failed row delete after a successful
    provider delete leaves a row pointing at nothing. Both are logged, never repaired.
    """

    def __init__(self, settings: Settings, storage: Storage, provider: AssetProvider, repository: ClipRepository):
        self.settings = settings
        self.storage = storage
        self.provider = provider
        self.repository = repository
        self.logger = get_logger(component="clip_service")

    @asynccontextmanager
    async def staged_upload(self, upload: UploadFile) -> AsyncIterator[str]:
        """Write ``upload`` to staging storage and yield its key; the file is removed on exit."""
        key = staging_key(upload.filename or "")
        stat = await self.storage.write_stream(key, _iter_upload(upload), max_bytes=self.settings.max_upload_size_bytes)
        self.logger.info("clip_staged", key=key, size_bytes=stat.size_bytes)
        try:
            yield key
        finally:
            if not self.settings.keep_staged_uploads:
                try:
                    self.storage.delete(key)
                    self.logger.info("clip_staging_removed", key=key)
                except OSError as cleanup_error:
                    self.logger.warning("clip_staging_cleanup_failed", key=key, error=str(cleanup_error))

    async def submit_clip(
        self,
        submission: ClipSubmission,
        upload: UploadFile | None,
        *,
        uploaded_by: str | None = None,
    ) -> Clip:
        if upload is None or not upload.filename:
            raise InvalidSubmissionError("error retrieving video clip: no file was submitted")
        # Column limits are checked before the provider sees anything.
        validate_clip(submission.to_clip(playback_id="pending", asset_id="pending", uploaded_by=uploaded_by))

        async with self.staged_upload(upload) as key:
            source_url = self.storage.public_url(key)
            asset = await asyncio.to_thread(self.provider.submit_asset, source_url)

        clip = submission.to_clip(playback_id=asset.playback_id, asset_id=asset.asset_id, uploaded_by=uploaded_by)
        try:
            created = await self.repository.create(clip)
        except Exception:
            self.logger.error(
                "clip_orphaned_at_provider",
                playback_id=asset.playback_id,
                asset_id=asset.asset_id,
            )
            raise

        self.logger.info("clip_created", playback_id=created.playback_id, asset_id=created.asset_id, title=created.title)
        return created

    async def get_clip(self, playback_id: str) -> Clip:
        return await self.repository.get_by_playback_id(playback_id)

    async def list_clips(self) -> Sequence[Clip]:
        return await self.repository.list_all()

    async def delete_clip(self, playback_id: str) -> str:
        clip = await self.repository.get_by_playback_id(playback_id)

        # AssetNotFoundError leaves the row in place; operators remove such rows directly in the clips table.
        await asyncio.to_thread(self.provider.delete_asset, clip.asset_id)
        try:
            await self.repository.delete(playback_id)
        except Exception as exc:
            if not isinstance(exc, ClipNotFoundError):
                self.logger.error("clip_row_orphaned", playback_id=playback_id, asset_id=clip.asset_id)
            raise

        self.logger.info("clip_deleted", playback_id=playback_id, asset_id=clip.asset_id)
        return playback_id

    async def handle_ready_notification(self, payload: Mapping[str, Any]) -> int | None:
        notification = self.provider.parse_ready_notification(payload)
        if notification is None:
            self.logger.info("ready_notification_ignored", event_type=payload.get("type"))
            return None

        updated = await self.repository.update_playback_id(notification.upload_id, notification.playback_id)
        if updated == 0:
            self.logger.info("ready_notification_no_match", upload_id=notification.upload_id)
        else:
            self.logger.info(
                "ready_notification_applied",
                upload_id=notification.upload_id,
                playback_id=notification.playback_id,
            )
        return updated


__all__ = ["ClipService"]
