from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

__all__ = [
    "Clip",
    "ClipSubmission",
    "SubmittedAsset",
    "ReadyNotification",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Clip:
    """Metadata for one uploaded video plus its provider-assigned identifiers."""

    playback_id: str
    asset_id: str
    uploaded_by: str
    title: str
    description: str
    game: str
    tags: str
    players: str
    date_uploaded: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class ClipSubmission:
    """Free-form metadata fields from the upload form."""

    title: str = ""
    description: str = ""
    game: str = ""
    tags: str = ""
    players: str = ""
    username: str = ""

    def to_clip(self, *, playback_id: str, asset_id: str, uploaded_by: str | None = None) -> Clip:
        return Clip(
            playback_id=playback_id,
            asset_id=asset_id,
            uploaded_by=uploaded_by if uploaded_by is not None else self.username,
            title=self.title,
            description=self.description,
            game=self.game,
            tags=self.tags,
            players=self.players,
        )


@dataclass(frozen=True, slots=True)
class SubmittedAsset:
    playback_id: str
    asset_id: str


@dataclass(frozen=True, slots=True)
class ReadyNotification:
    """Correlates the id a clip was registered under with its final playback id."""

    upload_id: str
    playback_id: str
