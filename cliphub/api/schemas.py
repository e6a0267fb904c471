from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Health status indicator.")
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ClipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    playback_id: str = Field(..., json_schema_extra={"example": "pb123"})
    asset_id: str = Field(..., json_schema_extra={"example": "as456"})
    uploaded_by: str
    title: str = Field(..., json_schema_extra={"example": "Ace Clutch"})
    description: str
    game: str
    tags: str
    players: str
    date_uploaded: datetime


class DeletedResponse(BaseModel):
    deleted: str


class WebhookAck(BaseModel):
    received: bool = True
    updated: Optional[int] = Field(default=None, description="Rows resolved; null when the event kind is ignored.")


class DashboardResponse(BaseModel):
    username: str


class ErrorResponse(BaseModel):
    error: str


__all__ = [
    "HealthResponse",
    "ClipResponse",
    "DeletedResponse",
    "WebhookAck",
    "DashboardResponse",
    "ErrorResponse",
]
