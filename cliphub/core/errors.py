"""Exception taxonomy shared by the pipeline, repository and HTTP layer.

Every error carries the HTTP status it maps to, so the API can render any of
them as ``{"error": <message>}`` without per-route translation.
"""

from __future__ import annotations

from fastapi import status


class ClipError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSubmissionError(ClipError):
    """The multipart form is missing the video file or is otherwise unusable."""

    status_code = status.HTTP_400_BAD_REQUEST


class ClipValidationError(ClipError):
    """A field exceeds its column limit."""

    status_code = status.HTTP_400_BAD_REQUEST


class UploadTooLargeError(ClipError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class StagingError(ClipError):
    """The upload could not be written to staging storage."""


class ClipNotFoundError(ClipError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, playback_id: str):
        super().__init__(f"clip with playback id `{playback_id}` does not exist")
        self.playback_id = playback_id


class ClipConflictError(ClipError):
    status_code = status.HTTP_409_CONFLICT


class ProviderError(ClipError):
    """The video provider rejected a request or could not be reached."""

    status_code = status.HTTP_502_BAD_GATEWAY


class AssetNotFoundError(ProviderError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, asset_id: str):
        super().__init__(f"asset `{asset_id}` was not found at the provider")
        self.asset_id = asset_id


class InvalidNotificationError(ClipError):
    status_code = status.HTTP_400_BAD_REQUEST


class WebhookSignatureError(ClipError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthError(ClipError):
    status_code = status.HTTP_401_UNAUTHORIZED


__all__ = [
    "ClipError",
    "InvalidSubmissionError",
    "ClipValidationError",
    "UploadTooLargeError",
    "StagingError",
    "ClipNotFoundError",
    "ClipConflictError",
    "ProviderError",
    "AssetNotFoundError",
    "InvalidNotificationError",
    "WebhookSignatureError",
    "AuthError",
]
