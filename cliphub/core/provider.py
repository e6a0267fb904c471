from __future__ import annotations

import hashlib
import hmac
import time
from abc import ABC, abstractmethod
from typing import Any, Mapping

import requests
from requests.auth import HTTPBasicAuth

from cliphub.domain import ReadyNotification, SubmittedAsset

from .config import Settings
from .errors import AssetNotFoundError, InvalidNotificationError, ProviderError, WebhookSignatureError
from .logging import get_logger


ASSET_READY_EVENT = "video.asset.ready"


class AssetProvider(ABC):
    """Contract for the external video ingestion service."""

    @abstractmethod
    def submit_asset(self, source_url: str) -> SubmittedAsset: ...

    @abstractmethod
    def delete_asset(self, asset_id: str) -> None: ...

    @abstractmethod
    def parse_ready_notification(self, payload: Mapping[str, Any]) -> ReadyNotification | None: ...

    def verify_signature(self, body: bytes, header: str | None) -> None:
        """Raise ``WebhookSignatureError`` if the webhook did not come from the provider."""


def parse_mux_ready_notification(payload: Mapping[str, Any]) -> ReadyNotification | None:
    if payload.get("type") != ASSET_READY_EVENT:
        return None

    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise InvalidNotificationError("ready notification is missing its data object")

    upload_id = data.get("upload_id") or data.get("id")
    playback_ids = data.get("playback_ids") or []
    if not isinstance(playback_ids, list):
        raise InvalidNotificationError("ready notification playback_ids must be a list")
    if not upload_id or not playback_ids or not isinstance(playback_ids[0], Mapping) or not playback_ids[0].get("id"):
        raise InvalidNotificationError("ready notification does not carry an asset and playback id")
    return ReadyNotification(upload_id=str(upload_id), playback_id=str(playback_ids[0]["id"]))


class MuxAssetProvider(AssetProvider):
    """Mux Video REST client. Blocking; callers run it in a worker thread."""

    def __init__(
        self,
        token_id: str,
        token_secret: str,
        *,
        base_url: str = "https://api.mux.com",
        timeout_s: float = 30.0,
        webhook_secret: str | None = None,
        signature_tolerance_s: int = 300,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.webhook_secret = webhook_secret
        self.signature_tolerance_s = signature_tolerance_s
        self.session = session or requests.Session()
        self.auth = HTTPBasicAuth(token_id, token_secret)
        self.logger = get_logger(component="mux_provider")

    def _assets_url(self, asset_id: str | None = None) -> str:
        url = f"{self.base_url}/video/v1/assets"
        return f"{url}/{asset_id}" if asset_id else url

    def submit_asset(self, source_url: str) -> SubmittedAsset:
        body = {
            "input": [{"url": source_url}],
            "playback_policy": ["public"],
        }
        try:
            response = self.session.post(self._assets_url(), json=body, auth=self.auth, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise ProviderError(f"error sending video to host: {exc}") from exc

        if not response.ok:
            raise ProviderError(f"error sending video to host: {response.status_code} {response.text}")

        try:
            data = response.json()["data"]
            asset_id = data["id"]
            playback_id = data["playback_ids"][0]["id"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProviderError("host response did not include asset and playback ids") from exc

        self.logger.info("asset_submitted", asset_id=asset_id, playback_id=playback_id, source_url=source_url)
        return SubmittedAsset(playback_id=playback_id, asset_id=asset_id)

    def delete_asset(self, asset_id: str) -> None:
        try:
            response = self.session.delete(self._assets_url(asset_id), auth=self.auth, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise ProviderError(f"error deleting asset `{asset_id}`: {exc}") from exc

        if response.status_code == 404:
            raise AssetNotFoundError(asset_id)
        if not response.ok:
            raise ProviderError(f"error deleting asset `{asset_id}`: {response.status_code} {response.text}")
        self.logger.info("asset_deleted", asset_id=asset_id)

    def parse_ready_notification(self, payload: Mapping[str, Any]) -> ReadyNotification | None:
        return parse_mux_ready_notification(payload)

    def verify_signature(self, body: bytes, header: str | None) -> None:
        if not self.webhook_secret:
            return
        if not header:
            raise WebhookSignatureError("missing webhook signature")

        parts = dict(item.split("=", 1) for item in header.split(",") if "=" in item)
        timestamp = parts.get("t")
        signature = parts.get("v1")
        if not timestamp or not signature or not timestamp.isdigit():
            raise WebhookSignatureError("malformed webhook signature")
        if abs(time.time() - int(timestamp)) > self.signature_tolerance_s:
            raise WebhookSignatureError("webhook signature timestamp outside tolerance")

        expected = hmac.new(
            self.webhook_secret.encode("utf-8"),
            timestamp.encode("utf-8") + b"." + body,
            hashlib.sha256,
        ).hexdigest()
        if not hmac.compare_digest(expected, signature):
            raise WebhookSignatureError("webhook signature mismatch")


def get_asset_provider(settings: Settings) -> AssetProvider:
    return MuxAssetProvider(
        settings.secrets.mux_token_id,
        settings.secrets.mux_token_secret,
        base_url=settings.mux_api_base_url,
        timeout_s=settings.provider_timeout_s,
        webhook_secret=settings.secrets.mux_webhook_secret,
    )


__all__ = [
    "ASSET_READY_EVENT",
    "AssetProvider",
    "MuxAssetProvider",
    "get_asset_provider",
    "parse_mux_ready_notification",
]
