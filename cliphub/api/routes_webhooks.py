from __future__ import annotations

import json

from fastapi import APIRouter, Request

from cliphub.api import deps
from cliphub.core.errors import InvalidNotificationError, WebhookSignatureError
from cliphub.core.logging import get_logger

from . import schemas


router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(component="webhooks")


@router.post("/mux", response_model=schemas.WebhookAck, summary="Receive provider notifications")
async def receive_mux_webhook(
    request: Request,
    service: deps.ClipServiceDependency,
    provider: deps.ProviderDependency,
) -> schemas.WebhookAck:
    body = await request.body()
    logger.info("webhook_received", remote=request.client.host if request.client else None)

    try:
        provider.verify_signature(body, request.headers.get("Mux-Signature"))
    except WebhookSignatureError as exc:
        logger.warning("webhook_signature_rejected", reason=exc.message)
        raise

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise InvalidNotificationError("webhook body is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise InvalidNotificationError("webhook body must be a JSON object")

    updated = await service.handle_ready_notification(payload)
    return schemas.WebhookAck(received=True, updated=updated)


__all__ = ["router"]
