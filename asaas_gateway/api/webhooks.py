# asaas_gateway/api/webhooks.py
from __future__ import annotations

import hmac
import json
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError

from asaas_gateway.api.common import error_response
from asaas_gateway.core.deps import get_dispatcher
from asaas_gateway.core.settings import Settings, get_settings
from asaas_gateway.engine.dispatcher import WebhookDispatcher
from asaas_gateway.schemas.api_models import WebhookEvent

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _token_matches(presented: Optional[str], expected: str) -> bool:
    if presented is None:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


@router.post("/asaas")
async def asaas_webhook(
    request: Request,
    access_token: Optional[str] = Header(None, alias="asaas-access-token"),
    settings: Settings = Depends(get_settings),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    """
    Payment lifecycle notifications from Asaas:
      - PAYMENT_RECEIVED -> customer ACTIVE until dueDate + 30d (subscription) / + 1 calendar year (one-off)
      - PAYMENT_OVERDUE / PAYMENT_DELETED / PAYMENT_REFUND_RECEIVED -> customer DELINQUENT
      - anything else -> acknowledged only

    Once the token checks out the answer is always 200 {"ok": true}, except
    when the event store itself fails before the event could be claimed.
    """
    if settings.webhook_auth_enabled and not _token_matches(access_token, settings.ASAAS_WEBHOOK_TOKEN):
        logger.warning("invalid_webhook_token", token_present=access_token is not None)
        return error_response(401, "invalid_webhook_token")

    raw = await request.body()
    try:
        payload = json.loads(raw or b"null")
    except ValueError:
        logger.warning("webhook_invalid_json", size=len(raw))
        return {"ok": True}
    if not isinstance(payload, dict):
        logger.warning("webhook_unexpected_payload", body=payload)
        return {"ok": True}

    try:
        event = WebhookEvent.model_validate(payload)
    except ValidationError as e:
        logger.warning("webhook_unexpected_payload", body=payload, error_count=e.error_count())
        return {"ok": True}

    try:
        await dispatcher.dispatch(event, payload)
    except Exception:
        logger.exception("webhook_processing_failed", event_id=event.id, event_type=event.event)
        return error_response(500, "webhook_processing_failed")

    return {"ok": True}
