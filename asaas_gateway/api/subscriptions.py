# asaas_gateway/api/subscriptions.py
from __future__ import annotations
from typing import Optional

import structlog
from fastapi import APIRouter, Body, Depends

from asaas_gateway.api.common import MISSING_REQUIRED_FIELDS, compact, error_response, forward, missing_fields
from asaas_gateway.core.deps import get_payment_provider
from asaas_gateway.payments.types import PaymentProvider
from asaas_gateway.schemas.api_models import CreateCardSubscriptionRequest, CreateSubscriptionRequest

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/asaas/subscriptions", tags=["Subscriptions"])

CARD_REQUIRED_FIELDS = ("customer", "value", "nextDueDate", "creditCard", "creditCardHolderInfo")


@router.post("")
async def create_subscription(
    body: Optional[CreateSubscriptionRequest] = Body(None),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """
    Monthly subscription paid by PIX, BOLETO or CREDIT_CARD.
    Card data is only forwarded for CREDIT_CARD.
    """
    if body is None:
        logger.error("subscription_create_failed", reason="empty_body")
        return error_response(500, "subscription_create_failed")

    payload = {
        "customer": body.customer,
        "value": body.value,
        "billingType": body.billingType,
        "cycle": body.cycle,
        "description": body.description,
        "nextDueDate": body.nextDueDate,
    }
    if body.billingType == "CREDIT_CARD" and (body.creditCard or body.creditCardHolderInfo):
        payload["creditCard"] = body.creditCard
        payload["creditCardHolderInfo"] = body.creditCardHolderInfo

    return await forward(
        lambda: provider.create_subscription(compact(payload)),
        error_tag="subscription_create_failed",
        customer=body.customer,
        billing_type=body.billingType,
    )


@router.post("/card")
async def create_card_subscription(
    body: Optional[CreateCardSubscriptionRequest] = Body(None),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    body = body or CreateCardSubscriptionRequest()
    missing = missing_fields(body.model_dump(), CARD_REQUIRED_FIELDS)
    if missing:
        logger.warning(MISSING_REQUIRED_FIELDS, route="subscriptions_card", missing=missing)
        return error_response(400, MISSING_REQUIRED_FIELDS)

    payload = {
        "customer": body.customer,
        "value": body.value,
        "cycle": body.cycle,
        "description": body.description,
        "nextDueDate": body.nextDueDate,
        "billingType": "CREDIT_CARD",
        "creditCard": body.creditCard,
        "creditCardHolderInfo": body.creditCardHolderInfo,
    }
    return await forward(
        lambda: provider.create_subscription(compact(payload)),
        error_tag="subscription_card_create_failed",
        customer=body.customer,
    )


@router.get("/{subscription_id}/payments")
async def list_subscription_payments(
    subscription_id: str,
    provider: PaymentProvider = Depends(get_payment_provider),
):
    return await forward(
        lambda: provider.list_subscription_payments(subscription_id),
        error_tag="subscription_payments_list_failed",
        subscription_id=subscription_id,
    )
