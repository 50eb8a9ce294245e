# asaas_gateway/api/payments.py
from __future__ import annotations
from typing import Optional

import structlog
from fastapi import APIRouter, Body, Depends

from asaas_gateway.api.common import MISSING_REQUIRED_FIELDS, compact, error_response, forward, missing_fields
from asaas_gateway.core.deps import get_payment_provider
from asaas_gateway.payments.types import PaymentProvider
from asaas_gateway.schemas.api_models import CreatePixPaymentRequest

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/asaas/payments", tags=["Payments"])

PIX_REQUIRED_FIELDS = ("customer", "value", "dueDate")


@router.post("/pix")
async def create_pix_payment(
    body: Optional[CreatePixPaymentRequest] = Body(None),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """One-off PIX charge for the annual plan."""
    body = body or CreatePixPaymentRequest()
    missing = missing_fields(body.model_dump(), PIX_REQUIRED_FIELDS)
    if missing:
        logger.warning(MISSING_REQUIRED_FIELDS, route="payments_pix", missing=missing)
        return error_response(400, MISSING_REQUIRED_FIELDS)

    payload = {
        "customer": body.customer,
        "billingType": "PIX",
        "value": body.value,
        "dueDate": body.dueDate,
        "description": body.description,
    }
    return await forward(
        lambda: provider.create_payment(compact(payload)),
        error_tag="pix_payment_create_failed",
        customer=body.customer,
    )


@router.get("/{payment_id}")
async def get_payment(
    payment_id: str,
    provider: PaymentProvider = Depends(get_payment_provider),
):
    return await forward(
        lambda: provider.get_payment(payment_id),
        error_tag="payment_get_failed",
        payment_id=payment_id,
    )
