# asaas_gateway/api/customers.py
from __future__ import annotations
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from asaas_gateway.api.common import forward
from asaas_gateway.core.deps import get_payment_provider
from asaas_gateway.payments.types import PaymentProvider

router = APIRouter(prefix="/api/asaas", tags=["Customers"])


@router.post("/customers")
async def create_customer(
    body: Dict[str, Any] = Body(...),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """Create a customer; the body goes to Asaas untouched."""
    return await forward(
        lambda: provider.create_customer(body),
        error_tag="customer_create_failed",
    )
