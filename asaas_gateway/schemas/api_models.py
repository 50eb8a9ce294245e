from __future__ import annotations

from typing import Optional, Any
from datetime import date
from pydantic import BaseModel, ConfigDict


# -------------------------
# Subscriptions
# -------------------------
# Request fields are untyped: values go to Asaas as sent and Asaas owns
# their validation (its 400 is relayed), so no local 422s.
class CreateSubscriptionRequest(BaseModel):
    customer: Any = None
    value: Any = 99.9
    billingType: Any = "PIX"                    # "PIX" | "BOLETO" | "CREDIT_CARD"
    cycle: Any = "MONTHLY"
    description: Any = "Plano Premium SaaS"
    nextDueDate: Any = None                     # YYYY-MM-DD
    creditCard: Any = None
    creditCardHolderInfo: Any = None


class CreateCardSubscriptionRequest(BaseModel):
    customer: Any = None
    value: Any = None
    cycle: Any = "MONTHLY"
    description: Any = "Plano Mensal SaaS"
    nextDueDate: Any = None
    creditCard: Any = None
    creditCardHolderInfo: Any = None


# -------------------------
# Payments
# -------------------------
class CreatePixPaymentRequest(BaseModel):
    customer: Any = None
    value: Any = None
    dueDate: Any = None
    description: Any = "Plano Anual SaaS"


# -------------------------
# Webhooks
# -------------------------
class WebhookPayment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    customer: Optional[str] = None
    dueDate: Optional[date] = None
    subscription: Optional[str] = None      # set only for recurring charges


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None                # not always sent by Asaas
    event: Optional[str] = None             # e.g. "PAYMENT_RECEIVED"
    payment: Optional[WebhookPayment] = None
