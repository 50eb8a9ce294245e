# asaas_gateway/payments/types.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol, Dict, Any


@dataclass(frozen=True)
class UpstreamResponse:
    """Status and decoded JSON body exactly as the provider returned them."""
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class PaymentProvider(Protocol):
    # --- customers ---
    async def create_customer(self, payload: Dict[str, Any]) -> UpstreamResponse: ...

    # --- subscriptions ---
    async def create_subscription(self, payload: Dict[str, Any]) -> UpstreamResponse: ...
    async def list_subscription_payments(self, subscription_id: str) -> UpstreamResponse: ...

    # --- payments ---
    async def create_payment(self, payload: Dict[str, Any]) -> UpstreamResponse: ...
    async def get_payment(self, payment_id: str) -> UpstreamResponse: ...

    async def aclose(self) -> None: ...
