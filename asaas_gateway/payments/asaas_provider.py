from __future__ import annotations
from typing import Optional, Dict, Any
from urllib.parse import quote
import httpx
import structlog

from asaas_gateway.payments.types import UpstreamResponse

logger = structlog.get_logger(__name__)


class AsaasProvider:
    """
    Thin async client over the Asaas REST API (v3).

    Every call returns the provider's status and JSON body untouched; non-2xx
    responses are not raised so that routes can relay them. Transport errors,
    timeouts and non-JSON bodies propagate to the caller.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        user_agent: str = "asaas-gateway",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Content-Type": "application/json",
                "access_token": api_key,
                "User-Agent": user_agent,
            },
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> UpstreamResponse:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error("asaas_transport_error", method=method, endpoint=path, error=str(e))
            raise
        body = response.json()  # ValueError on non-JSON bodies
        if response.is_error:
            logger.warning("asaas_upstream_error", method=method, endpoint=path, status=response.status_code)
        return UpstreamResponse(status_code=response.status_code, body=body)

    # --- customers ---
    async def create_customer(self, payload: Dict[str, Any]) -> UpstreamResponse:
        return await self._request("POST", "/customers", payload)

    # --- subscriptions ---
    async def create_subscription(self, payload: Dict[str, Any]) -> UpstreamResponse:
        return await self._request("POST", "/subscriptions", payload)

    async def list_subscription_payments(self, subscription_id: str) -> UpstreamResponse:
        return await self._request("GET", f"/subscriptions/{quote(subscription_id, safe='')}/payments")

    # --- payments ---
    async def create_payment(self, payload: Dict[str, Any]) -> UpstreamResponse:
        return await self._request("POST", "/payments", payload)

    async def get_payment(self, payment_id: str) -> UpstreamResponse:
        return await self._request("GET", f"/payments/{quote(payment_id, safe='')}")

    async def aclose(self) -> None:
        await self._client.aclose()
