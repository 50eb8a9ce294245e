"""Shared fixtures: in-memory stores, a recording provider stub and a wired TestClient."""
from __future__ import annotations

import os

# Settings are read once at import of the app module.
os.environ.setdefault("PAYMENTS_BACKEND", "fake")
os.environ.setdefault("DB_CREATE_ALL", "false")

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from asaas_gateway.core.deps import get_dispatcher, get_payment_provider
from asaas_gateway.core.settings import Settings, get_settings
from asaas_gateway.engine.dispatcher import AccessDecision, WebhookDispatcher
from asaas_gateway.main import app
from asaas_gateway.payments.types import UpstreamResponse

WEBHOOK_TOKEN = "whsec-test-token"
FIXED_TODAY = date(2024, 6, 1)


class InMemoryEventStore:
    """Claims left `processing` count as stale, as if their lease had run out."""

    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.claims: List[str] = []
        self.fail_claim = False
        self.fail_release = False

    async def claim(self, *, key: str, event_type: Optional[str], payload: Dict[str, Any]) -> bool:
        if self.fail_claim:
            raise ConnectionError("event store unavailable")
        self.claims.append(key)
        if key in self.rows and self.rows[key]["status"] == "processed":
            return False
        self.rows[key] = {"status": "processing", "event_type": event_type, "payload": payload}
        return True

    async def mark_processed(self, key: str) -> None:
        self.rows[key]["status"] = "processed"

    async def release(self, key: str) -> None:
        if self.fail_release:
            raise ConnectionError("event store unavailable")
        self.rows.pop(key, None)


class InMemoryAccountStore:
    def __init__(self) -> None:
        self.decisions: List[AccessDecision] = []
        self.fail_with: Optional[Exception] = None

    async def apply(self, decision: AccessDecision) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.decisions.append(decision)


class StubProvider:
    """Records every call and answers with whatever the test queued."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Any]] = []
        self.response = UpstreamResponse(status_code=200, body={"object": "stub"})
        self.error: Optional[Exception] = None

    async def _answer(self, name: str, arg: Any) -> UpstreamResponse:
        self.calls.append((name, arg))
        if self.error is not None:
            raise self.error
        return self.response

    async def create_customer(self, payload):
        return await self._answer("create_customer", payload)

    async def create_subscription(self, payload):
        return await self._answer("create_subscription", payload)

    async def list_subscription_payments(self, subscription_id):
        return await self._answer("list_subscription_payments", subscription_id)

    async def create_payment(self, payload):
        return await self._answer("create_payment", payload)

    async def get_payment(self, payment_id):
        return await self._answer("get_payment", payment_id)

    async def aclose(self) -> None:
        return None


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def settings() -> Settings:
    return Settings(PAYMENTS_BACKEND="fake", ASAAS_WEBHOOK_TOKEN=WEBHOOK_TOKEN, DB_CREATE_ALL=False)


@pytest.fixture
def client(settings, provider, event_store, account_store):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_payment_provider] = lambda: provider
    app.dependency_overrides[get_dispatcher] = lambda: WebhookDispatcher(
        event_store, account_store, today=lambda: FIXED_TODAY
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
