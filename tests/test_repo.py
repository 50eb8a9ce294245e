"""SQLAlchemy repositories against an in-memory SQLite database."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from asaas_gateway.engine.dispatcher import AccessDecision, SubscriptionStatus, WebhookDispatcher
from asaas_gateway.persistence.base import Base
from asaas_gateway.persistence.repo import AccountRepo, EventRepo
from asaas_gateway.schemas.api_models import WebhookEvent

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def sessionmaker():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    finally:
        await engine.dispose()


async def test_claim_is_unique_per_key(sessionmaker):
    async with sessionmaker() as db:
        repo = EventRepo(db)
        assert await repo.claim(key="evt_1", event_type="PAYMENT_RECEIVED", payload={"id": "evt_1"}) is True
        assert await repo.claim(key="evt_1", event_type="PAYMENT_RECEIVED", payload={"id": "evt_1"}) is False

    # a second session (another request) sees the committed claim
    async with sessionmaker() as db:
        assert await EventRepo(db).claim(key="evt_1", event_type=None, payload={}) is False


async def test_mark_processed_and_release(sessionmaker):
    async with sessionmaker() as db:
        repo = EventRepo(db)
        await repo.claim(key="evt_2", event_type="PAYMENT_OVERDUE", payload={})
        await repo.mark_processed("evt_2")
        row = await repo.get("evt_2")
        assert row.status == "processed"
        assert row.processed_at is not None

        await repo.claim(key="evt_3", event_type="PAYMENT_OVERDUE", payload={})
        await repo.release("evt_3")
        assert await repo.get("evt_3") is None
        assert await repo.claim(key="evt_3", event_type="PAYMENT_OVERDUE", payload={}) is True


async def test_account_upsert_keeps_expiry_on_suspension(sessionmaker):
    async with sessionmaker() as db:
        repo = AccountRepo(db)
        await repo.apply(
            AccessDecision(
                customer_id="cus_1",
                status=SubscriptionStatus.ACTIVE,
                event_type="PAYMENT_RECEIVED",
                payment_id="pay_1",
                expires_at=date(2024, 1, 31),
                is_subscription=True,
            )
        )
        await repo.apply(
            AccessDecision(
                customer_id="cus_1",
                status=SubscriptionStatus.DELINQUENT,
                event_type="PAYMENT_OVERDUE",
                payment_id="pay_2",
            )
        )
        await db.commit()

    async with sessionmaker() as db:
        row = await AccountRepo(db).get("cus_1")
        assert row.status == "DELINQUENT"
        assert row.expires_at == date(2024, 1, 31)
        assert row.last_payment_id == "pay_2"
        assert row.last_event_type == "PAYMENT_OVERDUE"


async def test_dispatcher_over_sql_stores(sessionmaker):
    payload = {
        "id": "evt_10",
        "event": "PAYMENT_RECEIVED",
        "payment": {"id": "pay_10", "customer": "cus_10", "dueDate": "2024-01-01"},
    }
    event = WebhookEvent.model_validate(payload)

    for _ in range(2):
        async with sessionmaker() as db:
            await WebhookDispatcher(EventRepo(db), AccountRepo(db)).dispatch(event, payload)

    async with sessionmaker() as db:
        account = await AccountRepo(db).get("cus_10")
        processed = await EventRepo(db).get("evt_10")
    assert account.status == "ACTIVE"
    assert account.expires_at == date(2025, 1, 1)
    assert processed.status == "processed"
    assert processed.payload == payload


async def test_stale_processing_claim_is_taken_over(sessionmaker):
    clock = [datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)]
    lease = timedelta(minutes=5)

    async with sessionmaker() as db:
        repo = EventRepo(db, lease=lease, clock=lambda: clock[0])
        assert await repo.claim(key="evt_4", event_type="PAYMENT_RECEIVED", payload={}) is True

        # still within the lease: a concurrent delivery must not pass
        clock[0] += timedelta(minutes=1)
        assert await repo.claim(key="evt_4", event_type="PAYMENT_RECEIVED", payload={}) is False

        clock[0] += timedelta(minutes=5)
        assert await repo.claim(key="evt_4", event_type="PAYMENT_RECEIVED", payload={"retry": True}) is True
        # the takeover refreshed the lease
        assert await repo.claim(key="evt_4", event_type="PAYMENT_RECEIVED", payload={}) is False

        await repo.mark_processed("evt_4")
        clock[0] += timedelta(hours=1)
        assert await repo.claim(key="evt_4", event_type="PAYMENT_RECEIVED", payload={}) is False
        assert (await repo.get("evt_4")).payload == {"retry": True}
