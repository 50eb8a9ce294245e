# asaas_gateway/core/deps.py
from datetime import timedelta
from functools import lru_cache
from collections.abc import AsyncGenerator
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from asaas_gateway.core.settings import Settings, get_settings
from asaas_gateway.engine.dispatcher import WebhookDispatcher
from asaas_gateway.payments.asaas_provider import AsaasProvider
from asaas_gateway.payments.fake_provider import FakeAsaasProvider
from asaas_gateway.persistence.base import Base
from asaas_gateway.persistence.repo import AccountRepo, EventRepo


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    settings = get_settings()
    kwargs = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if not settings.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_timeout"] = settings.DB_POOL_TIMEOUT
    return create_async_engine(settings.DATABASE_URL, **kwargs)


@lru_cache(maxsize=1)
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), expire_on_commit=False, class_=AsyncSession)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_sessionmaker()() as session:
        yield session


async def init_models() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@lru_cache(maxsize=1)
def _payments_singleton():
    settings = get_settings()
    if settings.PAYMENTS_BACKEND == "fake":
        return FakeAsaasProvider()
    return AsaasProvider(
        base_url=settings.ASAAS_BASE_URL,
        api_key=settings.ASAAS_API_KEY,
        timeout=settings.ASAAS_TIMEOUT_SECONDS,
        user_agent=settings.APP_NAME,
    )


def get_payment_provider():
    # FastAPI will call this each request, but we return the cached singleton
    return _payments_singleton()


def get_event_store(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> EventRepo:
    return EventRepo(db, lease=timedelta(seconds=settings.WEBHOOK_CLAIM_LEASE_SECONDS))


def get_account_store(db: AsyncSession = Depends(get_db)) -> AccountRepo:
    return AccountRepo(db)


def get_dispatcher(
    events: EventRepo = Depends(get_event_store),
    accounts: AccountRepo = Depends(get_account_store),
) -> WebhookDispatcher:
    return WebhookDispatcher(events, accounts)


async def shutdown() -> None:
    if _payments_singleton.cache_info().currsize:
        await _payments_singleton().aclose()
    if get_engine.cache_info().currsize:
        await get_engine().dispose()

