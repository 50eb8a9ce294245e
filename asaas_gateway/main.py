# asaas_gateway/main.py
from __future__ import annotations
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from asaas_gateway.core import deps
from asaas_gateway.core.logger import setup_logging
from asaas_gateway.core.middleware import RequestContextMiddleware
from asaas_gateway.core.settings import get_settings
from asaas_gateway.api import (
    customers,
    subscriptions,
    payments,
    webhooks,
    health,
)

settings = get_settings()
setup_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_payments()
    if not settings.webhook_auth_enabled:
        logger.warning("webhook_auth_disabled", hint="set ASAAS_WEBHOOK_TOKEN outside local/sandbox use")
    if settings.DB_CREATE_ALL:
        await deps.init_models()
    logger.info("startup", backend=settings.PAYMENTS_BACKEND, base_url=settings.ASAAS_BASE_URL)
    yield
    await deps.shutdown()


app = FastAPI(title="Asaas Gateway", version="1.0.0", lifespan=lifespan)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.csv(settings.CORS_ORIGINS),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.csv(settings.CORS_ALLOW_METHODS),
    allow_headers=settings.csv(settings.CORS_ALLOW_HEADERS),
)

# --- Request context / access log ---
app.add_middleware(RequestContextMiddleware)

# --- Routers ---
app.include_router(customers.router)
app.include_router(subscriptions.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
app.include_router(health.router)
