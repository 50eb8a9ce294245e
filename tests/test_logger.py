from __future__ import annotations

import logging

from asaas_gateway.core.logger import service_fields, setup_logging
from asaas_gateway.core.settings import Settings


def test_events_carry_service_and_env():
    add = service_fields(Settings(APP_NAME="billing-edge", ENV="staging"))

    event = add(None, "info", {"event": "access_granted"})

    assert event == {"event": "access_granted", "service": "billing-edge", "env": "staging"}


def test_explicit_fields_are_not_overwritten():
    add = service_fields(Settings(ENV="production"))

    assert add(None, "info", {"event": "x", "env": "custom"})["env"] == "custom"


def test_duplicate_stdlib_loggers_are_quieted():
    setup_logging(Settings(LOG_LEVEL="DEBUG"))

    assert logging.getLogger("uvicorn.access").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
