# asaas_gateway/core/logger.py
from __future__ import annotations
import logging
import sys
from typing import Any, Dict

import structlog
from asaas_gateway.core.settings import Settings

# stdlib loggers that repeat what the gateway already logs itself:
# uvicorn.access duplicates `request_completed`, httpx logs every Asaas call.
CHATTY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def service_fields(settings: Settings):
    """Processor stamping every event with the service name and environment."""
    fields = {"service": settings.APP_NAME, "env": settings.ENV}

    def add_service_fields(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_fields


def setup_logging(settings: Settings) -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors = [
        structlog.contextvars.merge_contextvars,
        service_fields(settings),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.DEV_MODE:
        processors.append(structlog.processors.ExceptionRenderer())
        processors.append(structlog.processors.KeyValueRenderer(sort_keys=True))
    else:
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
