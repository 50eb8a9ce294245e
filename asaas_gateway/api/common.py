# asaas_gateway/api/common.py
from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Iterable, List

import structlog
from fastapi.responses import JSONResponse

from asaas_gateway.payments.types import UpstreamResponse

logger = structlog.get_logger(__name__)

MISSING_REQUIRED_FIELDS = "missing_required_fields"


def compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset keys so they are not sent upstream as explicit nulls."""
    return {k: v for k, v in payload.items() if v is not None}


def missing_fields(payload: Dict[str, Any], required: Iterable[str]) -> List[str]:
    # empty strings and zero values count as missing
    return [name for name in required if not payload.get(name)]


def error_response(status_code: int, tag: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": tag})


def relay(upstream: UpstreamResponse) -> JSONResponse:
    return JSONResponse(status_code=upstream.status_code, content=upstream.body)


async def forward(call: Callable[[], Awaitable[UpstreamResponse]], *, error_tag: str, **context: Any) -> JSONResponse:
    """
    Await one provider call and relay its status/body verbatim.
    Any exception (transport, timeout, non-JSON body) becomes a 500 tagged `error_tag`.
    """
    try:
        upstream = await call()
    except Exception:
        logger.exception(error_tag, **context)
        return error_response(500, error_tag)

    if not upstream.ok:
        logger.warning("upstream_error_relayed", error_tag=error_tag, status=upstream.status_code, **context)
    return relay(upstream)
