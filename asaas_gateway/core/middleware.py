# asaas_gateway/core/middleware.py
from __future__ import annotations
import time
import uuid
import structlog
from starlette.types import ASGIApp, Receive, Scope, Send, Message

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = b"x-request-id"
QUIET_PREFIXES = ("/health",)


class RequestContextMiddleware:
    """
    ASGI middleware that:
      - Binds request_id / method / path into structlog contextvars.
      - Reuses an inbound X-Request-Id or generates one, and echoes it back.
      - Logs one `request_completed` line per request (health probes excluded).
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        method = scope.get("method", "GET").upper()
        path = scope.get("path") or "/"
        request_id = self._header(scope, REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)

        status_code = 500
        started = time.perf_counter()

        async def send_wrapper(message: Message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 200)
                headers = list(message.get("headers") or [])
                headers.append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            if not any(path.startswith(p) for p in QUIET_PREFIXES):
                logger.info(
                    "request_completed",
                    status=status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
            structlog.contextvars.clear_contextvars()

    @staticmethod
    def _header(scope: Scope, name: bytes) -> str | None:
        headers = dict((k.lower(), v) for k, v in (scope.get("headers") or []))
        v = headers.get(name)
        # header bytes are latin-1 on the wire; never fails to decode
        return v.decode("latin-1") if v else None
