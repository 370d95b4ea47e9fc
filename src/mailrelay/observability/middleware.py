"""Request ID middleware for tracing inbound email webhooks.

Every HTTP response carries an ``X-Request-ID`` header, and the same ID is
bound into structlog contextvars together with the route path, so every log
line the pipeline writes for one email can be joined on ``request_id``.

A client-supplied ID is reused only when it is a short token of safe
characters.  Values with spaces or line breaks, and values longer than 128
characters, are replaced with a fresh UUID4.
"""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

SERVICE_NAME = "mailrelay"
REQUEST_ID_HEADER = "X-Request-ID"

_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def resolve_request_id(supplied: str | None) -> str:
    """Return *supplied* if it is a safe log token, otherwise a new UUID4."""
    if supplied and _SAFE_REQUEST_ID.fullmatch(supplied):
        return supplied
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request ID for the webhook call and log how it ended."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            service=SERVICE_NAME,
            path=request.url.path,
        )

        started = time.monotonic()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "Request handled",
            method=request.method,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return response
