"""
Per-request log context: request id, method and path are bound to structlog
context vars so every event logged while handling the request carries them.
"""
import re
import time
import uuid
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
# Caller-supplied ids are reused only when they look like an id
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind request context, log completion and echo the request id header."""

    def __init__(self, app, skip_paths=("/metrics",)):
        super().__init__(app)
        self.skip_paths = set(skip_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "http_request_failed",
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                error_type=type(exc).__name__,
            )
            raise

        if request.url.path not in self.skip_paths:
            logger.info(
                "http_request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
