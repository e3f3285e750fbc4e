"""
Request logging middleware.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ...utils.logging import get_logger


logger = get_logger("clinica.api")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its duration and binds a request id to the log context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            request_id=request_id,
            duration_ms=round(elapsed_ms, 1),
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed_ms / 1000:.4f}"
        return response
