"""Middleware for observability: request/response logging."""

import json
import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from songstock.infrastructure.observability.logging import (
    get_correlation_id,
    redact,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


# Hey future me, this runs around every route handler. It pins the correlation ID for
# the request (taken from the client header or freshly generated), logs one line in and
# one line out, and echoes the ID back in the response header so a client can quote it.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses."""

    def __init__(self, app: ASGIApp, log_request_body: bool = False) -> None:
        """Initialize middleware.

        Args:
            app: ASGI application
            log_request_body: Also log JSON bodies (sensitive keys are masked)
        """
        super().__init__(app)
        self.log_request_body = log_request_body

    async def _body_for_log(self, request: Request) -> str | None:
        if not self.log_request_body or request.method not in {"POST", "PUT", "PATCH"}:
            return None
        raw = await request.body()
        if not raw:
            return None
        try:
            payload = json.loads(raw)
        except ValueError:
            return f"<{len(raw)} bytes>"
        if isinstance(payload, dict):
            payload = redact(payload)
        return json.dumps(payload, default=str)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        set_correlation_id(request.headers.get(CORRELATION_HEADER))

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        extra: dict[str, object] = {
            "method": method,
            "path": path,
            "query_params": str(request.query_params),
            "client_ip": client_ip,
        }
        body = await self._body_for_log(request)
        if body is not None:
            extra["body"] = body
        logger.info("→ %s %s", method, path, extra=extra)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed: %s %s",
                method,
                path,
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": int((time.perf_counter() - start_time) * 1000),
                    "error_type": type(e).__name__,
                },
            )
            raise

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        marker = "✓" if response.status_code < 400 else "✗"
        logger.info(
            "%s %s %s → %s (%dms)",
            marker,
            method,
            path,
            response.status_code,
            duration_ms,
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        response.headers[CORRELATION_HEADER] = get_correlation_id()
        return response
