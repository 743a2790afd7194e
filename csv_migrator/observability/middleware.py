"""
FastAPI middleware for observability.

Correlation id propagation and per-request access logging.

Dependencies: fastapi, starlette
System role: Request/response observability injection
"""

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from csv_migrator.observability.logger import correlation_id_var

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Bind the request's correlation id to the logging context."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)
        try:
            response: Response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per HTTP request with status and latency."""

    async def dispatch(self, request: Request, call_next):
        """
        Time the downstream handler and log the outcome.

        Health probes are logged at DEBUG so they do not drown job activity.
        """
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"

        try:
            response: Response = await call_next(request)
        except Exception as e:
            logger.exception(
                f"{__name__}:dispatch - {route} raised {type(e).__name__}",
                extra={"elapsed_ms": _elapsed_ms(started)},
            )
            raise

        level = logging.DEBUG if request.url.path.startswith("/health") else logging.INFO
        logger.log(
            level,
            f"{__name__}:dispatch - {route} -> {response.status_code}",
            extra={"status_code": response.status_code, "elapsed_ms": _elapsed_ms(started)},
        )
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
