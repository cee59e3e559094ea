"""
Request middleware for the HTTP layer.

For each request it:
    • assigns a correlation id (client X-Request-ID, else a fresh one)
    • records the queried location (latitude / longitude / name query
      params) in the log context, so adapter and classifier lines for a
      risk lookup carry the beach they were computed for
    • times the request and returns X-Request-ID and X-Process-Time
    • writes one access line, WARNING for 4xx/5xx

Docs, OpenAPI and liveness probes are not logged.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from jellywatch.core.logging_config import set_request_context, update_request_context

logger = logging.getLogger(__name__)

UNLOGGED_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health/live")


def _query_float(request: Request, name: str) -> Optional[float]:
    raw = request.query_params.get(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Correlation id, queried-location context and one access log line per request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path
        quiet = path.startswith(UNLOGGED_PREFIXES)

        set_request_context(request_id=request_id, method=request.method, endpoint=path)
        update_request_context(
            lat=_query_float(request, "latitude"),
            lon=_query_float(request, "longitude"),
            location=request.query_params.get("name"),
        )

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception(
                "%s %s failed after %.1fms [%s]", request.method, path, elapsed, client_ip,
                extra={"duration_ms": elapsed, "status_code": 500, "endpoint": path},
            )
            set_request_context()
            raise

        elapsed = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.1f}ms"

        if not quiet:
            logger.log(
                logging.WARNING if response.status_code >= 400 else logging.INFO,
                "%s %s → %d [%s]", request.method, path, response.status_code, client_ip,
                extra={
                    "duration_ms": elapsed,
                    "status_code": response.status_code,
                    "endpoint": path,
                },
            )
        set_request_context()
        return response
