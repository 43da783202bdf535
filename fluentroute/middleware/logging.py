"""
FluentRoute - Request Logging Middleware
=========================================

What:  One access log line per HTTP request with status and duration.
How:   Timed from middleware entry until the downstream response returns.
Who:   Installed by ServerBuilder when ``ServerConfig.logger`` is true.

Line format:
    [<request id>] <METHOD> <path> -> <status> (<ms>ms) client=<ip>

Level by status class: 5xx ERROR, 4xx WARNING, anything else INFO.
Requests that raise are logged at ERROR with status "!" and re-raised.
Bodies and Authorization headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fluentroute.middleware.request_id import request_id_var

logger = logging.getLogger("fluentroute.access")


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._write(request, logging.ERROR, "!", started)
            raise

        self._write(request, level_for_status(response.status_code), response.status_code, started)
        return response

    @staticmethod
    def _write(request: Request, level: int, status: object, started: float) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        client = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            level,
            "[%s] %s %s -> %s (%.1fms) client=%s",
            rid,
            request.method,
            request.url.path,
            status,
            elapsed_ms,
            client,
            extra={
                "request_id": rid,
                "status": status,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
