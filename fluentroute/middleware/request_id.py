"""
FluentRoute - Request ID Middleware
====================================

What:  Assigns an ID to each incoming request and echoes it in the response.
How:   Uses the client's X-Request-ID when present, otherwise a short UUID.
       Stored in a ContextVar for loggers and in ``request.state`` for handlers.
When:  Outermost global middleware, so every log line of a request shares the ID.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Client-provided ID wins; otherwise the first 8 chars of a UUID4
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        # ContextVar for loggers and middleware, request.state for handlers
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            # Restore the previous value even when the chain raises
            request_id_var.reset(token)

        # Echo the ID so clients can quote it in bug reports
        response.headers["X-Request-ID"] = rid
        return response
