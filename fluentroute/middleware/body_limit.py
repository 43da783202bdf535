"""
FluentRoute - Body Size Limit Middleware
=========================================

What:  Rejects requests whose declared Content-Length exceeds ``max_body_size``.
Who:   Installed by ServerBuilder when ``ServerConfig.max_body_size`` is set.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from fluentroute.exceptions import PayloadTooLargeError
from fluentroute.http import error_response, exception_response

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_body_size: int):
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Checked against the declared size, before any of the body is read.
        # Chunked requests carry no Content-Length and are not limited here
        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                length = int(declared)
            except ValueError:
                return error_response("Invalid Content-Length header", 400)

            # Equal to the limit is still accepted
            if length > self.max_body_size:
                logger.warning(
                    "Rejected %s %s: body of %d bytes exceeds %d",
                    request.method,
                    request.url.path,
                    length,
                    self.max_body_size,
                )
                return exception_response(PayloadTooLargeError(self.max_body_size))

        return await call_next(request)
