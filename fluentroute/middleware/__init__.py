# Middleware package init
"""
FluentRoute - Middleware Package
=================================

Global middleware (Starlette, installed by ServerBuilder):
    Request → [Request ID] → [Logging] → [Body Limit] → [Timeout] → [CORS] → Router

Route-level middleware (``async (request, call_next) -> Response``):
    error_handler, request_validator, request_timeout, cache_control,
    authenticate, SlidingWindowRateLimiter
"""

from fluentroute.middleware.rate_limit import SlidingWindowRateLimiter
from fluentroute.middleware.route import (
    authenticate,
    cache_control,
    error_handler,
    request_timeout,
    request_validator,
)

__all__ = [
    "SlidingWindowRateLimiter",
    "authenticate",
    "cache_control",
    "error_handler",
    "request_timeout",
    "request_validator",
]
