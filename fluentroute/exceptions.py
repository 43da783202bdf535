"""
FluentRoute - Exception Hierarchy
==================================

What:  Application-specific exceptions for the route pipeline, the server
       bootstrap and the credential manager, plus the tagged error variants
       consumed by the result envelope normalizer.
How:   Each exception carries a message, an optional context dict and the
       HTTP status it maps to. The server registers a handler that turns any
       FluentRouteError into a JSON ``{"error": message}`` response.
Who:   Raised by the parameter pipeline, middleware and services.

Exception Hierarchy:
    FluentRouteError (base)
    ├── ConfigurationError       → 500 (manager or server misconfigured)
    ├── ValidationError          → 400 Bad Request
    ├── ParseError               → 400 Bad Request (malformed JSON body)
    ├── AuthError                → 401 Unauthorized
    ├── RequestTimeoutError      → 408 Request Timeout
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── HTTPError                → any status attached by a handler

Tagged transport errors (see services/responses.py):
    TransportError (base)
    ├── NetworkError      connection refused, DNS failure, reset
    ├── AbortedError      request cancelled by the caller
    ├── HttpStatusError   upstream answered with a non-2xx status
    └── GenericError      anything else the caller wants to tag explicitly
"""

from typing import Any, Dict, Optional


class FluentRouteError(Exception):
    """
    Base exception for all FluentRoute errors.

    Attributes:
        message:     Human-readable description, returned as ``{"error": ...}``
        context:     Additional debug info (logged, never returned to clients)
        status_code: HTTP status used when this error reaches the server boundary
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(FluentRouteError):
    """
    Raised when a component is used without the configuration it needs.

    When:  JWTManager built without a secret, check_env() finds missing keys.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ValidationError(FluentRouteError):
    """
    Raised when a parameter or body fails its validator or a required value is missing.

    Example response:
        {"error": "Missing required query parameter: testValue"}
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ParseError(FluentRouteError):
    """Raised when a JSON request body cannot be decoded."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid JSON body",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthError(FluentRouteError):
    """
    Raised when a route requires authentication and the request has none,
    or the presented credential does not verify.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RequestTimeoutError(FluentRouteError):
    """Raised when the handler chain does not answer within the configured timeout."""

    status_code = 408

    def __init__(
        self,
        timeout: float = 0.0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["timeout"] = timeout
        super().__init__(message="Request timed out", context=ctx)
        self.timeout = timeout


class PayloadTooLargeError(FluentRouteError):
    """Raised when the declared request body exceeds ``max_body_size``."""

    status_code = 413

    def __init__(
        self,
        max_body_size: int = 0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["max_body_size"] = max_body_size
        super().__init__(
            message=f"Request body exceeds the limit of {max_body_size} bytes",
            context=ctx,
        )
        self.max_body_size = max_body_size


class RateLimitExceededError(FluentRouteError):
    """
    Raised when a client exceeds a route's rate limit.

    Response includes a Retry-After header with the seconds until the oldest
    request leaves the window.
    """

    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class HTTPError(FluentRouteError):
    """
    Raised by route handlers to answer with a specific status.

    Usage:
        raise HTTPError("User not found", status=404)
    """

    def __init__(
        self,
        message: str = "Internal server error",
        status: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status = status
        self.status_code = status


# ══════════════════════════════════════════════════════════════════════════
# Tagged transport errors
# ══════════════════════════════════════════════════════════════════════════


class TransportError(Exception):
    """
    Base for the closed set of error variants understood by the normalizer.

    Layers that talk to remote services build one of these explicitly, so
    the normalizer classifies by type and never inspects arbitrary fields.
    """

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class NetworkError(TransportError):
    """The request never produced a response (DNS, refused, reset, TLS)."""


class AbortedError(TransportError):
    """The request was cancelled before a response arrived."""

    def __init__(self, message: str = "Request was aborted", status: Optional[int] = None):
        super().__init__(message, status)


class HttpStatusError(TransportError):
    """The upstream answered with a non-success status."""

    def __init__(self, status: int, reason: str = "", body: Any = None):
        self.reason = reason
        self.body = body
        super().__init__(f"{status} {reason}".strip(), status)


class GenericError(TransportError):
    """An explicitly tagged failure that fits none of the other variants."""
