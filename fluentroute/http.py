"""
FluentRoute - JSON Error Responses
===================================

What:  Builds the ``{"error": "<message>"}`` responses used by every
       short-circuit and error path.
Who:   Parameter pipeline, route guard, middleware, server exception handlers.
"""

import logging
from typing import Dict, Optional

from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

from fluentroute.exceptions import FluentRouteError
from fluentroute.services.responses import status_of

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_response(
    message: str,
    status_code: int = 500,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


def exception_status(exc: BaseException) -> int:
    """Attached status of ``exc`` when it is a valid HTTP status, else 500."""
    status = status_of(exc)
    if status is None or not 100 <= status <= 599:
        return 500
    return status


def exception_message(exc: BaseException) -> str:
    if isinstance(exc, FluentRouteError):
        return exc.message or INTERNAL_ERROR_MESSAGE
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    return str(exc) or INTERNAL_ERROR_MESSAGE


def exception_response(exc: BaseException) -> JSONResponse:
    """Convert any exception into a JSON error response with its attached status."""
    headers = None
    retry_after = getattr(exc, "retry_after", None)
    if isinstance(retry_after, int):
        headers = {"Retry-After": str(retry_after)}
    return error_response(exception_message(exc), exception_status(exc), headers)
