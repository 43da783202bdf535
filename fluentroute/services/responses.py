"""
FluentRoute - Result Envelope Normalizer
=========================================

What:  Turns loosely filled failure envelopes into well-formed ones and wraps
       outbound HTTP calls so they return envelopes instead of raising.
How:   ``build_response`` classifies the carried error in a fixed priority
       order; ``from_response_like`` awaits an httpx-style response and maps
       every outcome to Success or Failure.
Who:   JWTManager, application code calling other services.

Classification order (first match wins):
    1. Caller supplied ``message`` or ``error_type``  → kept, code defaults to 500
    2. NetworkError / AbortedError / HttpStatusError  → variant message and status
       (asyncio.CancelledError is classified as AbortedError)
    3. Any other exception                             → str(exc), attached status or 500
    4. Anything else                                   → fallback message, 500

Callers who want automatic classification must leave ``message`` and
``error_type`` unset.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional, Protocol

import httpx

from fluentroute.exceptions import (
    AbortedError,
    HttpStatusError,
    NetworkError,
    TransportError,
)
from fluentroute.schemas.envelope import Envelope, Failure, Success

logger = logging.getLogger(__name__)

DEFAULT_ERROR_CODE = 500
DEFAULT_ERROR_MESSAGE = "An error occurred, but no additional details are available"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"
UNKNOWN_NETWORK_MESSAGE = "An unknown network error occurred"
PARSE_FAILURE_MESSAGE = "Could not parse response as JSON"
ABORTED_MESSAGE = "Request was aborted"

MIN_HTTP_STATUS = 100
MAX_HTTP_STATUS = 599


class ResponseLike(Protocol):
    """The subset of ``httpx.Response`` that ``from_response_like`` relies on."""

    status_code: int
    reason_phrase: str

    @property
    def is_success(self) -> bool: ...

    def json(self) -> Any: ...


# ══════════════════════════════════════════════════════════════════════════
# Status helpers
# ══════════════════════════════════════════════════════════════════════════


def status_of(error: Any) -> Optional[int]:
    """
    Return the HTTP status attached to ``error``, if any.

    Looks at ``status`` first, then ``status_code`` (Starlette's HTTPException
    and FluentRouteError use the latter). Only ints in the HTTP range
    100-599 count; booleans and out-of-range numbers are ignored.
    """
    if not isinstance(error, BaseException):
        return None
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, bool) or not isinstance(value, int):
            continue
        if MIN_HTTP_STATUS <= value <= MAX_HTTP_STATUS:
            return value
    return None


def is_error_with_status(error: Any) -> bool:
    return status_of(error) is not None


# ══════════════════════════════════════════════════════════════════════════
# Normalization
# ══════════════════════════════════════════════════════════════════════════


def build_response(envelope: Envelope) -> Envelope:
    """
    Normalize an envelope.

    Success values are returned as-is. Failure values come back as a new
    Failure whose ``message`` is non-empty and whose ``code`` is an int.
    Never raises.
    """
    if envelope.success:
        return envelope

    error = envelope.error

    if envelope.message or envelope.error_type:
        return envelope.model_copy(
            update={
                "message": envelope.message or DEFAULT_ERROR_MESSAGE,
                "code": envelope.code if envelope.code is not None else DEFAULT_ERROR_CODE,
            }
        )

    if isinstance(error, asyncio.CancelledError):
        return envelope.model_copy(
            update={
                "message": ABORTED_MESSAGE,
                "code": DEFAULT_ERROR_CODE,
                "error_type": AbortedError.__name__,
            }
        )

    if isinstance(error, (NetworkError, AbortedError, HttpStatusError)):
        status = status_of(error)
        return envelope.model_copy(
            update={
                "message": _transport_message(error) or UNKNOWN_NETWORK_MESSAGE,
                "code": status if status is not None else DEFAULT_ERROR_CODE,
                "error_type": type(error).__name__,
            }
        )

    if isinstance(error, Exception):
        status = status_of(error)
        return envelope.model_copy(
            update={
                "message": _exception_message(error) or UNKNOWN_ERROR_MESSAGE,
                "code": status if status is not None else DEFAULT_ERROR_CODE,
                "error_type": type(error).__name__,
            }
        )

    return envelope.model_copy(
        update={"message": DEFAULT_ERROR_MESSAGE, "code": DEFAULT_ERROR_CODE}
    )


normalize = build_response


def _transport_message(error: TransportError) -> str:
    if isinstance(error, AbortedError):
        return ABORTED_MESSAGE
    if isinstance(error, HttpStatusError) and isinstance(error.body, dict):
        body_message = error.body.get("message")
        if body_message:
            return str(body_message)
    return error.message


def _exception_message(error: Exception) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


# ══════════════════════════════════════════════════════════════════════════
# HTTP helpers
# ══════════════════════════════════════════════════════════════════════════


def safe_parse_json(response: ResponseLike) -> Any:
    """Decode the response body as JSON, returning None when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return None


async def from_response_like(response_awaitable: Awaitable[ResponseLike]) -> Envelope:
    """
    Await a response and convert it into an envelope.

    Non-2xx:  Failure with the body's ``message`` (or the reason phrase) and
              the response status as ``code``.
    2xx:      Success with the decoded JSON, or a 500 Failure when the body
              does not decode.
    Raised:   Failure derived from the exception text. httpx transport errors
              are tagged as NetworkError first.
    """
    try:
        response = await response_awaitable

        if not response.is_success:
            error_data = safe_parse_json(response)
            body_message = error_data.get("message") if isinstance(error_data, dict) else None
            return build_response(
                Failure(
                    error=HttpStatusError(
                        response.status_code, response.reason_phrase, error_data
                    ),
                    message=body_message or response.reason_phrase or None,
                    code=response.status_code,
                )
            )

        data = safe_parse_json(response)
        if data is None:
            return build_response(
                Failure(
                    error=ValueError("Failed to parse response body"),
                    message=PARSE_FAILURE_MESSAGE,
                    code=DEFAULT_ERROR_CODE,
                )
            )
        return Success(data=data)

    except httpx.TransportError as exc:
        logger.warning("Transport error during request: %s", exc)
        return build_response(Failure(error=NetworkError(str(exc))))
    except Exception as exc:  # noqa: BLE001 - every failure becomes an envelope
        logger.warning("Request failed: %s", exc)
        return build_response(Failure(error=exc))


async def fetch(
    method: str,
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    **kwargs: Any,
) -> Envelope:
    """
    Send a request with httpx and return the outcome as an envelope.

    Uses ``client`` when given (its lifecycle stays with the caller),
    otherwise opens a short-lived AsyncClient for this call.
    """
    if client is not None:
        return await from_response_like(client.request(method, url, **kwargs))

    async with httpx.AsyncClient() as owned_client:
        return await from_response_like(owned_client.request(method, url, **kwargs))
