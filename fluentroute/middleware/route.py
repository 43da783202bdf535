"""
FluentRoute - Route-Level Middleware
=====================================

What:  Ready-made middleware for ``Route.use_middleware`` and the builder's
       shortcuts (``cache``, ``authenticate``).
How:   Each factory returns an ``async (request, call_next) -> Response``
       callable (fluentroute.types.Middleware); routing/chain.py composes them.

Inventory:
    error_handler()         catch errors from the rest of the chain → JSON error
    request_validator()     reject non-object or invalid JSON bodies on writes
    request_timeout(s)      answer 408 when the chain is slower than ``s`` seconds
    cache_control(max_age)  set Cache-Control on the response
    authenticate(...)       require an Authorization header, optionally verify it
"""

import asyncio
import logging
from typing import Any, Optional, Type

import pydantic
from starlette.requests import Request
from starlette.responses import Response

from fluentroute.exceptions import AuthError, RequestTimeoutError
from fluentroute.http import error_response, exception_response
from fluentroute.types import Endpoint, Middleware

logger = logging.getLogger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}


def error_handler() -> Middleware:
    """Convert any exception raised further down the chain into a JSON error."""

    async def error_handler_middleware(request: Request, call_next: Endpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Unhandled error on %s %s: %s",
                request.method,
                request.url.path,
                exc,
                exc_info=True,
            )
            return exception_response(exc)

    return error_handler_middleware


def request_validator(schema: Optional[Type[pydantic.BaseModel]] = None) -> Middleware:
    """
    Check the JSON body of POST, PUT and PATCH requests.

    Args:
        schema: Optional Pydantic model; when given the body must validate
                against it. Without it the body only has to be a JSON object.
    """

    async def request_validator_middleware(request: Request, call_next: Endpoint) -> Response:
        # GET, DELETE and HEAD bodies are never inspected
        if request.method in BODY_METHODS:
            try:
                # Starlette caches the decoded body, so the pipeline reads it again for free
                body = await request.json()
            except ValueError:
                return error_response("Invalid JSON in request body", 400)

            if not isinstance(body, dict):
                return error_response("Invalid request body", 400)

            if schema is not None:
                try:
                    schema.model_validate(body)
                except pydantic.ValidationError as exc:
                    logger.info("Body rejected by %s: %s", schema.__name__, exc)
                    return error_response("Invalid request body", 400)

        return await call_next(request)

    return request_validator_middleware


def _discard_late_result(task: "asyncio.Future[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Handler failed after its request timed out: %s", exc)
    else:
        logger.debug("Discarded handler result that arrived after the timeout")


def request_timeout(seconds: float) -> Middleware:
    """
    Answer 408 when the rest of the chain takes longer than ``seconds``.

    The slow handler is not cancelled; it keeps running and its eventual
    result is discarded.
    """

    async def request_timeout_middleware(request: Request, call_next: Endpoint) -> Response:
        task = asyncio.ensure_future(call_next(request))
        done, _ = await asyncio.wait({task}, timeout=seconds)
        if task in done:
            return task.result()

        task.add_done_callback(_discard_late_result)
        logger.warning(
            "Request %s %s timed out after %ss", request.method, request.url.path, seconds
        )
        return exception_response(RequestTimeoutError(timeout=seconds))

    return request_timeout_middleware


def cache_control(max_age: int) -> Middleware:
    async def cache_control_middleware(request: Request, call_next: Endpoint) -> Response:
        response = await call_next(request)
        response.headers["Cache-Control"] = f"max-age={max_age}"
        return response

    return cache_control_middleware


def authenticate(strategy: str = "default", verifier: Any = None) -> Middleware:
    """
    Require an ``Authorization`` header.

    Args:
        strategy: Label written to the debug log for each authenticated request.
        verifier: Optional object with ``async verify(token) -> envelope``
                  (e.g. JWTManager). A failed verification answers 401 with
                  the envelope message; verified claims go to
                  ``request.state.claims``.
    """

    async def authenticate_middleware(request: Request, call_next: Endpoint) -> Response:
        # Presence check only; the credential itself is checked by the verifier
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return exception_response(AuthError())

        logger.debug("Using auth strategy: %s", strategy)

        if verifier is not None:
            # The raw header goes in as-is; JWTManager strips the Bearer prefix
            result = await verifier.verify(auth_header)
            if not result.success:
                logger.info("Rejected credential on %s: %s", request.url.path, result.message)
                return exception_response(AuthError(result.message or "Invalid credentials"))
            # Handlers read the verified claims from ctx.request.state.claims
            request.state.claims = result.data

        return await call_next(request)

    return authenticate_middleware
