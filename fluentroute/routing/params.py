"""
FluentRoute - Route Parameter Pipeline
=======================================

What:  Resolves the declared path, query and header parameters and the JSON
       body of a request, then runs the route handler with the typed values.
How:   Fixed sequence of stages; each stage either produces its values or
       raises ValidationError/ParseError, which ``resolve`` turns into a 400
       JSON response (the short-circuit).
Who:   Called by the endpoint that RouteDefinition.register() binds.

Stage order:
    path → query → body → headers → handler

    Later stages assume earlier ones passed. A rejection at any stage means
    no later stage and no handler runs.

Parameter value resolution (query and header):
    raw present + transform  → transform(raw)
    raw present              → raw
    raw absent               → descriptor default
"""

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Union

from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from fluentroute.exceptions import FluentRouteError, ParseError, ValidationError
from fluentroute.http import error_response, exception_response

logger = logging.getLogger(__name__)

Validator = Callable[[Any], bool]
Transform = Callable[[Any], Any]


class ParamLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"


@dataclass(frozen=True)
class Param:
    """
    Declarative description of one named request input.

    Attributes:
        name:      Path segment name, query key or header name
        location:  Where the raw value is read from
        required:  Missing or empty value rejects the request (query, header)
        validator: Called with the raw string; a falsy result rejects the request
        transform: Converts the raw string into the value handed to the handler
        default:   Used when the value is absent
    """

    name: str
    location: ParamLocation
    required: bool = False
    validator: Optional[Validator] = None
    transform: Optional[Transform] = None
    default: Any = None


@dataclass
class RouteContext:
    """Everything a handler receives: the request plus the resolved inputs."""

    request: Request
    params: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Any = field(default_factory=dict)
    headers: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[[RouteContext], Any]


def _accepts(validator: Validator, value: Any) -> bool:
    # A validator that raises rejects the value
    try:
        return bool(validator(value))
    except Exception as exc:  # noqa: BLE001
        logger.debug("Validator raised for value %r: %s", value, exc)
        return False


def _declares_json_body(headers: Headers) -> bool:
    try:
        content_length = int(headers.get("content-length", "0") or "0")
    except ValueError:
        content_length = 0
    content_type = headers.get("content-type", "")
    return content_length > 0 and "application/json" in content_type


class ParameterPipeline:
    """
    Turns a request into a RouteContext according to the route's descriptors.

    Built once per route at registration; holds no per-request state, so one
    instance serves concurrent requests.
    """

    def __init__(
        self,
        path_params: Sequence[Param] = (),
        query_params: Sequence[Param] = (),
        header_params: Sequence[Param] = (),
        body_validator: Optional[Validator] = None,
    ):
        self.path_params = tuple(path_params)
        self.query_params = tuple(query_params)
        self.header_params = tuple(header_params)
        self.body_validator = body_validator

    async def resolve(self, request: Request) -> Union[RouteContext, JSONResponse]:
        """
        Resolve every declared input.

        Returns:
            RouteContext when all stages pass, otherwise the 400 JSON response
            of the first stage that rejected the request.
        """
        try:
            params = self._resolve_path(request)
            query = self._resolve_query(request)
            body = await self._resolve_body(request)
            headers = self._resolve_headers(request)
        except (ValidationError, ParseError) as exc:
            logger.info(
                "Rejected %s %s: %s", request.method, request.url.path, exc.message
            )
            return error_response(exc.message, exc.status_code)

        return RouteContext(
            request=request, params=params, query=query, body=body, headers=headers
        )

    async def run(self, request: Request, handler: Handler) -> Response:
        """Resolve the inputs and, when they are valid, invoke ``handler``."""
        resolved = await self.resolve(request)
        if isinstance(resolved, Response):
            return resolved
        return await invoke_handler(handler, resolved)

    # ── Stages ────────────────────────────────────────────────────────────

    def _resolve_path(self, request: Request) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        for param in self.path_params:
            value = request.path_params.get(param.name)
            if param.validator and not _accepts(param.validator, value):
                raise ValidationError(f"Invalid path parameter: {param.name}", field=param.name)
            params[param.name] = self._transform(param, value, "path parameter")
        return params

    def _resolve_query(self, request: Request) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        for param in self.query_params:
            value = request.query_params.get(param.name)

            if param.required and (value is None or value == ""):
                raise ValidationError(
                    f"Missing required query parameter: {param.name}", field=param.name
                )
            if value is not None and param.validator and not _accepts(param.validator, value):
                raise ValidationError(f"Invalid query parameter: {param.name}", field=param.name)

            if value is None:
                query[param.name] = param.default
            else:
                query[param.name] = self._transform(param, value, "query parameter")
        return query

    async def _resolve_body(self, request: Request) -> Any:
        if not _declares_json_body(request.headers):
            return {}

        try:
            body = await request.json()
        except ValueError as exc:
            raise ParseError("Invalid JSON body", context={"detail": str(exc)}) from exc

        if self.body_validator and not _accepts(self.body_validator, body):
            raise ValidationError("Invalid request body format", field="body")
        return body

    def _resolve_headers(self, request: Request) -> Dict[str, Any]:
        headers: Dict[str, Any] = {}
        for param in self.header_params:
            value = request.headers.get(param.name)

            if param.required and not value:
                raise ValidationError(f"Missing required header: {param.name}", field=param.name)
            if value and param.validator and not _accepts(param.validator, value):
                raise ValidationError(f"Invalid header: {param.name}", field=param.name)

            if value:
                headers[param.name] = self._transform(param, value, "header")
            else:
                headers[param.name] = param.default
        return headers

    @staticmethod
    def _transform(param: Param, value: Any, kind: str) -> Any:
        if param.transform is None:
            return value
        try:
            return param.transform(value)
        except Exception as exc:  # noqa: BLE001 - a failed conversion rejects the value
            raise ValidationError(
                f"Invalid {kind}: {param.name}",
                field=param.name,
                context={"detail": str(exc)},
            ) from exc


# ══════════════════════════════════════════════════════════════════════════
# Handler invocation
# ══════════════════════════════════════════════════════════════════════════


def _to_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status_code=204)
    if isinstance(result, str):
        return PlainTextResponse(result)
    return JSONResponse(jsonable_encoder(result))


async def invoke_handler(handler: Handler, context: RouteContext) -> Response:
    """
    Run the route handler and convert its outcome into a response.

    Coroutine handlers are awaited; plain functions run in the threadpool.
    Exceptions become ``{"error": message}`` with the exception's attached
    status (``status`` or ``status_code``), or 500.
    """
    try:
        if inspect.iscoroutinefunction(handler):
            result = await handler(context)
        else:
            result = await run_in_threadpool(handler, context)
            if inspect.isawaitable(result):
                result = await result
        return _to_response(result)
    except Exception as exc:  # noqa: BLE001 - handler errors never escape the route
        if isinstance(exc, FluentRouteError):
            logger.warning("Route handler error: %s", exc.message)
        else:
            logger.error("Route handler error: %s", exc, exc_info=True)
        return exception_response(exc)
