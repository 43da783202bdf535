"""
FluentRoute - Route Builder
============================

What:  Fluent DSL for declaring a route: method, path, typed parameters,
       body validation, middleware and handler.
How:   ``Route`` accumulates configuration through chained calls.
       ``build()`` freezes it into a ``RouteDefinition``; ``register()`` binds
       the definition's endpoint to a dispatcher (FastAPI app or APIRouter).

Example:
    Router.get("/users/:id")
        .path_param("id", validator=str.isdigit, transform=int)
        .query_param("verbose", transform=lambda v: v == "true", default=False)
        .authenticate()
        .handler(get_user)
        .register(app)

Endpoint built at registration:
    request → [route middleware, in order] → parameter pipeline → handler
    Any exception escaping that chain becomes a JSON error response.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from starlette.requests import Request
from starlette.responses import Response

from fluentroute.http import error_response, exception_response
from fluentroute.middleware.rate_limit import SlidingWindowRateLimiter
from fluentroute.middleware.route import authenticate as authenticate_middleware
from fluentroute.middleware.route import cache_control
from fluentroute.routing.chain import Endpoint, Middleware, compose
from fluentroute.routing.params import (
    Handler,
    Param,
    ParamLocation,
    ParameterPipeline,
    RouteContext,
    Validator,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")

# ":id" segments are rewritten to the dispatcher's "{id}" syntax
_COLON_SEGMENT = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def normalize_path(path: str) -> str:
    return _COLON_SEGMENT.sub(r"{\1}", path)


def _not_implemented(context: RouteContext) -> Response:
    return error_response("Not implemented", 501)


@dataclass(frozen=True)
class RouteDefinition:
    """Immutable, fully configured route. Produced by ``Route.build()``."""

    method: str
    path: str
    path_params: Tuple[Param, ...]
    query_params: Tuple[Param, ...]
    header_params: Tuple[Param, ...]
    body_validator: Optional[Validator]
    middleware: Tuple[Middleware, ...]
    handler: Handler
    description: str = ""
    tags: Tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return f"{self.method} {self.path}"

    def endpoint(self) -> Endpoint:
        """Compose middleware, parameter pipeline and handler into one endpoint."""
        pipeline = ParameterPipeline(
            path_params=self.path_params,
            query_params=self.query_params,
            header_params=self.header_params,
            body_validator=self.body_validator,
        )

        async def terminal(request: Request) -> Response:
            return await pipeline.run(request, self.handler)

        chain = compose(self.middleware, terminal)
        route_name = self.name

        async def endpoint(request: Request) -> Response:
            try:
                return await chain(request)
            except Exception as exc:  # noqa: BLE001 - route boundary
                logger.error("Error in route %s: %s", route_name, exc, exc_info=True)
                return exception_response(exc)

        return endpoint

    def register(self, dispatcher: Any) -> None:
        """
        Bind this route to ``dispatcher`` at (method, path).

        ``dispatcher`` is anything with Starlette's
        ``add_route(path, endpoint, methods=..., name=...)``: a FastAPI app,
        a Starlette app, an APIRouter or a starlette Router.
        """
        dispatcher.add_route(
            self.path,
            self.endpoint(),
            methods=[self.method],
            name=self.name,
        )
        logger.debug("Registered route %s", self.name)


class Route:
    """
    Fluent builder for a single route.

    Every configuration method returns the builder. A builder registers once;
    build() may be called any number of times and returns a fresh snapshot.
    """

    def __init__(self, path: str):
        self._path = path
        self._method = "GET"
        self._path_params: List[Param] = []
        self._query_params: List[Param] = []
        self._header_params: List[Param] = []
        self._middleware: List[Middleware] = []
        self._body_validator: Optional[Validator] = None
        self._handler: Handler = _not_implemented
        self._description = ""
        self._tags: List[str] = []
        self._registered = False

    # ── Method ────────────────────────────────────────────────────────────

    def method(self, method: str) -> "Route":
        upper = method.upper()
        if upper not in HTTP_METHODS:
            raise ValueError(f"Unsupported method '{method}'. Use one of: {', '.join(HTTP_METHODS)}")
        self._method = upper
        return self

    def get(self) -> "Route":
        return self.method("GET")

    def post(self) -> "Route":
        return self.method("POST")

    def put(self) -> "Route":
        return self.method("PUT")

    def delete(self) -> "Route":
        return self.method("DELETE")

    def patch(self) -> "Route":
        return self.method("PATCH")

    # ── Parameters ────────────────────────────────────────────────────────

    def path_param(self, name: str, **options: Any) -> "Route":
        """Declare a path segment. Options: validator, transform."""
        self._path_params.append(Param(name, ParamLocation.PATH, **options))
        return self

    def query_param(self, name: str, **options: Any) -> "Route":
        """Declare a query parameter. Options: required, validator, transform, default."""
        self._query_params.append(Param(name, ParamLocation.QUERY, **options))
        return self

    def header_param(self, name: str, **options: Any) -> "Route":
        """Declare a request header. Options: required, validator, transform, default."""
        self._header_params.append(Param(name, ParamLocation.HEADER, **options))
        return self

    def params(self, *descriptors: Param) -> "Route":
        """Declare several descriptors at once, sorted by their location."""
        for param in descriptors:
            if param.location is ParamLocation.PATH:
                self._path_params.append(param)
            elif param.location is ParamLocation.QUERY:
                self._query_params.append(param)
            else:
                self._header_params.append(param)
        return self

    def validate_body(self, validator: Validator) -> "Route":
        self._body_validator = validator
        return self

    # ── Documentation ─────────────────────────────────────────────────────

    def describe(self, description: str) -> "Route":
        self._description = description
        return self

    def tag(self, *tags: str) -> "Route":
        self._tags.extend(tags)
        return self

    @property
    def description(self) -> str:
        return self._description

    @property
    def tags(self) -> Tuple[str, ...]:
        return tuple(self._tags)

    # ── Middleware ────────────────────────────────────────────────────────

    def use_middleware(self, middleware: Middleware) -> "Route":
        self._middleware.append(middleware)
        return self

    def cache(self, max_age: int) -> "Route":
        """Set ``Cache-Control: max-age=<max_age>`` on responses."""
        return self.use_middleware(cache_control(max_age))

    def rate_limit(self, limit: int, window: float) -> "Route":
        """Allow ``limit`` requests per ``window`` seconds per client IP."""
        return self.use_middleware(SlidingWindowRateLimiter(limit, window))

    def authenticate(self, strategy: str = "default", verifier: Any = None) -> "Route":
        """Require an Authorization header; see middleware.route.authenticate."""
        return self.use_middleware(authenticate_middleware(strategy, verifier))

    # ── Handler & registration ────────────────────────────────────────────

    def handler(self, fn: Callable[[RouteContext], Any]) -> "Route":
        self._handler = fn
        return self

    def build(self) -> RouteDefinition:
        return RouteDefinition(
            method=self._method,
            path=normalize_path(self._path),
            path_params=tuple(self._path_params),
            query_params=tuple(self._query_params),
            header_params=tuple(self._header_params),
            body_validator=self._body_validator,
            middleware=tuple(self._middleware),
            handler=self._handler,
            description=self._description,
            tags=tuple(self._tags),
        )

    def register(self, dispatcher: Any) -> RouteDefinition:
        """
        Build the route and bind it to ``dispatcher``.

        Raises:
            RuntimeError: if this builder was already registered.
        """
        if self._registered:
            raise RuntimeError(f"Route {self._method} {self._path} is already registered")
        definition = self.build()
        definition.register(dispatcher)
        self._registered = True
        return definition


def route(path: str) -> Route:
    return Route(path)


class Router:
    """Shortcuts creating a Route with its method already set."""

    @staticmethod
    def get(path: str) -> Route:
        return Route(path).get()

    @staticmethod
    def post(path: str) -> Route:
        return Route(path).post()

    @staticmethod
    def put(path: str) -> Route:
        return Route(path).put()

    @staticmethod
    def patch(path: str) -> Route:
        return Route(path).patch()

    @staticmethod
    def delete(path: str) -> Route:
        return Route(path).delete()
