"""
FluentRoute - Package Initializer
==================================

What:  A thin convenience layer over FastAPI/Starlette: a fluent route
       builder with a typed parameter pipeline, a server bootstrap wrapper,
       an HS256 JWT helper and a Success/Failure result envelope.

Architecture Note:
    ┌─────────────────────────────────────┐
    │  server.py   (bootstrap, uvicorn)   │  ← owns the FastAPI app
    ├─────────────────────────────────────┤
    │  routing/    (builder, pipeline)    │  ← route → middleware → params → handler
    ├─────────────────────────────────────┤
    │  middleware/ (global + route-level) │
    ├─────────────────────────────────────┤
    │  services/   (envelopes, JWT)       │  ← no HTTP server dependency
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"

from fluentroute.config import HttpsConfig, JWTSettings, ServerConfig, check_env
from fluentroute.exceptions import (
    AbortedError,
    AuthError,
    ConfigurationError,
    FluentRouteError,
    GenericError,
    HTTPError,
    HttpStatusError,
    NetworkError,
    ParseError,
    ValidationError,
)
from fluentroute.routing import Param, ParamLocation, Route, RouteContext, Router, route
from fluentroute.schemas.envelope import Envelope, Failure, Success
from fluentroute.server import ServerBuilder, create_server, setup_logging
from fluentroute.services.jwt_manager import JWTManager
from fluentroute.services.responses import (
    build_response,
    fetch,
    from_response_like,
    is_error_with_status,
    normalize,
)

__all__ = [
    "__version__",
    "AbortedError",
    "AuthError",
    "ConfigurationError",
    "Envelope",
    "Failure",
    "FluentRouteError",
    "GenericError",
    "HTTPError",
    "HttpStatusError",
    "HttpsConfig",
    "JWTManager",
    "JWTSettings",
    "NetworkError",
    "Param",
    "ParamLocation",
    "ParseError",
    "Route",
    "RouteContext",
    "Router",
    "ServerBuilder",
    "ServerConfig",
    "Success",
    "ValidationError",
    "build_response",
    "check_env",
    "create_server",
    "fetch",
    "from_response_like",
    "is_error_with_status",
    "normalize",
    "route",
    "setup_logging",
]
