"""
FluentRoute - Server Bootstrap
===============================

What:  Owns the FastAPI application, installs the global middleware and
       exception handlers, registers routes and starts uvicorn.
How:   ``ServerBuilder`` wraps one FastAPI app for the process lifetime.
       Configuration comes from a ServerConfig (environment by default).
Who:   Application entry points: ``create_server().add_route(...).start()``.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                      FastAPI App                          │
    │                                                           │
    │  Global middleware (outer → inner):                       │
    │  Request ID → Logging → Body Limit → Timeout → CORS → user │
    │                                                           │
    │  Routes (per route):                                      │
    │  route middleware → parameter pipeline → handler          │
    │                                                           │
    │  Exception handlers:                                      │
    │  FluentRouteError → {"error": message}, its status        │
    │  Exception        → config.error_handler or 500           │
    └───────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, List, Optional

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware import Middleware as StarletteMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from fluentroute import __version__
from fluentroute.config import ServerConfig
from fluentroute.exceptions import FluentRouteError
from fluentroute.http import INTERNAL_ERROR_MESSAGE, error_response, exception_response
from fluentroute.middleware.body_limit import BodySizeLimitMiddleware
from fluentroute.middleware.logging import RequestLoggingMiddleware
from fluentroute.middleware.request_id import RequestIDMiddleware, request_id_var
from fluentroute.middleware.timeout import RequestTimeoutMiddleware
from fluentroute.routing.route import Route, RouteDefinition, normalize_path

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Our access log replaces uvicorn's, so uvicorn.access is turned down.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(
    app: FastAPI,
    error_handler: Optional[Callable[..., Any]] = None,
) -> None:
    """
    Map exceptions that escape routes and middleware to JSON responses.

    FluentRouteError    → its status_code, ``{"error": message}``
    Exception (fallback) → ``error_handler(request, exc)`` when configured,
                           otherwise 500 ``{"error": "Internal server error"}``
    """

    @app.exception_handler(FluentRouteError)
    async def handle_fluentroute_error(request: Request, exc: FluentRouteError):
        rid = request_id_var.get("")
        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return exception_response(exc)

    if error_handler is not None:
        # Starlette runs the Exception handler in ServerErrorMiddleware, outside every other layer
        app.add_exception_handler(Exception, error_handler)
        return

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        rid = request_id_var.get("")
        # Full traceback server-side only; the client gets a generic message
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_response(INTERNAL_ERROR_MESSAGE, 500)


# ══════════════════════════════════════════════════════════════════════════
# Server Builder
# ══════════════════════════════════════════════════════════════════════════

def _normalize_prefix(prefix: str) -> str:
    prefix = normalize_path(prefix).rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


class ServerBuilder:
    """
    Builds and runs a FastAPI application from fluent routes.

    Usage:
        server = create_server(port=8080, cors=True)
        server.add_route(Router.get("/health").handler(lambda ctx: {"ok": True}))
        server.group("/v1", lambda router: users_route.register(router))
        server.start()
    """

    def __init__(self, config: Optional[ServerConfig] = None, **overrides: Any):
        if config is None:
            config = ServerConfig(**overrides)
        elif overrides:
            # model_copy() skips validation; rebuild so overrides are range-checked.
            # error_handler is excluded from dumps and has to be carried over by hand
            values = config.model_dump()
            values["error_handler"] = config.error_handler
            values.update(overrides)
            config = ServerConfig(**values)
        self.config = config
        self.routes: List[RouteDefinition] = []

        self.app = FastAPI(
            title="FluentRoute",
            version=__version__,
            lifespan=self._lifespan,
        )
        self._setup_middleware()
        register_exception_handlers(self.app, self.config.error_handler)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "FluentRoute app ready with %d route(s) on %s:%d",
            len(self.routes),
            self.config.hostname,
            self.config.port,
        )
        yield
        logger.info("FluentRoute app shut down")

    def _setup_middleware(self) -> None:
        # ── Register Middleware ───────────────────────────────────────────
        # add_middleware() wraps the existing stack, so the last one added runs first.
        # Added: CORS → Timeout → Body Limit → Logging → Request ID
        # Runs:  Request ID → Logging → Body Limit → Timeout → CORS → router

        # CORS: innermost, so preflight answers still get a request ID and a log line
        if self.config.cors:
            options = (
                dict(self.config.cors)
                if isinstance(self.config.cors, dict)
                else {"allow_origins": ["*"], "allow_methods": ["*"], "allow_headers": ["*"]}
            )
            self.app.add_middleware(CORSMiddleware, **options)

        # Timeout: covers routing, route middleware and handler, not the outer layers
        if self.config.request_timeout:
            self.app.add_middleware(RequestTimeoutMiddleware, timeout=self.config.request_timeout)

        # Body limit: rejects before the timeout clock starts
        if self.config.max_body_size:
            self.app.add_middleware(BodySizeLimitMiddleware, max_body_size=self.config.max_body_size)

        # Access log: one line per request, including 408 and 413 answers
        if self.config.logger:
            self.app.add_middleware(RequestLoggingMiddleware)

        # Request ID: always on and outermost, so every log line carries it
        self.app.add_middleware(RequestIDMiddleware)

    # ── Routes ────────────────────────────────────────────────────────────

    def add_route(self, route: Route) -> "ServerBuilder":
        self.routes.append(route.register(self.app))
        return self

    def group(self, prefix: str, build: Callable[[APIRouter], Any]) -> "ServerBuilder":
        """
        Mount a sub-router at ``prefix``.

        ``build`` receives an empty APIRouter and registers routes on it
        (``route.register(router)``); it may include further routers for
        deeper nesting.
        """
        router = APIRouter()
        build(router)
        self.app.include_router(router, prefix=_normalize_prefix(prefix))
        logger.debug("Mounted group %s with %d route(s)", prefix, len(router.routes))
        return self

    def middleware(self, dispatch: Callable[..., Any]) -> "ServerBuilder":
        """
        Add global middleware ``async (request, call_next) -> Response``.

        Runs after the built-in middleware, in the order added.
        """
        # Starlette builds the stack on the first request; it cannot change afterwards
        if self.app.middleware_stack is not None:
            raise RuntimeError("Cannot add middleware after the application has started")
        # append() rather than add_middleware(): user middleware sits inside the built-ins
        self.app.user_middleware.append(StarletteMiddleware(BaseHTTPMiddleware, dispatch=dispatch))
        return self

    def get_app(self) -> FastAPI:
        return self.app

    # ── Serving ───────────────────────────────────────────────────────────

    def _uvicorn_config(self) -> uvicorn.Config:
        https = self.config.https
        return uvicorn.Config(
            self.app,
            host=self.config.hostname,
            port=self.config.port,
            ssl_certfile=https.cert if https else None,
            ssl_keyfile=https.key if https else None,
            log_level=self.config.log_level.lower(),
            access_log=False,
        )

    def _log_start(self) -> None:
        scheme = "https" if self.config.https else "http"
        logger.info(
            "Server starting on %s://%s:%d", scheme, self.config.hostname, self.config.port
        )

    def start(self) -> None:
        """Configure logging and serve the app with uvicorn (blocking)."""
        setup_logging(self.config.log_level)
        self._log_start()
        uvicorn.Server(self._uvicorn_config()).run()

    async def serve(self) -> None:
        """Serve on the running event loop; for embedding in async programs."""
        self._log_start()
        await uvicorn.Server(self._uvicorn_config()).serve()


def create_server(config: Optional[ServerConfig] = None, **overrides: Any) -> ServerBuilder:
    return ServerBuilder(config, **overrides)
