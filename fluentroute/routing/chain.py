"""
FluentRoute - Middleware Chain
===============================

What:  Folds a route's middleware list and its endpoint into one endpoint.
How:   Right-to-left composition; each middleware receives the request and a
       ``call_next`` that runs the rest of the chain. Returning a response
       without calling ``call_next`` short-circuits the chain.

Middleware signature (same shape as Starlette's BaseHTTPMiddleware.dispatch):
    async def middleware(request: Request, call_next: Endpoint) -> Response
"""

from typing import Sequence

from starlette.requests import Request
from starlette.responses import Response

from fluentroute.types import Endpoint, Middleware


def _link(middleware: Middleware, call_next: Endpoint) -> Endpoint:
    async def endpoint(request: Request) -> Response:
        response = await middleware(request, call_next)
        if response is None:
            name = getattr(middleware, "__name__", repr(middleware))
            raise RuntimeError(f"Middleware {name} returned no response")
        return response

    return endpoint


def compose(middleware: Sequence[Middleware], endpoint: Endpoint) -> Endpoint:
    """
    Build a single endpoint running ``middleware`` in order, then ``endpoint``.

    ``compose([a, b], h)(request)`` runs ``a``, which may call into ``b``,
    which may call into ``h``.
    """
    handler = endpoint
    for mw in reversed(middleware):
        handler = _link(mw, handler)
    return handler
