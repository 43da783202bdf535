"""Callable shapes shared by the routing and middleware packages."""

from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

Endpoint = Callable[[Request], Awaitable[Response]]

# async def middleware(request, call_next) -> Response
Middleware = Callable[[Request, Endpoint], Awaitable[Response]]
