"""
FluentRoute - Request Timeout Middleware
=========================================

What:  Answers 408 when the downstream application does not start its
       response within ``timeout`` seconds.
How:   Pure ASGI middleware. The downstream app runs as its own task and is
       raced against a timer with ``asyncio.wait``. On expiry the 408 is sent
       once and every message the late app tries to send is dropped.
Who:   Installed by ServerBuilder when ``ServerConfig.request_timeout`` is set.

The timed-out handler is not cancelled. Side effects it has already started
keep going; only its response is discarded.
"""

import asyncio
import logging
from typing import Any, Dict

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fluentroute.exceptions import RequestTimeoutError
from fluentroute.http import exception_response

logger = logging.getLogger(__name__)


def _log_late_outcome(task: "asyncio.Future[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Application failed after its request timed out: %s", exc)


class RequestTimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout: float):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        # Lifespan and websocket scopes pass through untouched
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state: Dict[str, bool] = {"started": False, "timed_out": False}

        # ── Guarded send ──────────────────────────────────────────────────
        # Once the 408 has gone out, anything the late app sends is dropped
        async def guarded_send(message: Message) -> None:
            if state["timed_out"]:
                return
            if message["type"] == "http.response.start":
                state["started"] = True
            await send(message)

        # ── Race the app against the timer ────────────────────────────────
        # asyncio.wait does not cancel the task on expiry
        task = asyncio.ensure_future(self.app(scope, receive, guarded_send))
        done, _ = await asyncio.wait({task}, timeout=self.timeout)

        if task in done:
            # Re-raises the app's exception, if any, for outer handlers
            task.result()
            return

        if state["started"]:
            # Response already on the wire; a 408 can no longer be sent
            await task
            return

        # ── Timed out: answer 408 exactly once ───────────────────────────
        state["timed_out"] = True
        # Retrieve the late outcome so asyncio never reports it as unhandled
        task.add_done_callback(_log_late_outcome)
        logger.warning(
            "%s %s timed out after %ss",
            scope.get("method", ""),
            scope.get("path", ""),
            self.timeout,
        )
        response = exception_response(RequestTimeoutError(timeout=self.timeout))
        await response(scope, receive, send)
