"""
FluentRoute - Rate Limiting Middleware
=======================================

What:  Per-client sliding window rate limiter attached to a single route.
How:   Tracks request timestamps per client IP in memory. Installed through
       ``Route.rate_limit(limit, window)`` as route-level middleware.

Algorithm: Sliding Window Counter
    1. Each client IP gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, answer 429
    4. Otherwise record the current timestamp and continue the chain

State is per process. Several workers each keep their own window.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.requests import Request
from starlette.responses import Response

from fluentroute.exceptions import RateLimitExceededError
from fluentroute.http import exception_response
from fluentroute.types import Endpoint

logger = logging.getLogger(__name__)

# Periodic cleanup interval, counted in recorded requests
CLEANUP_EVERY = 1000


class SlidingWindowRateLimiter:
    """
    Route-level middleware allowing ``limit`` requests per ``window`` seconds per client.

    Response on rate limit:
        HTTP 429 with ``{"error": ...}`` and a Retry-After header holding the
        seconds until the oldest request leaves the window.
    """

    def __init__(self, limit: int, window: float):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.limit = limit
        self.window = window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    async def __call__(self, request: Request, call_next: Endpoint) -> Response:
        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )

        now = time.time()
        window_start = now - self.window

        # ── Sliding Window: Clean old entries ─────────────────────────────
        self._requests[client_ip] = [
            ts for ts in self._requests[client_ip] if ts > window_start
        ]

        # ── Check rate limit ──────────────────────────────────────────────
        if len(self._requests[client_ip]) >= self.limit:
            oldest = self._requests[client_ip][0]
            retry_after = int(oldest + self.window - now) + 1

            logger.warning(
                "Rate limit exceeded for IP %s on %s: %d requests in %ss window",
                client_ip,
                request.url.path,
                len(self._requests[client_ip]),
                self.window,
            )
            return exception_response(RateLimitExceededError(retry_after=retry_after))

        # ── Record this request ───────────────────────────────────────────
        self._requests[client_ip].append(now)
        self._recorded += 1

        if self._recorded % CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Remove IPs that have no requests within the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
