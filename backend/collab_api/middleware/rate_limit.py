"""
Collab Platform API - Rate Limiting Middleware
===============================================

What:  Per-IP fixed-window rate limiter.
How:   Each client IP gets a window that opens on its first request and
       lasts `window` seconds; at most `limit` requests pass per window.
       Rejections go through the Failure Translator as a 429 failure
       envelope with a Retry-After header.
When:  After RequestIDMiddleware, before logging and routing.

Algorithm: Fixed Window Counter
    1. Look up (window_start, count) for the client IP
    2. If the window has elapsed, start a new one at `now`
    3. If count >= limit, reject with 429 (Retry-After = seconds left)
    4. Otherwise increment count and continue

Defaults: 100 requests per 60 seconds.

Scope:
    State is per process. Multi-worker deployments need a shared store
    (e.g. Redis INCR + EXPIRE) to enforce a global budget.
"""

import logging
import math
import time
from typing import Callable, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from collab_api.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL = 1000  # requests between sweeps of expired windows


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory fixed-window rate limiter.

    Args:
        limit: Max requests per client per window
        window: Window length in seconds
        clock: Monotonic time source (injectable for tests)
    """

    # Paths excluded from rate limiting
    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        limit: int = 100,
        window: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.limit = limit
        self.window = window
        self._clock = clock
        # IP → (window_start, request_count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = self._clock()

        window_start, count = self._windows.get(client_ip, (now, 0))
        if now - window_start >= self.window:
            window_start, count = now, 0

        if count >= self.limit:
            retry_after = max(1, math.ceil(window_start + self.window - now))
            translator = request.app.state.failure_translator
            return await translator.translate(
                request,
                RateLimitExceededError(retry_after=retry_after, limit=self.limit, window=self.window),
            )

        self._windows[client_ip] = (window_start, count + 1)

        self._seen += 1
        if self._seen % CLEANUP_INTERVAL == 0:
            self._cleanup_expired(now)

        return await call_next(request)

    def _cleanup_expired(self, now: float) -> None:
        """Drops windows that have already closed."""
        expired = [
            ip for ip, (start, _) in self._windows.items()
            if now - start >= self.window
        ]
        for ip in expired:
            del self._windows[ip]

        if expired:
            logger.debug("Cleaned up %d expired rate limit windows", len(expired))
