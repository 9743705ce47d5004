"""
Book Catalogue Backend — Rate Limiting Middleware
==================================================

What:  Per-IP sliding-window limit on the `/api` surface
       (default 100 requests per 15 minutes).
How:   Keeps the timestamps of each IP's requests inside the window; once an
       IP has `rate_limit_requests` of them, further requests get 429 with a
       `Retry-After` header until the oldest one ages out.

The counters live in process memory, so each worker enforces its own limit.
"""

import logging
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from book_catalog.config import settings
from book_catalog.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
LIMITED_PREFIX = "/api/"
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window limiter.

    `max_requests` and `window_seconds` default to the settings; tests pass
    small values directly.
    """

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(LIMITED_PREFIX):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window_seconds

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= self.max_requests:
            retry_after = int(recent[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip, len(recent), self.window_seconds,
            )
            return self._limited(request, retry_after)

        recent.append(now)

        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _limited(self, request: Request, retry_after: int) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={
                "success": False,
                "message": "Too many requests from this IP, please try again later.",
                "errorType": RATE_LIMIT_ERROR,
                "details": {"retryAfter": retry_after},
                "requestId": request_id_var.get("") or None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                "method": request.method,
            },
            headers={"Retry-After": str(retry_after)},
        )

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Dropped %d inactive IP entries", len(inactive_ips))
