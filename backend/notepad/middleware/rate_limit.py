"""
Infinite Notepad Backend — Rate Limiting Middleware
=====================================================

What:  Per-IP sliding window rate limiter.
How:   Each IP keeps a list of request timestamps; entries older than the
       window are dropped on every request, and a request is rejected with
       429 once the remaining count reaches the limit.

The limiter is in-memory and per-process. With several uvicorn workers each
worker enforces its own window.

Rejections are rendered from RateLimitExceededError so the body matches
every other error response:

    { "error": "rate_limit_exceeded", "message", "details": {"retry_after"},
      "request_id" }
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from notepad.config import settings
from notepad.exceptions import RateLimitExceededError
from notepad.middleware.request_id import REQUEST_ID_HEADER, new_request_id

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests: Requests allowed per window (default: settings)
        window: Window length in seconds (default: settings)

    The webhook endpoint is excluded: the payment provider retries on 429 and
    would otherwise be throttled behind a busy proxy IP.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc", "/api/payments/webhook"}

    def __init__(self, app, max_requests: Optional[int] = None, window: Optional[int] = None):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window,
            )
            return self._reject(request, RateLimitExceededError(retry_after=retry_after))

        timestamps.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _reject(self, request: Request, exc: RateLimitExceededError) -> JSONResponse:
        # Runs outside RequestIDMiddleware, so the id is resolved here
        rid = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
            headers={"Retry-After": str(exc.retry_after), REQUEST_ID_HEADER: rid},
        )

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
