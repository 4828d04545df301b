"""
mwstack: Rate Limiting Middleware
===================================

What:  Per-IP request limit: at most N requests in any moving window of D.
       The IP is the connection's peer address (request.client), never a
       forwarding header.
Why:   Protects the service from abuse and accidental request floods.
How:   Delegates counting to the `limits` library (the engine behind slowapi):
       a MovingWindowRateLimiter over an async storage backend.
When:  Inside the error handler, so a 429 is formatted like any other error.

Storage backends (middleware.rate_limit.store):
    memory  In-process. Counts are per worker process.
    redis   Shared across workers and instances; address taken from
            middleware.rate_limit.redis_addr.

Response on rate limit:
    HTTPException 429 "Too Many Requests"
    Retry-After header: seconds until the oldest hit leaves the window
"""

import logging
import math
import time

from limits import RateLimitItemPerSecond
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mwstack.config import DEFAULT_RATE_LIMIT_DURATION, DEFAULT_RATE_LIMIT_REQUESTS

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Too Many Requests"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Moving-window rate limiter keyed by client IP.

    The window is rounded up to whole seconds, the granularity of `limits`.
    """

    # Health checks should always be reachable
    EXCLUDED_PATHS = {"/health"}

    def __init__(
        self,
        app,
        requests: int = DEFAULT_RATE_LIMIT_REQUESTS,
        duration: float = DEFAULT_RATE_LIMIT_DURATION.total_seconds(),
        storage_uri: str = "async+memory://",
    ):
        super().__init__(app)
        self.requests = requests
        self.window_seconds = max(1, math.ceil(duration))
        self.item = RateLimitItemPerSecond(requests, self.window_seconds, namespace="mwstack")
        self.storage = storage_from_string(storage_uri)
        self.limiter = MovingWindowRateLimiter(self.storage)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Socket peer only; X-Forwarded-For is client-controlled. Behind a proxy,
        # run uvicorn with --proxy-headers and --forwarded-allow-ips.
        client_ip = request.client.host if request.client else "unknown"

        if not await self.limiter.hit(self.item, client_ip):
            stats = await self.limiter.get_window_stats(self.item, client_ip)
            retry_after = max(1, math.ceil(stats.reset_time - time.time()))

            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                self.requests,
                self.window_seconds,
            )
            raise HTTPException(
                status_code=429,
                detail=TOO_MANY_REQUESTS,
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
