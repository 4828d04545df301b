"""
mwstack: Request Logging Middleware
=====================================

What:  One access-log line per HTTP request.
Why:   The only logging this stack does on its own; everything else is left
       to the application.
How:   Measures latency around the inner chain and logs through the
       "mwstack.access" logger once the response status is known.

Line format (timestamp added by the log formatter):
    2024-01-15T12:00:00+0000 192.168.1.100 POST /api/items?x=1 201 3.4ms
    <time_rfc3339>           <remote_ip>   <method> <uri>     <status> <latency_human>
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mwstack.middleware.request_id import request_id_var
from mwstack.units import format_duration

logger = logging.getLogger("mwstack.access")


def remote_ip(request: Request) -> str:
    """
    Best guess at the client address.

    Honors X-Forwarded-For (first hop) and X-Real-IP set by a reverse proxy,
    falling back to the socket peer. For display only: the headers are
    client-controlled, so nothing should be enforced on this value.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def request_uri(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line for each HTTP request and response.

    Log level follows the status code:
        5xx → ERROR, 4xx → WARNING, everything else → INFO
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        ip = remote_ip(request)
        uri = request_uri(request)

        try:
            response = await call_next(request)
        except Exception:
            # Nothing inside turned the error into a response
            self._log(request, ip, uri, 500, start_time)
            raise

        self._log(request, ip, uri, response.status_code, start_time)
        return response

    @staticmethod
    def _log(request: Request, ip: str, uri: str, status: int, start_time: float) -> None:
        elapsed = time.perf_counter() - start_time

        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %s %d %s",
            ip,
            request.method,
            uri,
            status,
            format_duration(elapsed),
            extra={
                "request_id": request_id_var.get(""),
                "remote_ip": ip,
                "method": request.method,
                "uri": uri,
                "status": status,
                "duration_ms": round(elapsed * 1000, 2),
            },
        )
