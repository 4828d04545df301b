"""
mwstack: Middleware Package
=============================

Cross-cutting concerns applied to every request, each available as a
ready-to-use Starlette Middleware entry.

Middleware Chain (default order):
    Request → [Request ID] → [Logging] → [Error Handler] → [Recover]
            → [Secure Headers] → [GZip] → [Rate Limit] → [Body Limit]
            → [Timeout] → Route Handler

    1. Request ID first: every later log line can carry it
    2. Logging outside the error handler: it sees the final status
    3. Error handler outside everything that raises HTTPException
       (rate limit 429, body limit 413, timeout 503)
    4. Timeout innermost: only handler time counts against it

Endpoint HTTP errors only get the {"error": ...} shape once the app-level
handler is registered: use install_middleware(), install_error_handler(), or
register_error_handler() next to hand-picked entries.
"""

from mwstack.middleware.error_handler import register_error_handler
from mwstack.middleware.stack import (
    body_limit_middleware,
    default_middleware,
    error_handler_middleware,
    gzip_middleware,
    install_error_handler,
    install_middleware,
    logging_middleware,
    rate_limit_middleware,
    recover_middleware,
    request_id_middleware,
    secure_middleware,
    timeout_middleware,
)

__all__ = [
    "body_limit_middleware",
    "default_middleware",
    "error_handler_middleware",
    "gzip_middleware",
    "install_error_handler",
    "install_middleware",
    "logging_middleware",
    "rate_limit_middleware",
    "recover_middleware",
    "register_error_handler",
    "request_id_middleware",
    "secure_middleware",
    "timeout_middleware",
]
