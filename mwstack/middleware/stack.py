"""
mwstack: Middleware Constructors
==================================

What:  One constructor per middleware, each returning a ready Middleware entry.
Why:   Applications pick entries from here instead of repeating option
       plumbing; configuration values come from a single record.
How:   Each function reads one or two scalars from MiddlewareConfig (loaded
       from settings when not given) and wraps a middleware class.

Usage:
    app = FastAPI()
    install_middleware(app)
    # or, only the error formatter
    install_error_handler(app)
    # or, pick and choose; the error format then needs the app handler too
    app = Starlette(middleware=[request_id_middleware(), error_handler_middleware()])
    register_error_handler(app)

Default stack (outermost first):
    Request ID → Logging → Error Handler → Recover → Secure Headers
    → GZip → Rate Limit → Body Limit → Timeout → (app)
"""

from typing import List, Optional

from starlette.middleware import Middleware
from starlette.middleware.gzip import GZipMiddleware

from mwstack.config import MiddlewareConfig, load_middleware_config
from mwstack.middleware.body_limit import BodyLimitMiddleware
from mwstack.middleware.error_handler import ErrorHandlerMiddleware, register_error_handler
from mwstack.middleware.logging import RequestLoggingMiddleware
from mwstack.middleware.rate_limit import RateLimitMiddleware
from mwstack.middleware.recover import RecoverMiddleware
from mwstack.middleware.request_id import RequestIDMiddleware
from mwstack.middleware.secure import SecureHeadersMiddleware
from mwstack.middleware.timeout import TimeoutMiddleware

# Don't compress small responses (overhead > savings)
GZIP_MINIMUM_SIZE = 500


def logging_middleware() -> Middleware:
    """Access log: time, remote IP, method, URI, status, latency."""
    return Middleware(RequestLoggingMiddleware)


def recover_middleware() -> Middleware:
    """Turns unexpected exceptions into a logged 500."""
    return Middleware(RecoverMiddleware)


def timeout_middleware(config: Optional[MiddlewareConfig] = None) -> Middleware:
    """Cancels handlers running longer than middleware.timeout."""
    if config is None:
        config = load_middleware_config()
    return Middleware(TimeoutMiddleware, timeout=config.timeout.total_seconds())


def request_id_middleware() -> Middleware:
    return Middleware(RequestIDMiddleware)


def gzip_middleware() -> Middleware:
    return Middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)


def body_limit_middleware(config: Optional[MiddlewareConfig] = None) -> Middleware:
    """Rejects request bodies larger than middleware.body_limit."""
    if config is None:
        config = load_middleware_config()
    return Middleware(BodyLimitMiddleware, limit=config.body_limit)


def secure_middleware() -> Middleware:
    return Middleware(SecureHeadersMiddleware)


def error_handler_middleware() -> Middleware:
    """
    Formats errors escaping the inner chain as {"error": <message>}.

    HTTPException raised by endpoints is only formatted once
    register_error_handler(app) has run; install_error_handler() does both.
    """
    return Middleware(ErrorHandlerMiddleware)


def rate_limit_middleware(config: Optional[MiddlewareConfig] = None) -> Middleware:
    """Per-IP limit of middleware.rate_limit.requests per .duration."""
    if config is None:
        config = load_middleware_config()
    rate_limit = config.rate_limit
    return Middleware(
        RateLimitMiddleware,
        requests=rate_limit.requests,
        duration=rate_limit.duration.total_seconds(),
        storage_uri=rate_limit.storage_uri,
    )


def default_middleware(config: Optional[MiddlewareConfig] = None) -> List[Middleware]:
    """The full stack, outermost first. Pair with register_error_handler(app)."""
    if config is None:
        config = load_middleware_config()
    return [
        request_id_middleware(),
        logging_middleware(),
        error_handler_middleware(),
        recover_middleware(),
        secure_middleware(),
        gzip_middleware(),
        rate_limit_middleware(config),
        body_limit_middleware(config),
        timeout_middleware(config),
    ]


def install_middleware(app, config: Optional[MiddlewareConfig] = None) -> None:
    """
    Install the default stack on an existing Starlette/FastAPI app.

    add_middleware() makes the newest entry the outermost, so entries are
    added innermost first. HTTPException raised inside endpoints never
    reaches the middleware (the framework's exception layer catches it
    first), hence the exception handler registration.
    """
    for entry in reversed(default_middleware(config)):
        app.add_middleware(entry.cls, *entry.args, **entry.kwargs)
    register_error_handler(app)


def install_error_handler(app) -> None:
    """Add the error handler as the outermost middleware and register its app handler."""
    entry = error_handler_middleware()
    app.add_middleware(entry.cls, *entry.args, **entry.kwargs)
    register_error_handler(app)
