"""
mwstack: FastAPI Application Factory
======================================

What:  A ready-to-run FastAPI app with the full middleware stack installed.
Why:   Reference wiring for services that adopt mwstack, and something to
       point uvicorn at (uvicorn mwstack.main:app).
How:   create_app() builds the app, installs the middleware, mounts routes.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain:                                   │
    │  Request ID → Logging → Error Handler → Recover      │
    │  → Secure → GZip → Rate Limit → Body Limit → Timeout │
    │                                                      │
    │  Routes:                                             │
    │  GET /health                                         │
    └──────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from mwstack import __version__
from mwstack.config import MiddlewareConfig, load_middleware_config, settings
from mwstack.middleware import install_middleware
from mwstack.routes import health

logger = logging.getLogger(__name__)


class RFC3339Formatter(logging.Formatter):
    """Formatter whose %(asctime)s is RFC 3339, e.g. 2024-05-01T12:00:00+02:00."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        # strftime's %z has no colon in the offset
        moment = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone()
        return moment.isoformat(timespec="seconds")


def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Application logs:  <time> [LEVEL] logger.name: message
    Access log:        <time> <remote_ip> <method> <uri> <status> <latency>
    Both go to stdout.
    """
    app_handler = logging.StreamHandler(sys.stdout)
    app_handler.setFormatter(RFC3339Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        handlers=[app_handler],
        force=True,
    )

    access_handler = logging.StreamHandler(sys.stdout)
    access_handler.setFormatter(RFC3339Formatter("%(asctime)s %(message)s"))
    access_logger = logging.getLogger("mwstack.access")
    access_logger.handlers = [access_handler]
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False

    # uvicorn's own access log would duplicate ours
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    config: MiddlewareConfig = app.state.middleware_config
    logger.info("mwstack %s starting up", __version__)
    logger.info(
        "Middleware: timeout=%ss body_limit=%s rate_limit=%d/%ss store=%s",
        config.timeout.total_seconds(),
        config.body_limit,
        config.rate_limit.requests,
        config.rate_limit.duration.total_seconds(),
        config.rate_limit.store,
    )

    yield

    logger.info("Shutdown complete.")


def create_app(config: Optional[MiddlewareConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Middleware configuration; defaults to the one loaded from
                the environment at startup.
    """
    if config is None:
        config = load_middleware_config()

    app = FastAPI(
        title="mwstack",
        description="Configured middleware stack: logging, recovery, timeout, "
        "body limit, request ID, gzip, security headers, rate limiting and "
        "uniform JSON errors.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.middleware_config = config

    install_middleware(app, config)
    app.include_router(health.router)

    return app


app = create_app()
