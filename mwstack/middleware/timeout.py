"""
mwstack: Timeout Middleware
=============================

What:  Cancels request handling that runs longer than a configured duration.
How:   Pure ASGI middleware running the inner app under anyio.move_on_after().
       If nothing has been sent yet the timeout becomes HTTPException 503.
       If the response already started there is nothing left to replace,
       so the truncated response is logged and dropped.

Sync endpoints run in a worker thread and cannot be interrupted; the
timeout fires once the thread returns.
"""

import logging

import anyio
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mwstack.config import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = "Service Unavailable"


class TimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout: float = DEFAULT_TIMEOUT.total_seconds()) -> None:
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        # Only our own deadline counts; a TimeoutError raised by the app propagates
        with anyio.move_on_after(self.timeout) as cancel_scope:
            await self.app(scope, receive, tracking_send)

        if not cancel_scope.cancelled_caught:
            return
        if response_started:
            logger.warning(
                "Request %s %s timed out after %.3fs mid-response",
                scope.get("method", ""),
                scope.get("path", ""),
                self.timeout,
            )
            return
        raise HTTPException(status_code=503, detail=SERVICE_UNAVAILABLE)
