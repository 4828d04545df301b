"""
mwstack: Recover Middleware
=============================

Catches unexpected exceptions from the inner chain, logs the stack trace and
answers 500. HTTPException is an expected outcome, not a crash, and is
re-raised for the error handler.
"""

import logging

from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mwstack.middleware.error_handler import error_response
from mwstack.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RecoverMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, log_stack: bool = True):
        super().__init__(app)
        self.log_stack = log_stack

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as exc:
            logger.error(
                "[%s] [RECOVER] %s %s: %r",
                request_id_var.get(""),
                request.method,
                request.url.path,
                exc,
                exc_info=self.log_stack,
            )
            return error_response(exc)
