"""
mwstack: Error Handler Middleware
===================================

What:  Turns any error escaping the inner chain into a JSON response.
Why:   Clients get one error shape, {"error": <message>}, whatever failed.
How:   Two buckets:
           HTTPException (status + message) → that status, {"error": str(detail)}
           anything else                    → 500, {"error": "Internal Server Error"}
       No error: the inner response is returned untouched.

Starlette's ExceptionMiddleware sits inside every user middleware and catches
HTTPException raised by endpoints before it gets here. The middleware alone
therefore only formats errors from other middleware and non-HTTP exceptions;
register_error_handler(app) adds the app-level handler that formats endpoint
HTTP errors the same way. install_error_handler() and install_middleware()
always do both.
"""

import logging

from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from mwstack.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

INTERNAL_SERVER_ERROR = "Internal Server Error"

# Statuses that must not carry a body
_BODYLESS_STATUSES = {204, 304}


def error_response(exc: Exception) -> Response:
    """Build the {"error": ...} response for an exception."""
    if isinstance(exc, HTTPException):
        if exc.status_code in _BODYLESS_STATUSES:
            return Response(status_code=exc.status_code, headers=exc.headers)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=exc.headers,
        )
    return JSONResponse(status_code=500, content={"error": INTERNAL_SERVER_ERROR})


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """App-level exception handler for HTTPException raised inside endpoints."""
    return error_response(exc)


def register_error_handler(app) -> None:
    """
    Register http_exception_handler on a Starlette/FastAPI app.

    Required wherever ErrorHandlerMiddleware is used: without it, endpoint
    HTTP errors keep the framework's own shape (plain text on Starlette,
    {"detail": ...} on FastAPI).
    """
    app.add_exception_handler(HTTPException, http_exception_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Formats every error from the inner chain as {"error": <message>}."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            if not isinstance(exc, HTTPException):
                logger.error(
                    "[%s] Unhandled error on %s %s: %s",
                    request_id_var.get(""),
                    request.method,
                    request.url.path,
                    exc,
                    exc_info=True,
                )
            return error_response(exc)
