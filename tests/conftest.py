"""
mwstack: Test Configuration (conftest.py)
===========================================

What:  Shared pytest fixtures and a small test application.
Why:   Every middleware test needs an app with endpoints that succeed, fail,
       stall and read bodies; building it once keeps the tests short.

Fixtures:
    build_app:    factory for a FastAPI app with the given middleware entries
    make_client:  factory for an HTTPX AsyncClient bound to an ASGI app
"""

import asyncio
import os
from typing import List, Optional, Tuple

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from httpx import ASGITransport, AsyncClient
from starlette.middleware import Middleware

# Set before any mwstack import so the settings singleton sees it
os.environ.setdefault("LOG_LEVEL", "WARNING")

from mwstack.middleware.error_handler import register_error_handler  # noqa: E402


def _create_test_app(
    middleware: Optional[List[Middleware]] = None,
    format_http_errors: bool = False,
) -> FastAPI:
    app = FastAPI(middleware=middleware or [])
    if format_http_errors:
        register_error_handler(app)

    @app.get("/ok")
    async def ok():
        return JSONResponse({"ok": True}, status_code=201, headers={"X-Custom": "1"})

    @app.get("/not-found")
    async def not_found():
        raise HTTPException(status_code=404, detail="not found")

    @app.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=418, detail={"reason": "short and stout"})

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database exploded at /var/lib/secret")

    @app.get("/slow")
    async def slow():
        await asyncio.sleep(2)
        return {"done": True}

    @app.get("/upstream-timeout")
    async def upstream_timeout():
        raise TimeoutError("upstream socket timed out")

    @app.get("/big")
    async def big():
        return PlainTextResponse("x" * 2000)

    @app.post("/echo")
    async def echo(request: Request):
        body = await request.body()
        return {"received": len(body)}

    @app.get("/request-id")
    async def request_id(request: Request):
        return {"request_id": request.state.request_id}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


@pytest.fixture
def build_app():
    """
    Factory for a test app.

    Endpoint HTTP errors keep FastAPI's {"detail": ...} shape unless
    format_http_errors=True registers the app-level error handler.

    Usage:
        app = build_app([error_handler_middleware()], format_http_errors=True)
    """
    return _create_test_app


@pytest.fixture
def make_client():
    """
    Factory for an HTTPX AsyncClient talking to an ASGI app in-process.

    Usage:
        async with make_client(app) as client:
            response = await client.get("/ok")

    client sets the socket peer the app sees as request.client.
    """

    def _make(app, client: Tuple[str, int] = ("127.0.0.1", 123)) -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app, client=client), base_url="http://test")

    return _make
