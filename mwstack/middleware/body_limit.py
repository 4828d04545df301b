"""
mwstack: Body Limit Middleware
================================

What:  Rejects request bodies larger than a configured size.
Why:   Keeps a single client from exhausting memory with a huge upload.
How:   Pure ASGI middleware. A declared Content-Length over the limit is
       refused before the handler runs; otherwise the receive channel is
       wrapped and counts bytes as the handler reads them.

Over the limit: HTTPException 413 "Request Entity Too Large".
"""

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mwstack.config import DEFAULT_BODY_LIMIT
from mwstack.units import size_to_bytes

REQUEST_ENTITY_TOO_LARGE = "Request Entity Too Large"


def _too_large() -> HTTPException:
    return HTTPException(status_code=413, detail=REQUEST_ENTITY_TOO_LARGE)


class BodyLimitMiddleware:
    def __init__(self, app: ASGIApp, limit: str = DEFAULT_BODY_LIMIT) -> None:
        self.app = app
        self.limit = limit
        self.max_bytes = size_to_bytes(limit)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_bytes:
                raise _too_large()

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise _too_large()
            return message

        await self.app(scope, limited_receive, send)
