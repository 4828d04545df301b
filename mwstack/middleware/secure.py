"""
mwstack: Security Headers Middleware
======================================

What:  Adds protective response headers to every HTTP response.
Why:   Cheap mitigation for XSS, MIME sniffing and clickjacking.

Defaults:
    X-XSS-Protection:        1; mode=block
    X-Content-Type-Options:  nosniff
    X-Frame-Options:         SAMEORIGIN

Off unless configured:
    Strict-Transport-Security   (hsts_max_age > 0, HTTPS requests only)
    Content-Security-Policy     (content_security_policy)
    Referrer-Policy             (referrer_policy)

Headers already set by the handler are left alone.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class SecureHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        xss_protection: str = "1; mode=block",
        content_type_nosniff: str = "nosniff",
        x_frame_options: str = "SAMEORIGIN",
        hsts_max_age: int = 0,
        hsts_exclude_subdomains: bool = False,
        hsts_preload: bool = False,
        content_security_policy: str = "",
        csp_report_only: bool = False,
        referrer_policy: str = "",
    ):
        super().__init__(app)
        self.headers = {}
        if xss_protection:
            self.headers["X-XSS-Protection"] = xss_protection
        if content_type_nosniff:
            self.headers["X-Content-Type-Options"] = content_type_nosniff
        if x_frame_options:
            self.headers["X-Frame-Options"] = x_frame_options
        if content_security_policy:
            name = (
                "Content-Security-Policy-Report-Only"
                if csp_report_only
                else "Content-Security-Policy"
            )
            self.headers[name] = content_security_policy
        if referrer_policy:
            self.headers["Referrer-Policy"] = referrer_policy

        self.hsts = ""
        if hsts_max_age > 0:
            self.hsts = f"max-age={hsts_max_age}"
            if not hsts_exclude_subdomains:
                self.hsts += "; includeSubdomains"
            if hsts_preload:
                self.hsts += "; preload"

    @staticmethod
    def _is_https(request: Request) -> bool:
        forwarded_proto = request.headers.get("x-forwarded-proto", "")
        return request.url.scheme == "https" or forwarded_proto.lower() == "https"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        if self.hsts and self._is_https(request):
            response.headers.setdefault("Strict-Transport-Security", self.hsts)

        return response
