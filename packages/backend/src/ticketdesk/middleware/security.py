"""Security headers middleware.

Learn: Every response gets the baseline headers below. Responses under
/auth carry session tokens in their bodies, so browsers and proxies are
told not to store them. HSTS is only meaningful over TLS and is skipped
on plain HTTP (local development, tests).
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

BASELINE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}
HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers; mark token-bearing responses as uncacheable."""

    def __init__(self, app, no_store_prefixes: tuple[str, ...] = ("/auth",)):
        super().__init__(app)
        self.no_store_prefixes = no_store_prefixes

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(BASELINE_HEADERS)
        if request.url.path.startswith(self.no_store_prefixes):
            response.headers.update(NO_STORE_HEADERS)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS
        return response
