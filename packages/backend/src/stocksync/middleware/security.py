"""Security headers middleware.

Learn: The API answers the billing screens on the shop floor and the
`stocksync` CLI, and its bills carry customer phone numbers, GST ids and
addresses. Browsers must not sniff or frame those responses, and a
deployment behind TLS should pin HTTPS, so every response carries:
- X-Content-Type-Options: prevents MIME-type sniffing
- X-Frame-Options: prevents clickjacking of the billing screen
- Referrer-Policy: limits referrer info leakage
- Strict-Transport-Security: forces HTTPS (only on HTTPS connections)
- Cache-Control: no-store on the bill and inventory routes, so a shared
  till browser or proxy never serves a stale stock level or another
  customer's bill from cache
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(
        self,
        app,
        hsts_max_age: int = 31536000,
        no_store_prefixes: tuple[str, ...] = ("/api/bills", "/api/inventory"),
    ):
        super().__init__(app)
        self.hsts_max_age = hsts_max_age
        self.no_store_prefixes = no_store_prefixes

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.path.startswith(self.no_store_prefixes):
            response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = (
                f"max-age={self.hsts_max_age}; includeSubDomains"
            )
        return response
