"""Security headers for every response.

The quote page loads reCAPTCHA v3, so the production CSP allows Google's
script and frame origins alongside 'self'.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

_RECAPTCHA_ORIGINS = "https://www.google.com https://www.gstatic.com"

_PRODUCTION_CSP = (
    "default-src 'self'; "
    f"script-src 'self' 'unsafe-inline' {_RECAPTCHA_ORIGINS}; "
    "style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data: blob: https:; "
    "font-src 'self' data:; "
    f"connect-src 'self' {_RECAPTCHA_ORIGINS}; "
    f"frame-src {_RECAPTCHA_ORIGINS}; "
    "frame-ancestors 'none'; "
    "base-uri 'self'; "
    "form-action 'self';"
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        production = settings.environment == "production"

        if production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )
            response.headers["Content-Security-Policy"] = _PRODUCTION_CSP

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Uploads come from the file picker; no device APIs needed.
        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=(), payment=()"
        )
        # Draft responses carry personal data.
        if request.url.path.startswith("/api/custom/"):
            response.headers["Cache-Control"] = "no-store"

        return response
