"""Session middleware: resolves the anonymous session key on every request.

Flow:
  1. Read the session cookie
  2. Validate its shape; issue a fresh key when missing or malformed
  3. Expose it as `request.state.session_key`
  4. After the response, set the cookie if a new key was issued

Routers never read the cookie themselves. They take the key through the
`get_session_key` dependency and pass it explicitly into the draft store.
"""

import re
import secrets

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import settings

_SESSION_KEY_RE = re.compile(r"^[A-Za-z0-9_-]{22,128}$")


def new_session_key() -> str:
    return secrets.token_urlsafe(32)


def is_valid_session_key(value: str | None) -> bool:
    return bool(value) and bool(_SESSION_KEY_RE.match(value))


class SessionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        cookie = request.cookies.get(settings.session_cookie_name)
        issued = not is_valid_session_key(cookie)
        session_key = new_session_key() if issued else cookie
        request.state.session_key = session_key

        response = await call_next(request)

        if issued:
            response.set_cookie(
                settings.session_cookie_name,
                session_key,
                max_age=settings.session_cookie_max_age_days * 24 * 3600,
                httponly=True,
                samesite="lax",
                secure=settings.environment == "production",
            )
        return response


def get_session_key(request: Request) -> str:
    """FastAPI dependency: the caller's anonymous session key."""
    session_key = getattr(request.state, "session_key", None)
    if session_key is None:
        # Middleware not installed (e.g. a bare test app); fall back to the cookie.
        cookie = request.cookies.get(settings.session_cookie_name)
        session_key = cookie if is_valid_session_key(cookie) else new_session_key()
        request.state.session_key = session_key
    return session_key
