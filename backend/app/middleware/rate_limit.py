"""Rate limiting middleware using Redis.

Protects the public draft and quote endpoints from abuse with per-IP
limits. Uses a sliding window (sorted set per key) and fails open when
Redis is unavailable.
"""

import logging
import time
from typing import Callable, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.middleware.exceptions import create_error_response
from app.utils.redis_client import get_redis

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    # Check for X-Forwarded-For (load balancer)
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP sliding-window rate limits.

    Features:
    - Default limit for everything not exempt
    - Tighter limits for specific path prefixes (quote submission)
    - Disabled entirely with RATE_LIMIT_ENABLED=false
    """

    def __init__(
        self,
        app,
        default_limit: int = 100,  # requests
        default_window: int = 60,  # seconds
        exempt_paths: Optional[list[str]] = None,
        custom_limits: Optional[dict[str, tuple[int, int]]] = None,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.default_window = default_window
        self.exempt_paths = exempt_paths or ["/health", "/docs", "/openapi.json"]

        # Custom limits for specific endpoint patterns
        self.custom_limits = custom_limits or {
            "/custom/quote": (5, 300),  # 5 submissions per 5 minutes
            "/api/custom/draft": (120, 60),  # wizard autosave on every step
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not settings.rate_limit_enabled:
            return await call_next(request)

        if any(request.url.path.startswith(path) for path in self.exempt_paths):
            return await call_next(request)

        pattern, limit, window = self._get_limit_for_path(request.url.path)
        key = f"ip:{client_ip(request)}:{pattern}"

        allowed, remaining, reset_time = await self._check_rate_limit(key, limit, window)

        if not allowed:
            retry_after = max(1, int(reset_time - time.time()))
            response = create_error_response(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
                error_code="RATE_LIMITED",
            )
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = "0"
            response.headers["X-RateLimit-Reset"] = str(int(reset_time))
            response.headers["Retry-After"] = str(retry_after)
            return response

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(reset_time))
        return response

    def _get_limit_for_path(self, path: str) -> tuple[str, int, int]:
        for pattern, (limit, window) in self.custom_limits.items():
            if path.startswith(pattern):
                return pattern, limit, window
        return "default", self.default_limit, self.default_window

    async def _check_rate_limit(
        self, key: str, limit: int, window: int
    ) -> tuple[bool, int, float]:
        """Check rate limit using sliding window algorithm.

        Returns:
            (allowed, remaining, reset_time)
        """
        current_time = time.time()
        window_start = current_time - window
        redis_key = f"ratelimit:{key}"

        try:
            redis_client = await get_redis()

            # Remove old entries outside the window
            await redis_client.zremrangebyscore(redis_key, 0, window_start)

            count = await redis_client.zcard(redis_key)

            if count >= limit:
                oldest = await redis_client.zrange(redis_key, 0, 0, withscores=True)
                if oldest:
                    reset_time = oldest[0][1] + window
                else:
                    reset_time = current_time + window
                return False, 0, reset_time

            await redis_client.zadd(redis_key, {str(current_time): current_time})
            await redis_client.expire(redis_key, window)

            return True, limit - count - 1, current_time + window

        except Exception as e:
            # If Redis fails, allow request (fail open)
            logger.error(f"Rate limit check failed: {e}")
            return True, limit, current_time + window
