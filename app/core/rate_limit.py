"""
Rate Limiting
=============

Redis-based fixed-window rate limiting for API endpoints.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from app.core.security import decode_access_token
from app.services.cache import get_redis

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-window rate limiter using Redis.

    Rate limits are applied per user (if authenticated) or per IP.

    Default limits:
        - Read endpoints: 100 requests/minute
        - Creation endpoints: 30 requests/minute
        - AI generation endpoints: 10 requests/minute
        - Billing endpoints: 10 requests/minute
    """

    # Limit configurations
    LIMITS = {
        "read": {"max_requests": 100, "window_seconds": 60},
        "create": {"max_requests": 30, "window_seconds": 60},
        "ai": {"max_requests": 10, "window_seconds": 60},
        "billing": {"max_requests": 10, "window_seconds": 60},
    }

    @staticmethod
    def _get_key(identifier: str, action: str) -> str:
        """Generate rate limit key."""
        return f"ratelimit:{action}:{identifier}"

    @staticmethod
    async def check_rate_limit(
        identifier: str,
        action: str,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ) -> dict:
        """
        Check if request is within rate limit.

        Args:
            identifier: User ID or IP address
            action: Action type (read, create, ai, billing)
            max_requests: Override max requests (optional)
            window_seconds: Override window size (optional)

        Returns:
            Dict with 'allowed', 'remaining', 'reset_in' keys
        """
        limits = RateLimiter.LIMITS.get(action, RateLimiter.LIMITS["read"])
        max_req = max_requests or limits["max_requests"]
        window = window_seconds or limits["window_seconds"]

        key = RateLimiter._get_key(identifier, action)

        try:
            client = await get_redis()

            # INCR creates the key at 1; the first hit in a window sets its TTL
            count = await client.incr(key)
            if count == 1:
                await client.expire(key, window)

            ttl = await client.ttl(key)
            reset_in = ttl if ttl > 0 else window

            if count > max_req:
                return {"allowed": False, "remaining": 0, "reset_in": reset_in}

            return {
                "allowed": True,
                "remaining": max_req - count,
                "reset_in": reset_in,
            }

        except Exception as e:
            logger.warning("Rate limit check error: %s", e)
            # Allow request on error (fail open)
            return {
                "allowed": True,
                "remaining": max_req,
                "reset_in": window,
            }


def _request_identifier(request: Request) -> str:
    """User id from a valid bearer token, else the client IP."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        payload = decode_access_token(auth_header[7:])
        if payload:
            return f"user:{payload['sub']}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


async def rate_limit_dependency(
    request: Request,
    action: str = "read",
) -> None:
    """Raise 429 when the caller exceeded the limit for ``action``."""
    result = await RateLimiter.check_rate_limit(_request_identifier(request), action)

    if not result["allowed"]:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "code": "RATE_LIMIT",
                "message": f"Rate limit exceeded. Try again in {result['reset_in']} seconds.",
            },
            headers={
                "X-RateLimit-Limit": str(RateLimiter.LIMITS.get(action, {}).get("max_requests", 100)),
                "X-RateLimit-Remaining": str(result["remaining"]),
                "X-RateLimit-Reset": str(result["reset_in"]),
                "Retry-After": str(result["reset_in"]),
            },
        )


def create_rate_limit_dependency(action: str = "read"):
    """
    Factory for rate limit dependencies.

    Usage:
        @router.post("/generate", dependencies=[Depends(create_rate_limit_dependency("ai"))])
        async def generate():
            ...
    """
    async def dependency(request: Request) -> None:
        await rate_limit_dependency(request, action)

    return dependency
