"""
Rate limiting middleware

Throttles ballot submission (POST /api/vote/...) per client address.
Other endpoints pass through untouched.

IP Detection Chain (priority order):
1. X-Forwarded-For: first IP in the proxy chain
2. X-Real-IP: single-hop proxies
3. request.client.host: direct connection fallback
"""

import hashlib
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse

from config import get_logger
from server.metrics import metrics
from server.rate_limiter import SQLiteRateLimiter

logger = get_logger(__name__)

RATE_LIMITED_PREFIX = "/api/vote/"


def get_client_ip(request: Request) -> str:
    """Best-effort client address from proxy headers"""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "127.0.0.1"


def hash_client_ip(client_ip: str) -> str:
    """Hash IP for privacy"""
    return hashlib.sha256(client_ip.encode()).hexdigest()[:16]


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


async def rate_limit_middleware(
    request: Request, call_next, rate_limiter: SQLiteRateLimiter
):
    """Check rate limits for ballot submission"""
    client_ip_hash = hash_client_ip(get_client_ip(request))
    request.state.client_ip_hash = client_ip_hash

    if request.method != "POST" or not request.url.path.startswith(RATE_LIMITED_PREFIX):
        return await call_next(request)

    is_allowed, remaining, limit_info = rate_limiter.check_rate_limit(client_ip_hash)
    reset = limit_info["reset"]

    if not is_allowed:
        metrics.rate_limited.inc()
        retry_after = max(1, int(reset - rate_limiter.clock() + 0.999))
        logger.warning(
            "rate limit exceeded",
            client=client_ip_hash,
            endpoint=f"{request.method} {request.url.path}",
            retry_after=retry_after,
        )
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate limit exceeded. Please try again later.",
                "retry_after": _iso(reset),
            },
            headers={
                "X-RateLimit-Limit": str(limit_info["limit"]),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": _iso(reset),
                "Retry-After": str(retry_after),
            },
        )

    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(limit_info["limit"])
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    return response
