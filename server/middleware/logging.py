"""
Request/response logging middleware

One structured line per request: method, path, hashed client, status, duration.
"""

import time
from fastapi import Request

from config import get_logger

logger = get_logger(__name__).bind(component="api")


def _client(request: Request) -> str:
    return getattr(request.state, "client_ip_hash", "unknown")[:7]


async def log_requests(request: Request, call_next):
    """Log incoming requests and responses"""
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "request failed",
            method=request.method,
            path=request.url.path,
            client=_client(request),
            duration_seconds=round(time.time() - start_time, 3),
            error=str(e),
            exc_info=True,
        )
        raise

    log = logger.warning if response.status_code >= 500 else logger.info
    log(
        "request",
        method=request.method,
        path=request.url.path,
        client=_client(request),
        status_code=response.status_code,
        duration_seconds=round(time.time() - start_time, 3),
    )
    return response
