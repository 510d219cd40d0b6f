"""
Prometheus metrics middleware for API requests

Instruments all API requests with:
- Request count (by endpoint, method, status_code)
- Request duration (by endpoint, method)
"""

import re
import time
from fastapi import Request

from server.metrics import metrics

# Path segments that identify a poll collapse to :poll_id for cardinality control
_POLL_SEGMENT_PARENTS = {"poll", "vote", "polls"}


async def metrics_middleware(request: Request, call_next):
    """Record Prometheus metrics for all API requests"""
    start_time = time.time()
    endpoint = normalize_endpoint(request.url.path)
    method = request.method

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception:
        status_code = 500
        raise
    finally:
        metrics.api_requests.labels(endpoint=endpoint, method=method, status_code=status_code).inc()
        metrics.api_request_duration.labels(endpoint=endpoint, method=method).observe(time.time() - start_time)


def normalize_endpoint(path: str) -> str:
    """Normalize endpoint path for metrics cardinality control

    Converts:
        /api/poll/poll_0123456789abcdef/results -> /api/poll/:poll_id/results
        /api/vote/poll_0123456789abcdef -> /api/vote/:poll_id
        /api/admin/polls/poll_0123456789abcdef/close -> /api/admin/polls/:poll_id/close
    """
    parts = [p for p in path.split('/') if p]
    normalized = []

    for i, part in enumerate(parts):
        prev_part = parts[i - 1] if i > 0 else None
        if prev_part in _POLL_SEGMENT_PARENTS:
            normalized.append(':poll_id')
        elif part.isdigit() or re.fullmatch(r'[0-9a-f]{16,}', part):
            normalized.append(':id')
        else:
            normalized.append(part)

    return '/' + '/'.join(normalized)
