"""
Request rate limits.

Counters live in Redis with fixed windows so every API process shares them: the first
hit opens a window, later hits in the same window count against the ceiling.
"""
import logging
import time

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from kapgel.config import settings
from kapgel.metrics import requests_rate_limited_total

logger = logging.getLogger(__name__)

RATE_LIMITS = {
    "orders": "500/minute",
    "general": "1000/hour",
}


def get_client_ip(request: Request) -> str:
    """First address of X-Forwarded-For, then X-Real-IP, then the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and forwarded.split(",")[0].strip():
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    if request.client is not None:
        return request.client.host
    return "unknown"


limiter = Limiter(
    key_func=get_client_ip,
    storage_uri=settings.rate_limit_storage_uri or settings.redis_url,
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)


def _retry_after(request: Request) -> int:
    view_limit = getattr(request.state, "view_rate_limit", None)
    if view_limit is None:
        return 60
    reset_at, _remaining = limiter.limiter.get_window_stats(view_limit[0], *view_limit[1])
    return max(int(reset_at - time.time()), 1)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    route = request.scope.get("route")
    requests_rate_limited_total.labels(path=getattr(route, "path", request.url.path)).inc()
    logger.warning("Rate limit exceeded: %s on %s (%s)", get_client_ip(request), request.url.path, exc.detail)
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded", "code": "RATE_LIMITED"},
        headers={"Retry-After": str(_retry_after(request))},
    )
