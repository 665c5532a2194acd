"""Redis fixed-window rate limiting.

Rules (per client IP, 60 second window):
  - auth endpoints:      RATE_LIMIT_AUTH_PER_MIN   (anti brute-force)
  - order placement:     RATE_LIMIT_ORDER_PER_MIN  (POST /trading/*)
  - everything else:     RATE_LIMIT_QUERY_PER_MIN

Key pattern: "ratelimit:{ip}:{group}". Over the limit the request is answered
with RateLimitError (9001 / 429) and a Retry-After header. If Redis is down
the request is let through and a warning is logged.
"""

import logging
from collections.abc import Awaitable, Callable

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config.settings import settings
from src.pt_common.errors import RateLimitError
from src.pt_common.redis_client import hit_fixed_window
from src.pt_common.response import error_response

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
_EXEMPT_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})

HitCounter = Callable[[str, int], Awaitable[tuple[int, int]]]


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop when behind a reverse proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def route_group(method: str, path: str) -> tuple[str, int]:
    if "/auth/" in path:
        return "auth", settings.RATE_LIMIT_AUTH_PER_MIN
    if method == "POST" and "/trading/" in path:
        return "order", settings.RATE_LIMIT_ORDER_PER_MIN
    return "query", settings.RATE_LIMIT_QUERY_PER_MIN


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, counter: HitCounter | None = None) -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self._counter = counter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        group, limit = route_group(request.method, request.url.path)
        key = f"ratelimit:{client_ip(request)}:{group}"
        try:
            counter = self._counter or hit_fixed_window
            count, retry_after = await counter(key, WINDOW_SECONDS)
        except (RedisError, OSError) as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > limit:
            err = RateLimitError()
            body = error_response(err.code, err.message)
            body.request_id = getattr(request.state, "request_id", body.request_id)
            return JSONResponse(
                status_code=err.http_status,
                content=body.model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
