"""Rate-Limit Middleware — global cap, then a failure-only cap on authentication routes.

Invariants:
    - Global limiter counts every request; RateLimit-* headers on every response it lets through
    - Auth limiter only looks at paths under its prefix and only counts responses >= 400
    - Auth limiter rejects before the handler runs once the failure cap is reached;
      unhandled faults arrive here already translated to 5xx responses and count as failures
    - Rejections are 429 JSON envelopes with Retry-After
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from restaurant_api.core.errors import RateLimitExceededError
from restaurant_api.infrastructure.rate_limiting import ClientRateLimiter, LimitStatus

logger = logging.getLogger(__name__)

GLOBAL_LIMIT_MESSAGE = "Too many requests, please try again later."
AUTH_LIMIT_MESSAGE = "Too many login attempts, please try again later."


def client_key(request: Request) -> str:
    """Client address as resolved by the proxy-headers middleware."""
    return request.client.host if request.client else "unknown"


def _reject(status: LimitStatus, message: str) -> JSONResponse:
    error = RateLimitExceededError(message, status.reset_in)
    return JSONResponse(
        status_code=error.http_status,
        content=error.to_response(),
        headers={**status.headers(), **error.headers},
    )


class GlobalRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: ClientRateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        key = client_key(request)
        status = self.limiter.hit(key)
        if not status.allowed:
            logger.warning(
                f"Global rate limit exceeded for {key}",
                extra={"client": key, "limiter": self.limiter.name, "path": request.url.path},
            )
            return _reject(status, GLOBAL_LIMIT_MESSAGE)
        response = await call_next(request)
        response.headers.update(status.headers())
        return response


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: ClientRateLimiter, path_prefix: str = "/auth") -> None:
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix.rstrip("/")

    def applies_to(self, path: str) -> bool:
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.applies_to(request.url.path):
            return await call_next(request)

        key = client_key(request)
        # failures are counted after the response, so attempts already in flight
        # when the cap is reached can overshoot it
        status = self.limiter.peek(key)
        if not status.allowed:
            logger.warning(
                f"Auth rate limit exceeded for {key}",
                extra={"client": key, "limiter": self.limiter.name, "path": request.url.path},
            )
            return _reject(status, AUTH_LIMIT_MESSAGE)

        response = await call_next(request)
        if response.status_code >= 400:
            failed = self.limiter.hit(key)
            logger.info(
                f"Failed auth attempt from {key} ({failed.remaining} left)",
                extra={"client": key, "limiter": self.limiter.name, "status_code": response.status_code},
            )
        return response
