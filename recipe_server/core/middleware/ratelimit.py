import hashlib
import time
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from recipe_server.core.errors import RateLimitError, app_error_handler
from recipe_server.core.logging import get_request_id
from recipe_server.core.ratelimit import InMemoryRateLimiter, RateLimitConfig

# Operational probes are never limited
EXEMPT_PATHS = {"/healthz", "/readyz"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token-bucket rate limiting middleware (opt-in via settings)."""

    def __init__(self, app, *, config: RateLimitConfig, time_fn: Optional[Callable[[], float]] = None):
        super().__init__(app)
        self.config = config
        self.limiter = InMemoryRateLimiter(self.config, time_fn=time_fn or time.monotonic)

    def _client_key(self, request: Request) -> str:
        auth = request.headers.get("Authorization")
        if auth:
            # Bucket per credential without keeping the credential itself
            digest = hashlib.sha256(auth.encode("utf-8")).hexdigest()[:16]
            return f"key:{digest}"

        ip = request.headers.get("x-forwarded-for") or (request.client.host if request.client else "unknown")
        return f"ip:{ip.split(',')[0].strip()}"

    async def dispatch(self, request: Request, call_next):
        if not self.config.enabled or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        per_minute = self.config.per_minute_default
        allowed = self.limiter.allow(
            self._client_key(request),
            per_minute=per_minute,
            burst=self.config.burst_default,
        )
        if allowed:
            return await call_next(request)

        rid = getattr(request.state, "request_id", None) or get_request_id()
        response = await app_error_handler(
            request,
            RateLimitError("Rate limit exceeded", request_id=rid),
        )
        retry_after = max(1, int(60 / max(1, per_minute)))
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-RateLimit-Limit"] = str(per_minute)
        response.headers["X-RateLimit-Remaining"] = "0"
        return response
