"""
Rate limiting middleware for API protection.

Sliding-window limiter keyed by client IP:
- A global budget per client for every API path
- A much smaller budget for credential endpoints (login, register)

In-memory only; suitable for the single-instance deployment this service
targets.
"""

import asyncio
import logging
import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from readinglist.api.middleware.error_handler import create_error_response
from readinglist.exceptions import RateLimitError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    # Requests per window for any path
    requests_per_window: int = 100

    # Window length (seconds)
    window_seconds: int = 900

    enabled: bool = True

    # Paths to exclude from rate limiting
    excluded_paths: list = field(default_factory=lambda: [
        "/api/health",
        "/docs",
        "/openapi.json",
        "/redoc",
    ])

    # Per-endpoint limits (path prefix -> requests per window)
    endpoint_limits: Dict[str, int] = field(default_factory=lambda: {
        "/api/auth/login": 5,
        "/api/auth/register": 5,
    })

    # Forwarding headers to trust for the client IP (set behind a proxy)
    trusted_proxy_headers: List[str] = field(default_factory=list)


class InMemoryRateLimiter:
    """
    Sliding-window rate limiter.

    Keeps the timestamps of recent requests per bucket and admits a request
    while fewer than ``limit`` of them fall inside the window.
    """

    def __init__(self, config: RateLimitConfig, clock: Callable[[], float] = time.monotonic):
        """
        Initialize rate limiter.

        Args:
            config: Rate limiting configuration
            clock: Monotonic time source (overridable in tests)
        """
        self.config = config
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    @property
    def bucket_count(self) -> int:
        """Number of client buckets currently held in memory."""
        return len(self._hits)

    def _sweep(self, now: float) -> None:
        """Drop buckets whose newest hit has left the window."""
        window = self.config.window_seconds
        if now - self._last_sweep < window:
            return
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= window]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now
        if stale:
            logger.debug(f"Dropped {len(stale)} idle rate limit buckets")

    def limit_for_endpoint(self, path: Optional[str]) -> Tuple[str, int]:
        """Return the bucket scope and limit that apply to a path."""
        if path:
            for pattern, limit in self.config.endpoint_limits.items():
                if path.startswith(pattern):
                    return pattern, limit
        return "*", self.config.requests_per_window

    async def check_rate_limit(
        self,
        identifier: str,
        endpoint: Optional[str] = None,
    ) -> Tuple[bool, int, float]:
        """
        Record a request and decide whether it is allowed.

        Args:
            identifier: Client identifier
            endpoint: Request path, for per-endpoint limits

        Returns:
            Tuple of (allowed, remaining, seconds_until_reset)
        """
        scope, limit = self.limit_for_endpoint(endpoint)
        window = self.config.window_seconds
        key = f"{identifier}:{scope}"

        async with self._lock:
            now = self._clock()
            self._sweep(now)
            hits = self._hits[key]
            while hits and now - hits[0] >= window:
                hits.popleft()

            if len(hits) >= limit:
                reset = window - (now - hits[0])
                return False, 0, reset

            hits.append(now)
            reset = window - (now - hits[0])
            return True, limit - len(hits), reset

    async def reset(self) -> None:
        async with self._lock:
            self._hits.clear()


def client_identifier(request: Request, trusted_headers: List[str]) -> str:
    """
    Key a request by client IP.

    Forwarding headers are honoured only when listed in ``trusted_headers``;
    otherwise any client could pick its own bucket.
    """
    for header in trusted_headers:
        forwarded = request.headers.get(header)
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host}" if request.client else "ip:unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects over-budget requests with 429 before they reach a route."""

    def __init__(
        self,
        app: FastAPI,
        config: Optional[RateLimitConfig] = None,
        limiter: Optional[InMemoryRateLimiter] = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = limiter or InMemoryRateLimiter(self.config)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not self.config.enabled or path.startswith(tuple(self.config.excluded_paths)):
            return await call_next(request)

        client = client_identifier(request, self.config.trusted_proxy_headers)
        allowed, remaining, reset_in = await self.limiter.check_rate_limit(client, path)

        if not allowed:
            _, limit = self.limiter.limit_for_endpoint(path)
            logger.warning(f"Rate limit exceeded for {client} on {path} (limit {limit})")
            error = RateLimitError(limit=limit, window_seconds=self.config.window_seconds)
            return create_error_response(
                error=error.message,
                code=error.code,
                status_code=error.status_code,
                detail=error.detail,
                headers={
                    "Retry-After": str(math.ceil(reset_in)),
                    "X-Rate-Limit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-Rate-Limit-Remaining"] = str(remaining)
        return response


def setup_rate_limiting(
    app: FastAPI,
    config: Optional[RateLimitConfig] = None,
) -> InMemoryRateLimiter:
    """
    Install the rate limiting middleware.

    Returns:
        The limiter, so callers can inspect or reset it
    """
    config = config or RateLimitConfig()
    limiter = InMemoryRateLimiter(config)
    app.add_middleware(RateLimitMiddleware, config=config, limiter=limiter)
    return limiter
