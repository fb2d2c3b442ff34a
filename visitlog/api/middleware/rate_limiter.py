"""
Rate Limiting Middleware

Per-client rate limiting keyed by the client host.
Default: 60 requests per minute per client.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Client exceeded its request budget"""

    def __init__(self, limit_per_minute: int):
        super().__init__(f"Rate limit exceeded: {limit_per_minute} requests per minute")
        self.limit_per_minute = limit_per_minute


class RateLimiter:
    """
    Per-client sliding-window rate limiting
    """

    def __init__(self, limit_per_minute: int = 60):
        self.limit_per_minute = limit_per_minute
        self.requests: Dict[str, List[datetime]] = defaultdict(list)

    def check_rate_limit(self, client_id: str) -> None:
        """Record a request, raising RateLimitExceeded if over the limit"""
        now = datetime.utcnow()
        one_minute_ago = now - timedelta(minutes=1)

        # Clean old requests
        self.requests[client_id] = [
            req_time for req_time in self.requests[client_id]
            if req_time > one_minute_ago
        ]

        if len(self.requests[client_id]) >= self.limit_per_minute:
            logger.warning(
                f"Rate limit exceeded for client: {client_id} | "
                f"Limit: {self.limit_per_minute}/min"
            )
            raise RateLimitExceeded(self.limit_per_minute)

        self.requests[client_id].append(now)


async def rate_limit_middleware(request: Request, call_next):
    """
    Rate limiting middleware

    Health checks are exempt. The limiter lives on app.state.
    """
    limiter: RateLimiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is not None and request.url.path != "/health":
        client_id = request.client.host if request.client else "unknown"
        try:
            limiter.check_rate_limit(client_id)
        except RateLimitExceeded as e:
            return JSONResponse(status_code=429, content={"detail": str(e)})

    response = await call_next(request)
    return response
