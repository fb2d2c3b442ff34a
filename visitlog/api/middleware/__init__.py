from .audit_logger import audit_log_middleware
from .rate_limiter import RateLimiter, rate_limit_middleware

__all__ = ["audit_log_middleware", "RateLimiter", "rate_limit_middleware"]
