"""HTTP middleware for ReelCritic."""

from reelcritic.api.middleware.correlation import CorrelationMiddleware
from reelcritic.api.middleware.rate_limit import (
    RateLimitConfig,
    RateLimitMiddleware,
    RatePolicy,
)
from reelcritic.api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "CorrelationMiddleware",
    "RateLimitConfig",
    "RateLimitMiddleware",
    "RatePolicy",
    "SecurityHeadersMiddleware",
]
