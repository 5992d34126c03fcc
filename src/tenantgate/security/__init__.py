"""Login throttling and security configuration."""

from .config import RateLimitConfig, SecurityConfig, create_default_security_config
from .rate_limiter import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitResult,
    RateLimitStore,
    SlidingWindowCounter,
)

__all__ = [
    "InMemoryRateLimitStore",
    "RateLimitConfig",
    "RateLimitResult",
    "RateLimitStore",
    "RateLimiter",
    "SecurityConfig",
    "SlidingWindowCounter",
    "create_default_security_config",
]
