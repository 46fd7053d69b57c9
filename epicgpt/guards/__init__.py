"""Request guards: rate limiting and admin checks."""

from epicgpt.guards.admin import is_admin
from epicgpt.guards.rate_limit import (
    OperationClass,
    RateLimitConfig,
    RateLimitDecision,
    RateLimiter,
)

__all__ = [
    "OperationClass",
    "RateLimitConfig",
    "RateLimitDecision",
    "RateLimiter",
    "is_admin",
]
