from functools import lru_cache

from classqa.services.rate_limiter import RateLimiter, RedisRateLimiter


@lru_cache
def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter; overridden in tests."""
    return RedisRateLimiter()
