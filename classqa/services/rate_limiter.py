"""Redis-backed fixed-window rate limiter."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import redis

from classqa.core.config import get_settings
from classqa.core.errors import RateLimiterUnavailable

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    def check_and_increment(self, key: str, max_count: int, window_seconds: int) -> bool:
        """Count one attempt against ``key`` and report whether the limit is exceeded."""
        ...


class RedisRateLimiter:
    """Fixed-window counter stored in Redis.

    The window opens on the first hit for a key and lasts ``window_seconds``.
    Every call increments the counter, including calls that end up rejected,
    so hammering a closed window keeps it closed. A call is refused once the
    count is strictly greater than ``max_count``.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        settings = get_settings()
        self._client = redis_client or redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )

    def check_and_increment(self, key: str, max_count: int, window_seconds: int) -> bool:
        try:
            pipe = self._client.pipeline(transaction=True)
            # Create the key with its TTL and bump it in one MULTI/EXEC so a
            # counter never outlives its window.
            pipe.set(key, 0, ex=window_seconds, nx=True)
            pipe.incr(key)
            _, count = pipe.execute()
        except redis.RedisError as exc:
            logger.warning("Rate limiter unavailable for key %s: %s", key, exc)
            raise RateLimiterUnavailable(str(exc)) from exc

        exceeded = int(count) > max_count
        if exceeded:
            logger.info("Rate limit exceeded for %s (%s/%s in %ss)", key, count, max_count, window_seconds)
        return exceeded

    def get_count(self, key: str) -> int:
        """Current count for ``key`` without consuming a slot."""
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise RateLimiterUnavailable(str(exc)) from exc
        return int(value) if value else 0


def check_rate_limit(limiter: RateLimiter, key: str, max_count: int, window_seconds: int) -> bool:
    """Apply the configured outage policy around a limiter check.

    With ``rate_limit_fail_open`` the request is let through when Redis is
    down; otherwise ``RateLimiterUnavailable`` propagates to the caller.
    """
    try:
        return limiter.check_and_increment(key, max_count, window_seconds)
    except RateLimiterUnavailable:
        if get_settings().rate_limit_fail_open:
            logger.warning("Rate limiter down, failing open for %s", key)
            return False
        raise
