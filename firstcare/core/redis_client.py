"""Redis access for actor caching and booking throttles.

Redis is optional for scheduling: every helper here degrades to a cache
miss or an allowed request when the server cannot be reached.
"""

import json
from typing import Any, cast

import redis
import structlog

from firstcare.config import settings

logger = structlog.get_logger()

_pool: redis.ConnectionPool | None = None


def _connection_pool() -> redis.ConnectionPool:
    global _pool

    if _pool is None:
        _pool = redis.ConnectionPool(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username or None,
            password=settings.redis_password or None,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=settings.redis_socket_timeout,
            socket_timeout=settings.redis_socket_timeout,
            socket_keepalive=True,
            health_check_interval=30,
        )
    return _pool


def get_redis_client() -> redis.Redis:
    """Client bound to the process-wide connection pool."""
    return redis.Redis(connection_pool=_connection_pool())


async def check_redis_connection() -> bool:
    """Whether Redis answers PING."""
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError as e:
        logger.warning("redis_ping_failed", error=str(e))
        return False


def close_redis_connection() -> None:
    """Drop all pooled Redis connections."""
    global _pool

    if _pool is not None:
        _pool.disconnect()
        _pool = None


class RateLimiter:
    """Fixed-window counter shared by all API workers."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def check_rate_limit(self, key: str, limit: int, window: int = 60) -> bool:
        """
        Count one request against ``key``.

        The first request opens a window of ``window`` seconds; later
        requests in that window are counted until ``limit`` is reached.

        Args:
            key: Counter key, e.g. ``rate:booking:<actor id>``
            limit: Requests allowed per window
            window: Window length in seconds

        Returns:
            False once the window is used up, True otherwise
        """
        try:
            hits = cast(str | None, self.redis.get(key))
            if hits is None:
                self.redis.setex(key, window, 1)
            elif int(hits) >= limit:
                logger.info("rate_limit_exceeded", key=key, limit=limit, window=window)
                return False
            else:
                self.redis.incr(key)
        except redis.RedisError as e:
            logger.warning("rate_limiter_unavailable", key=key, error=str(e))
        return True


class CacheManager:
    """JSON values stored under plain Redis string keys."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def get_json(self, key: str) -> Any | None:
        """Decoded value at ``key``, or None on a miss or unreadable entry."""
        try:
            raw = cast(str | None, self.redis.get(key))
        except redis.RedisError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_entry_corrupt", key=key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Store ``value`` as JSON.

        Args:
            key: Cache key
            value: JSON-serializable value; dates and UUIDs become strings
            ttl: Expiry in seconds, or None to keep the entry

        Returns:
            Whether the value was written
        """
        try:
            payload = json.dumps(value, default=str)
            if ttl:
                self.redis.setex(key, ttl, payload)
            else:
                self.redis.set(key, payload)
        except (redis.RedisError, TypeError) as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False
        return True
