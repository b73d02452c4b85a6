"""Redis store for caching and distributed locks.

Handles:
- Caching with TTL policies
- Distributed locks (single-flight import runs)

TTL policies:
- Wishlist criteria (global list and per user): 5 minutes
- Import run lock: up to 15 minutes
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from offerwatch.errors import CacheUnavailable
from offerwatch.settings import get_settings

# TTL constants (in seconds)
TTL_WISHLISTS = 300  # 5 minutes
TTL_IMPORT_LOCK = 900  # 15 minutes

# Key prefixes
KEY_WISHLISTS_ALL = "wishlists:all"
PREFIX_WISHLIST_USER = "wishlist:"
PREFIX_LOCK = "lock:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


def wishlist_user_key(telegram_id: int) -> str:
    """Cache key for one user's wishlist criteria."""
    return f"{PREFIX_WISHLIST_USER}{telegram_id}"


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete(*keys: str) -> None:
    """Delete values from cache.

    Args:
        keys: Cache keys.
    """
    await _get_redis().delete(*keys)


class RedisCache:
    """Cache backend over the shared Redis client.

    Connection problems (and an uninitialized client) surface as
    CacheUnavailable so callers can fall back to the authoritative store.
    """

    async def get(self, key: str) -> str | None:
        try:
            return await cache_get(key)
        except (RedisError, OSError, RuntimeError) as e:
            raise CacheUnavailable(f"Redis GET {key} failed: {e}") from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await cache_set(key, value, ttl)
        except (RedisError, OSError, RuntimeError) as e:
            raise CacheUnavailable(f"Redis SETEX {key} failed: {e}") from e

    async def delete(self, *keys: str) -> None:
        try:
            await cache_delete(*keys)
        except (RedisError, OSError, RuntimeError) as e:
            raise CacheUnavailable(f"Redis DEL {', '.join(keys)} failed: {e}") from e


# ============================================================
# Distributed locks (single-flight import runs)
# ============================================================


async def acquire_lock(key: str, ttl: int = TTL_IMPORT_LOCK) -> bool:
    """Acquire a distributed lock.

    Args:
        key: Lock key (e.g., "import-run").
        ttl: Lock timeout in seconds.

    Returns:
        True if lock acquired, False if already locked.
    """
    lock_key = f"{PREFIX_LOCK}{key}"
    # SET NX (only if not exists) with TTL
    result = await _get_redis().set(lock_key, "1", nx=True, ex=ttl)
    return result is not None


async def release_lock(key: str) -> None:
    """Release a distributed lock.

    Args:
        key: Lock key.
    """
    await cache_delete(f"{PREFIX_LOCK}{key}")
